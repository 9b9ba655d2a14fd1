"""Official updates from government and relief agencies.

Sample bulletins are always available. A "fresh" fetch also runs the
source scrapers; the scraper here is a stub returning canned items per
domain, and a failing source is logged and skipped.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Optional
from urllib.parse import urlparse

from disaster_hub.models import URGENCY_RANK, OfficialUpdate, Urgency, utc_now

logger = logging.getLogger(__name__)

OFFICIAL_SOURCES = [
    {"name": "FEMA", "url": "https://www.fema.gov", "type": "federal"},
    {"name": "NYC Emergency Management", "url": "https://www1.nyc.gov/site/em", "type": "local"},
    {"name": "American Red Cross", "url": "https://www.redcross.org", "type": "relief"},
    {"name": "NYC Department of Health", "url": "https://www1.nyc.gov/site/doh", "type": "health"},
    {"name": "National Weather Service", "url": "https://www.weather.gov", "type": "weather"},
]

# Canned scraper output keyed by domain: (title, content, minutes ago)
SCRAPED_ITEMS = {
    "fema.gov": [
        ("Disaster Relief Funding Available",
         "Additional federal funding has been allocated for disaster relief efforts in affected areas.", 15),
    ],
    "nyc.gov": [
        ("City Services Update",
         "Essential city services continue to operate. Non-essential services may be limited during the emergency.", 20),
    ],
    "redcross.org": [
        ("Volunteer Opportunities",
         "The Red Cross is seeking volunteers to assist with disaster relief efforts. Training provided.", 25),
    ],
}

Scraper = Callable[[str, str], Awaitable[list[dict]]]


async def scrape_official_website(url: str, source: str) -> list[dict]:
    """Return the items published on a source's site (stub)."""
    domain = urlparse(url).hostname or ""
    for prefix in ("www1.", "www."):
        if domain.startswith(prefix):
            domain = domain[len(prefix):]
    now = utc_now()
    return [
        {"title": title, "content": content, "published_at": now - timedelta(minutes=minutes)}
        for title, content, minutes in SCRAPED_ITEMS.get(domain, [])
    ]


def _seed_updates() -> list[OfficialUpdate]:
    now = utc_now()
    return [
        OfficialUpdate(
            id="update_1",
            source="FEMA",
            title="Emergency Declaration for NYC Flooding",
            content="Federal Emergency Management Agency has declared a state of emergency for New York City due to severe flooding. Federal assistance is now available to affected residents.",
            url="https://www.fema.gov/disaster/current/nyc-flooding-2025",
            published_at=now - timedelta(hours=2),
            priority=Urgency.HIGH,
            category="official",
            tags=["flood", "emergency", "federal"],
        ),
        OfficialUpdate(
            id="update_2",
            source="NYC Emergency Management",
            title="Evacuation Orders for Lower Manhattan",
            content="NYC Emergency Management has issued evacuation orders for residents in flood-prone areas of Lower Manhattan. Evacuation centers have been established at designated locations.",
            url="https://www1.nyc.gov/site/em/emergency_management/current-emergencies.page",
            published_at=now - timedelta(hours=1),
            priority=Urgency.CRITICAL,
            category="evacuation",
            tags=["evacuation", "manhattan", "flood"],
        ),
        OfficialUpdate(
            id="update_3",
            source="American Red Cross",
            title="Emergency Shelters Now Open",
            content="The American Red Cross has opened emergency shelters across NYC. Shelters provide food, water, and temporary housing for displaced residents.",
            url="https://www.redcross.org/local/new-york/new-york-city",
            published_at=now - timedelta(minutes=30),
            priority=Urgency.MEDIUM,
            category="shelter",
            tags=["shelter", "redcross", "housing"],
        ),
        OfficialUpdate(
            id="update_4",
            source="NYC Department of Health",
            title="Health Advisory for Flood-Affected Areas",
            content="Health advisory issued for residents in flood-affected areas. Avoid contact with floodwater and seek medical attention if experiencing symptoms.",
            url="https://www1.nyc.gov/site/doh/health/emergency-preparedness/emergencies.page",
            published_at=now - timedelta(minutes=45),
            priority=Urgency.MEDIUM,
            category="health",
            tags=["health", "advisory", "flood"],
        ),
        OfficialUpdate(
            id="update_5",
            source="MTA",
            title="Subway Service Disruptions",
            content="Multiple subway lines suspended due to flooding. Alternative transportation options available. Check MTA website for latest service updates.",
            url="https://new.mta.info/alerts",
            published_at=now - timedelta(minutes=90),
            priority=Urgency.MEDIUM,
            category="transportation",
            tags=["transportation", "subway", "mta"],
        ),
    ]


class OfficialUpdatesService:
    """Aggregates official bulletins and scraped source items."""

    def __init__(self, scraper: Scraper = scrape_official_website) -> None:
        self._updates = _seed_updates()
        self._scraper = scraper

    @property
    def sources(self) -> list[dict]:
        return [dict(source) for source in OFFICIAL_SOURCES]

    async def scrape_sources(self, disaster_tags: Optional[list[str]] = None) -> list[OfficialUpdate]:
        """Scrape every source; failing sources are skipped."""
        stamp = int(utc_now().timestamp() * 1000)
        scraped: list[OfficialUpdate] = []
        for source in OFFICIAL_SOURCES:
            try:
                items = await self._scraper(source["url"], source["name"])
            except Exception as e:
                logger.error(f"[UPDATES] Error scraping {source['name']}: {e}")
                continue
            slug = "_".join(source["name"].lower().split())
            for index, item in enumerate(items):
                scraped.append(OfficialUpdate(
                    id=f"scraped_{slug}_{stamp}_{index}",
                    source=source["name"],
                    title=item["title"],
                    content=item["content"],
                    url=source["url"],
                    published_at=item["published_at"],
                    priority=Urgency.MEDIUM,
                    category="official",
                    tags=list(disaster_tags or []),
                    is_scraped=True,
                ))
        return scraped

    async def fetch(
        self,
        disaster_tags: Optional[list[str]] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        fresh: bool = False,
        limit: int = 20,
    ) -> list[OfficialUpdate]:
        """Filtered updates, highest priority first, newest first within a priority.

        When the disaster has tags, only updates sharing at least one tag are kept.
        """
        updates = list(self._updates)
        if fresh:
            scraped = await self.scrape_sources(disaster_tags)
            logger.info(f"[UPDATES] Scraped {len(scraped)} fresh updates")
            updates = scraped + updates

        if priority:
            updates = [u for u in updates if u.priority.value == priority]
        if category:
            updates = [u for u in updates if u.category == category]
        if disaster_tags:
            updates = [u for u in updates if any(tag in disaster_tags for tag in u.tags)]

        updates.sort(key=lambda u: (URGENCY_RANK[u.priority], u.published_at), reverse=True)
        return updates[:limit]
