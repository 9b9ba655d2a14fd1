"""Social media monitoring (mock feed).

Posts come from a fixed sample set filtered by disaster keywords. A
"realtime" request adds freshly generated posts built from per-disaster
templates, which simulates new activity on the feed.
"""

import logging
import random
import time
from datetime import timedelta
from typing import Optional

from disaster_hub.models import (
    URGENCY_RANK,
    Report,
    SocialMediaPost,
    Urgency,
    VerificationStatus,
    utc_now,
)

logger = logging.getLogger(__name__)

DISASTER_KEYWORDS = [
    "flood", "earthquake", "fire", "hurricane", "tornado", "emergency",
    "disaster", "relief", "help", "urgent", "sos", "evacuation", "shelter",
    "rescue", "medical", "supplies", "food", "water", "power", "outage",
]

PRIORITY_TERMS = ["urgent", "sos", "emergency"]

REALTIME_TEMPLATES = {
    "flood": [
        "Water levels rising in {location}. Need immediate help! #flood #emergency",
        "Basement flooded in {location}. Looking for shelter. #floodrelief",
        "Road closures due to flooding in {location}. Avoid area. #flood #traffic",
    ],
    "earthquake": [
        "Building damage reported in {location}. #earthquake #emergency",
        "Aftershocks felt in {location}. Stay safe everyone. #earthquake",
        "Emergency services responding to {location}. #earthquake #rescue",
    ],
    "fire": [
        "Smoke visible from {location}. Evacuating now. #fire #evacuation",
        "Fire spreading in {location}. Need firefighters! #fire #emergency",
        "Air quality poor in {location} due to fire. #fire #health",
    ],
}

REALTIME_LOCATIONS = ["Manhattan", "Brooklyn", "Queens", "Bronx", "Staten Island"]
REALTIME_USERS = ["citizen_alert", "local_resident", "emergency_watch", "community_help"]


def _seed_posts() -> list[SocialMediaPost]:
    now = utc_now()
    return [
        SocialMediaPost(
            id="post_1",
            user="citizen1",
            content="#floodrelief Need food in Lower East Side NYC. Water levels rising fast!",
            timestamp=now - timedelta(minutes=30),
            location="Lower East Side, NYC",
            urgency=Urgency.HIGH,
            keywords=["flood", "relief", "food", "urgent"],
        ),
        SocialMediaPost(
            id="post_2",
            user="reliefworker_ny",
            content="Shelter available at Manhattan Community Center. #disasterrelief #shelter",
            timestamp=now - timedelta(minutes=45),
            location="Manhattan, NYC",
            urgency=Urgency.MEDIUM,
            keywords=["shelter", "relief", "available"],
        ),
        SocialMediaPost(
            id="post_3",
            user="nyc_emergency",
            content="URGENT: Evacuation recommended for areas near East River. #evacuation #flood",
            timestamp=now - timedelta(minutes=15),
            location="East River, NYC",
            urgency=Urgency.CRITICAL,
            keywords=["urgent", "evacuation", "flood"],
        ),
        SocialMediaPost(
            id="post_4",
            user="volunteer_help",
            content="Medical supplies needed in Brooklyn. Can deliver. #medical #supplies #brooklyn",
            timestamp=now - timedelta(hours=1),
            location="Brooklyn, NYC",
            urgency=Urgency.MEDIUM,
            keywords=["medical", "supplies", "volunteer"],
        ),
        SocialMediaPost(
            id="post_5",
            user="local_news",
            content="Power outages reported across Queens. Crews working to restore. #poweroutage #queens",
            timestamp=now - timedelta(minutes=90),
            location="Queens, NYC",
            urgency=Urgency.LOW,
            keywords=["power", "outage", "crews"],
        ),
    ]


class SocialMediaService:
    """Mock social media feed plus user-submitted reports.

    A submitted report joins the feed of its own disaster as a ``user_report``
    post.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._posts = _seed_posts()
        self._reports: dict[str, tuple[Report, SocialMediaPost]] = {}
        self._rng = rng or random.Random()

    def report_posts(self, disaster_id: str) -> list[SocialMediaPost]:
        return [post for report, post in self._reports.values() if report.disaster_id == disaster_id]

    def relevant_posts(
        self,
        disaster_tags: Optional[list[str]] = None,
        disaster_id: Optional[str] = None,
    ) -> list[SocialMediaPost]:
        """Sample posts mentioning a disaster keyword or one of the disaster's tags.

        With ``disaster_id``, reports submitted for that disaster are included
        whatever their wording.
        """
        keywords = DISASTER_KEYWORDS + [t.lower() for t in disaster_tags or []]
        posts = [
            post for post in self._posts
            if any(keyword in post.content.lower() for keyword in keywords)
        ]
        if disaster_id is not None:
            posts.extend(self.report_posts(disaster_id))
        return posts

    def generate_realtime_posts(
        self, disaster_tags: Optional[list[str]] = None
    ) -> list[SocialMediaPost]:
        """Generate one to three new posts from the templates of the disaster's tags."""
        tags = disaster_tags or []
        stamp = int(time.time() * 1000)
        posts = []
        for i in range(self._rng.randint(1, 3)):
            tag = self._rng.choice(tags) if tags else "emergency"
            templates = REALTIME_TEMPLATES.get(tag, REALTIME_TEMPLATES["flood"])
            location = self._rng.choice(REALTIME_LOCATIONS)
            posts.append(SocialMediaPost(
                id=f"realtime_{stamp}_{i}",
                user=self._rng.choice(REALTIME_USERS),
                content=self._rng.choice(templates).format(location=location),
                timestamp=utc_now(),
                location=location,
                urgency=Urgency.HIGH if self._rng.random() > 0.7 else Urgency.MEDIUM,
                keywords=[tag, "emergency"],
                is_realtime=True,
            ))
        return posts

    def feed(
        self,
        disaster_tags: Optional[list[str]] = None,
        limit: int = 20,
        realtime: bool = False,
        disaster_id: Optional[str] = None,
    ) -> list[SocialMediaPost]:
        """Relevant posts, newest first, with generated posts when ``realtime``."""
        posts = self.relevant_posts(disaster_tags, disaster_id)
        if realtime:
            fresh = self.generate_realtime_posts(disaster_tags)
            logger.info(f"[SOCIAL] Generated {len(fresh)} realtime posts")
            posts = fresh + posts
        posts.sort(key=lambda p: p.timestamp, reverse=True)
        return posts[:limit]

    def priority_posts(
        self,
        disaster_tags: Optional[list[str]] = None,
        disaster_id: Optional[str] = None,
    ) -> list[SocialMediaPost]:
        """Critical/high posts or posts using urgent language, most urgent then newest first."""
        posts = [
            post for post in self.relevant_posts(disaster_tags, disaster_id)
            if post.urgency in (Urgency.CRITICAL, Urgency.HIGH)
            or any(term in post.content.lower() for term in PRIORITY_TERMS)
        ]
        posts.sort(key=lambda p: (URGENCY_RANK[p.urgency], p.timestamp), reverse=True)
        return posts

    def submit_report(
        self,
        disaster_id: str,
        user_id: str,
        content: str,
        location: Optional[str] = None,
        urgency: Urgency = Urgency.MEDIUM,
        image_url: Optional[str] = None,
    ) -> tuple[Report, SocialMediaPost]:
        """Store a user report and return it with its feed representation."""
        report = Report(
            id=f"report_{len(self._reports) + 1}_{int(time.time() * 1000)}",
            disaster_id=disaster_id,
            user_id=user_id,
            content=content,
            image_url=image_url,
        )
        post = SocialMediaPost(
            id=f"user_report_{report.id}",
            user=user_id,
            content=content,
            timestamp=report.created_at,
            platform="user_report",
            location=location or "Unknown",
            urgency=urgency,
            verification_status=VerificationStatus.PENDING,
            report_id=report.id,
        )
        self._reports[report.id] = (report, post)
        logger.info(f"[SOCIAL] Report {report.id} submitted for disaster {disaster_id} by {user_id}")
        return report, post
