"""Official updates service module."""

from .service import OFFICIAL_SOURCES, OfficialUpdatesService, scrape_official_website

__all__ = ["OFFICIAL_SOURCES", "OfficialUpdatesService", "scrape_official_website"]
