"""Disaster Hub Services.

Service layer components:
- Cache: TTL cache store (SQL table or Redis) and read-through query helper
- Realtime: WebSocket connection manager for change notifications
- Geocoding: location extraction and gazetteer lookup (mock)
- Disasters: disaster record repository
- Resources: relief resources and radius search
- Social media: mock feed and user reports
- Official updates: agency bulletins and source scraping (stub)
- Verification: image authenticity analysis (mock)
"""

from .cache import (
    CachedResult,
    CacheStore,
    CacheTTL,
    RedisCacheStore,
    SQLCacheStore,
    cached_fetch,
    create_cache_store,
)
from .disasters import DisasterRepository, InMemoryDisasterRepository
from .geocoding import GeocodingService, MockGeocodingService
from .official_updates import OfficialUpdatesService
from .realtime import ConnectionManager, RealtimeEvent
from .resources import ResourceService
from .social_media import SocialMediaService
from .verification import ImageVerifier, MockImageVerifier

__all__ = [
    # Cache
    "CachedResult",
    "CacheStore",
    "CacheTTL",
    "RedisCacheStore",
    "SQLCacheStore",
    "cached_fetch",
    "create_cache_store",
    # Realtime
    "ConnectionManager",
    "RealtimeEvent",
    # Data services
    "DisasterRepository",
    "InMemoryDisasterRepository",
    "GeocodingService",
    "MockGeocodingService",
    "OfficialUpdatesService",
    "ResourceService",
    "SocialMediaService",
    "ImageVerifier",
    "MockImageVerifier",
]
