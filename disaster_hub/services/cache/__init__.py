"""Cache service module.

TTL cache store (SQL table or Redis) and the read-through query helper.
"""

from .query import CachedResult, CacheTTL, cached_fetch
from .service import (
    CacheEntry,
    CacheLookup,
    CacheStatus,
    CacheStore,
    RedisCacheStore,
    SQLCacheStore,
    create_cache_store,
)

__all__ = [
    "CacheEntry",
    "CacheLookup",
    "CacheStatus",
    "CacheStore",
    "RedisCacheStore",
    "SQLCacheStore",
    "create_cache_store",
    "CachedResult",
    "CacheTTL",
    "cached_fetch",
]
