"""Read-through caching for API queries.

Every cached endpoint follows the same steps: build a key from all request
parameters, return the stored value on a hit, otherwise compute, store with
an endpoint-specific TTL and return.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .service import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheTTL:
    """TTL in seconds per cached endpoint."""

    GEOCODE = 3600
    LOCATION_EXTRACTION = 3600
    RESOURCES = 1800
    SOCIAL_MEDIA = 1800
    SOCIAL_MEDIA_REALTIME = 300
    OFFICIAL_UPDATES = 1800
    OFFICIAL_UPDATES_FRESH = 600
    IMAGE_VERIFICATION = 7200


@dataclass
class CachedResult(Generic[T]):
    """A query result and whether it came from the cache."""

    value: T
    cached: bool


async def cached_fetch(
    cache: CacheStore,
    key: str,
    compute: Callable[[], Awaitable[T]],
    ttl_seconds: float,
    bypass_cache: bool = False,
) -> CachedResult[T]:
    """Return the cached value for ``key`` or compute and store it.

    Args:
        cache: Store to read from and write to.
        key: Deterministic key covering every parameter of the query.
        compute: Coroutine factory producing the fresh value. Not called on a hit.
        ttl_seconds: TTL for a freshly computed value.
        bypass_cache: Skip the read (still writes), for "fresh"/"realtime" requests.

    Returns:
        The value and a flag telling whether it was served from the cache.
        A failed cache write is logged by the store and otherwise ignored.
    """
    if not bypass_cache:
        cached: Any = await cache.get(key)
        if cached is not None:
            logger.debug(f"[QUERY] Cache HIT for {key}")
            return CachedResult(value=cached, cached=True)

    logger.debug(f"[QUERY] Cache MISS for {key}")
    value = await compute()
    if value is not None:
        await cache.set(key, value, ttl_seconds=ttl_seconds)
    return CachedResult(value=value, cached=False)
