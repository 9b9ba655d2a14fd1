"""Cache store implementation.

This module provides an abstract cache store interface with two concrete
backends: a SQL table (default) and Redis. Both keep a ``(key, value,
expires_at)`` triple per entry and share the same contract:

- ``get`` never returns an expired value. An expired entry found on read is
  deleted on the spot (lazy expiry).
- ``set`` replaces both value and expiry of an existing key (upsert).
- ``cleanup`` removes every entry whose expiry has passed, read or not.
- No operation raises. Storage errors are logged and turned into a miss
  (reads) or ``False`` (writes), so the cache stays a pure optimization.
"""

import base64
import json
import logging
import math
import re
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Optional, TypeVar
from urllib.parse import quote

import redis.asyncio as redis
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import Column, DateTime, Text, delete
from sqlalchemy.pool import StaticPool
from sqlmodel import Field, Session, SQLModel, create_engine

from disaster_hub.models import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600

Clock = Callable[[], datetime]

T = TypeVar("T")

# Deletes KEYS[1] only while it still holds ARGV[1]
_COMPARE_AND_DELETE = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
end
return 0
"""


class CacheStatus(str, Enum):
    """Outcome of a cache lookup."""

    HIT = "hit"
    MISS = "miss"
    ERROR = "error"


@dataclass(frozen=True)
class CacheLookup:
    """Result of ``CacheStore.lookup``.

    A storage error is reported as ``ERROR`` but carries no value, so callers
    that only look at ``value`` treat it exactly like a miss.
    """

    status: CacheStatus
    value: Any = None

    @property
    def hit(self) -> bool:
        return self.status is CacheStatus.HIT


class CacheEntry(SQLModel, table=True):
    """One row of the ``cache`` table.

    ``value`` holds JSON text. ``expires_at`` is naive UTC; the column type is
    declared explicitly so every SQLModel version stores it the same way.
    """

    __tablename__ = "cache"

    key: str = Field(primary_key=True)
    value: str = Field(sa_column=Column(Text, nullable=False))
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=False), index=True, nullable=False)
    )


def _normalize_name(text: str) -> str:
    """Lower-case with runs of whitespace collapsed to one space."""
    return " ".join(text.lower().split())


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")


def _glob_escape(text: str) -> str:
    """Escape Redis glob metacharacters so ``text`` matches literally."""
    return re.sub(r"([*?\[\]\\])", r"\\\1", text)


class CacheStore(ABC):
    """Abstract base class for TTL cache stores.

    Defines get/set/delete/clear/cleanup plus static builders for the cache
    keys used by the API. A key must encode every request parameter that
    changes the cached answer.
    """

    def __init__(
        self,
        default_ttl: int = DEFAULT_TTL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        self._default_ttl = default_ttl
        self._clock = clock or utc_now

    def _now(self) -> datetime:
        """Current time as a naive UTC datetime (what the table stores)."""
        return self._clock().astimezone(timezone.utc).replace(tzinfo=None)

    def _expires_at(self, ttl_seconds: float | None) -> datetime:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        return self._now() + timedelta(seconds=ttl)

    @property
    def default_ttl(self) -> int:
        """Get the default TTL in seconds."""
        return self._default_ttl

    @abstractmethod
    async def lookup(self, key: str) -> CacheLookup:
        """Look up a key and report hit, miss or storage error."""
        pass

    async def get(self, key: str) -> Any | None:
        """Retrieve a cached value by key.

        Args:
            key: The cache key to look up.

        Returns:
            The cached value, or None when absent, expired or unreadable.
        """
        return (await self.lookup(key)).value

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> bool:
        """Store a JSON-serializable value with a TTL.

        Args:
            key: The cache key to store under.
            value: The value to cache.
            ttl_seconds: Time-to-live in seconds. Uses the default when None.
                Zero or negative stores an already-expired entry.

        Returns:
            True on success, False if the backend failed.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Deleting an absent key succeeds."""
        pass

    @abstractmethod
    async def invalidate(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed, 0 on storage failure.
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """Delete every entry."""
        pass

    @abstractmethod
    async def cleanup(self) -> bool:
        """Delete every entry whose expiry has passed."""
        pass

    async def close(self) -> None:
        """Release backend resources."""

    # Key builders

    @staticmethod
    def build_geocode_key(location_name: str) -> str:
        """Key for geocoded coordinates of a location name.

        Names that geocode alike share a key; the name is percent-encoded so
        distinct names never collide.

        Example:
            >>> CacheStore.build_geocode_key("Lower  East Side")
            'geocode:lower%20east%20side'
        """
        return f"geocode:{quote(_normalize_name(location_name), safe='')}"

    @staticmethod
    def build_location_extraction_key(description: str) -> str:
        """Key for the location extracted from a free-text description."""
        return f"location_extraction:{_b64(description)}"

    @staticmethod
    def build_resources_key(
        disaster_id: str,
        lat: float,
        lng: float,
        radius_km: float,
        resource_type: Optional[str],
        status: str,
    ) -> str:
        """Key for a nearby-resources query.

        Coordinates and radius are normalised through ``float`` so ``10`` and
        ``10.0`` share an entry.
        """
        type_part = resource_type.lower() if resource_type else "all"
        return (
            f"{CacheStore.build_resources_prefix(disaster_id)}{float(lat)}:{float(lng)}:"
            f"{float(radius_km)}:{type_part}:{status.lower()}"
        )

    @staticmethod
    def build_resources_prefix(disaster_id: str) -> str:
        """Prefix shared by every nearby-resources key of a disaster."""
        return f"resources:{disaster_id}:"

    @staticmethod
    def build_social_media_prefix(disaster_id: str) -> str:
        return f"social_media:{disaster_id}:"

    @staticmethod
    def build_social_media_key(disaster_id: str, limit: int) -> str:
        return f"{CacheStore.build_social_media_prefix(disaster_id)}{limit}"

    @staticmethod
    def build_official_updates_prefix(disaster_id: str) -> str:
        """Prefix shared by every official-updates key of a disaster."""
        return f"official_updates:{disaster_id}:"

    @staticmethod
    def build_official_updates_key(
        disaster_id: str, priority: Optional[str], category: Optional[str], limit: int
    ) -> str:
        return (
            f"{CacheStore.build_official_updates_prefix(disaster_id)}"
            f"{(priority or 'all').lower()}:{(category or 'all').lower()}:{limit}"
        )

    @staticmethod
    def build_image_verification_key(image_url: str) -> str:
        return f"image_verification:{_b64(image_url.strip())}"


class SQLCacheStore(CacheStore):
    """Cache store backed by the ``cache`` table through SQLModel.

    Works with any SQLAlchemy URL. Session work runs in the threadpool so a
    database round trip never blocks the event loop. In-memory SQLite shares
    one connection so every session sees the same database; access to it is
    serialized.
    """

    def __init__(
        self,
        database_url: str = "sqlite:///./disaster_hub.db",
        default_ttl: int = DEFAULT_TTL_SECONDS,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(default_ttl=default_ttl, clock=clock)
        self._database_url = database_url
        self._lock = None

        engine_kwargs: dict[str, Any] = {"echo": False}
        if database_url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in ("sqlite://", "sqlite:///:memory:"):
                engine_kwargs["poolclass"] = StaticPool
                self._lock = threading.Lock()
        self._engine = create_engine(database_url, **engine_kwargs)
        SQLModel.metadata.create_all(self._engine, tables=[CacheEntry.__table__])

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        """Run blocking session work off the event loop."""

        def locked() -> T:
            with self._lock or nullcontext():
                return fn(*args)

        return await run_in_threadpool(locked)

    def _lookup_sync(self, key: str, now: datetime) -> CacheLookup:
        with Session(self._engine) as session:
            entry = session.get(CacheEntry, key)
            if entry is None:
                return CacheLookup(CacheStatus.MISS)

            if now >= entry.expires_at:
                # Conditional so a value written since the read survives
                session.execute(
                    delete(CacheEntry)
                    .where(CacheEntry.key == key)
                    .where(CacheEntry.expires_at <= now)
                )
                session.commit()
                logger.debug(f"[CACHE] Expired entry removed: {key}")
                return CacheLookup(CacheStatus.MISS)

            return CacheLookup(CacheStatus.HIT, json.loads(entry.value))

    def _set_sync(self, key: str, payload: str, expires_at: datetime) -> None:
        with Session(self._engine) as session:
            entry = session.get(CacheEntry, key)
            if entry is None:
                entry = CacheEntry(key=key, value=payload, expires_at=expires_at)
            else:
                entry.value = payload
                entry.expires_at = expires_at
            session.add(entry)
            session.commit()

    def _delete_where_sync(self, *conditions: Any) -> int:
        with Session(self._engine) as session:
            result = session.execute(delete(CacheEntry).where(*conditions))
            session.commit()
            return result.rowcount

    async def lookup(self, key: str) -> CacheLookup:
        try:
            result = await self._run(self._lookup_sync, key, self._now())
        except Exception as e:
            logger.error(f"[CACHE] Get error for key {key}: {e}")
            return CacheLookup(CacheStatus.ERROR)

        if result.hit:
            logger.debug(f"[CACHE] Hit for key: {key}")
        return result

    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> bool:
        try:
            payload = json.dumps(value)
            expires_at = self._expires_at(ttl_seconds)
            await self._run(self._set_sync, key, payload, expires_at)
        except Exception as e:
            logger.error(f"[CACHE] Set error for key {key}: {e}")
            return False

        logger.debug(f"[CACHE] Set key: {key}, expires at {expires_at.isoformat()}")
        return True

    async def delete(self, key: str) -> bool:
        try:
            await self._run(self._delete_where_sync, CacheEntry.key == key)
        except Exception as e:
            logger.error(f"[CACHE] Delete error for key {key}: {e}")
            return False

        logger.debug(f"[CACHE] Deleted key: {key}")
        return True

    async def invalidate(self, prefix: str) -> int:
        try:
            removed = await self._run(
                self._delete_where_sync, CacheEntry.key.startswith(prefix, autoescape=True)
            )
        except Exception as e:
            logger.error(f"[CACHE] Invalidate error for prefix {prefix}: {e}")
            return 0

        logger.debug(f"[CACHE] Invalidated {removed} keys under {prefix}")
        return removed

    async def clear(self) -> bool:
        try:
            await self._run(self._delete_where_sync)
        except Exception as e:
            logger.error(f"[CACHE] Clear error: {e}")
            return False

        logger.info("[CACHE] Cleared")
        return True

    async def cleanup(self) -> bool:
        try:
            removed = await self._run(
                self._delete_where_sync, CacheEntry.expires_at <= self._now()
            )
        except Exception as e:
            logger.error(f"[CACHE] Cleanup error: {e}")
            return False

        logger.info(f"[CACHE] Cleanup removed {removed} expired entries")
        return True

    async def close(self) -> None:
        self._engine.dispose()


class RedisCacheStore(CacheStore):
    """Redis-based implementation of the cache store.

    Each key holds a JSON envelope ``{"value": ..., "expires_at": iso}``. The
    envelope decides expiry so the store behaves like the SQL backend; Redis
    native expiry is set too, as garbage collection for keys never read again.

    Attributes:
        _client: The Redis async client instance.
        _prefix: Namespace prepended to every key.
    """

    SCAN_COUNT = 100

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        default_ttl: int = DEFAULT_TTL_SECONDS,
        prefix: str = "disaster_hub:cache:",
        clock: Clock | None = None,
        client: redis.Redis | None = None,
    ) -> None:
        super().__init__(default_ttl=default_ttl, clock=clock)
        self._redis_url = redis_url
        self._prefix = prefix
        self._client = client

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    def _full_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def _is_expired(self, envelope: dict, now: datetime) -> bool:
        return now >= datetime.fromisoformat(envelope["expires_at"])

    async def _scan_keys(self, client: redis.Redis, prefix: str = "") -> list[str]:
        # SCAN is safer than KEYS for large datasets
        pattern = _glob_escape(f"{self._prefix}{prefix}") + "*"
        keys: list[str] = []
        cursor = 0
        while True:
            cursor, batch = await client.scan(cursor=cursor, match=pattern, count=self.SCAN_COUNT)
            keys.extend(batch)
            if cursor == 0:
                break
        return keys

    async def lookup(self, key: str) -> CacheLookup:
        try:
            client = await self._ensure_connected()
            raw = await client.get(self._full_key(key))
            if raw is None:
                return CacheLookup(CacheStatus.MISS)

            envelope = json.loads(raw)
            if self._is_expired(envelope, self._now()):
                # Conditional so a value written since the read survives
                await client.eval(_COMPARE_AND_DELETE, 1, self._full_key(key), raw)
                logger.debug(f"[CACHE] Expired entry removed: {key}")
                return CacheLookup(CacheStatus.MISS)
        except Exception as e:
            logger.error(f"[CACHE] Get error for key {key}: {e}")
            return CacheLookup(CacheStatus.ERROR)

        logger.debug(f"[CACHE] Hit for key: {key}")
        return CacheLookup(CacheStatus.HIT, envelope["value"])

    async def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> bool:
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        try:
            client = await self._ensure_connected()
            envelope = {
                "value": value,
                "expires_at": self._expires_at(ttl).isoformat(),
            }
            # Redis rejects non-positive expiry; the envelope still marks it expired
            await client.set(
                self._full_key(key), json.dumps(envelope), ex=max(1, math.ceil(ttl))
            )
        except Exception as e:
            logger.error(f"[CACHE] Set error for key {key}: {e}")
            return False

        logger.debug(f"[CACHE] Set key: {key}, TTL: {ttl}s")
        return True

    async def delete(self, key: str) -> bool:
        try:
            client = await self._ensure_connected()
            await client.delete(self._full_key(key))
        except Exception as e:
            logger.error(f"[CACHE] Delete error for key {key}: {e}")
            return False
        return True

    async def invalidate(self, prefix: str) -> int:
        try:
            client = await self._ensure_connected()
            keys = await self._scan_keys(client, prefix)
            deleted = await client.delete(*keys) if keys else 0
        except Exception as e:
            logger.error(f"[CACHE] Invalidate error for prefix {prefix}: {e}")
            return 0
        return deleted

    async def clear(self) -> bool:
        try:
            client = await self._ensure_connected()
            keys = await self._scan_keys(client)
            if keys:
                await client.delete(*keys)
        except Exception as e:
            logger.error(f"[CACHE] Clear error: {e}")
            return False

        logger.info(f"[CACHE] Cleared {len(keys)} entries")
        return True

    async def cleanup(self) -> bool:
        try:
            client = await self._ensure_connected()
            now = self._now()
            removed = 0
            for full_key in await self._scan_keys(client):
                raw = await client.get(full_key)
                if raw is not None and self._is_expired(json.loads(raw), now):
                    removed += await client.eval(_COMPARE_AND_DELETE, 1, full_key, raw)
        except Exception as e:
            logger.error(f"[CACHE] Cleanup error: {e}")
            return False

        logger.info(f"[CACHE] Cleanup removed {removed} expired entries")
        return True


def create_cache_store(
    backend: str = "sql",
    database_url: str = "sqlite:///./disaster_hub.db",
    redis_url: str = "redis://localhost:6379",
    default_ttl: int = DEFAULT_TTL_SECONDS,
) -> CacheStore:
    """Create the cache store for the configured backend."""
    if backend == "redis":
        logger.info(f"[CACHE] Using Redis backend at {redis_url}")
        return RedisCacheStore(redis_url=redis_url, default_ttl=default_ttl)
    if backend != "sql":
        raise ValueError(f"Unknown cache backend: {backend!r}. Use 'sql' or 'redis'.")
    logger.info("[CACHE] Using SQL backend")
    return SQLCacheStore(database_url=database_url, default_ttl=default_ttl)
