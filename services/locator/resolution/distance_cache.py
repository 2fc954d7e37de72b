"""
Distance Cache: memoised pairwise distances between neighborhoods.

Distance calculations are delegated to a DistanceProvider (PostGIS or
in-process haversine). PostGIS round-trips are the expensive part of a
resolution run, and the same neighborhood pairs recur across requests, so
one DistanceCache is shared by the whole process.

Key format:  md5(sorted pair of name|city|state|lat|lon)
             (A, B) and (B, A) collide. Moving a neighborhood's centroid
             yields a new key, so stale distances are never served.

Tiers:
  L1  in-process dict, lives as long as the cache instance
  L2  optional Redis, key neighborhood_distance:{md5}, TTL distance_cache_ttl_s

Concurrency:
  Runs on a single event loop. A per-key asyncio.Lock coalesces concurrent
  misses on the same pair, so the provider is called once per pair even
  when two requests race for it. The lock stays registered until its last
  holder or waiter leaves. Dict reads and writes never interleave with each
  other, so a reader sees either no entry or a complete one.

Failure policy:
  ProviderError propagates and nothing is cached. A non-finite distance from
  the provider is a ProviderError. Redis failures degrade to L1-only
  behaviour (logged, never raised).
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
from typing import TYPE_CHECKING, Any

from services.locator.errors import ProviderError
from services.locator.resolution.models import Neighborhood

if TYPE_CHECKING:
    from services.locator.geo.distance import DistanceProvider

logger = logging.getLogger(__name__)

_REDIS_KEY_PREFIX = "neighborhood_distance"
_DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


def _key_element(n: Neighborhood) -> str:
    return "|".join((*n.identity, repr(n.latitude), repr(n.longitude)))


def cache_key(a: Neighborhood, b: Neighborhood) -> str:
    """Order-independent key for a pair of neighborhoods."""
    # sort to ensure we always get the same hash value for the same two keys
    elements = sorted([_key_element(a), _key_element(b)])
    return hashlib.md5("\x1f".join(elements).encode("utf-8")).hexdigest()


def _redis_key(key: str) -> str:
    return f"{_REDIS_KEY_PREFIX}:{key}"


class DistanceCache:
    """
    Memoising wrapper around a DistanceProvider.

    Usage:
        cache = DistanceCache(PostGISDistanceProvider(pool), redis=app.state.redis)
        meters = await cache.distance(downtown, westside)
    """

    def __init__(
        self,
        provider: DistanceProvider,
        redis: Any = None,
        ttl_seconds: int = _DEFAULT_TTL_SECONDS,
    ) -> None:
        """
        Args:
            provider:    Computes the distance on a miss.
            redis:       Async Redis client for the shared L2 tier. May be None.
            ttl_seconds: Expiry for L2 entries.
        """
        self._provider = provider
        self._redis = redis
        self._ttl_seconds = ttl_seconds
        self._entries: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, pair: tuple[Neighborhood, Neighborhood]) -> bool:
        return cache_key(*pair) in self._entries

    def clear(self) -> None:
        """Drop all L1 entries. L2 entries expire on their own."""
        self._entries.clear()

    async def distance(self, a: Neighborhood, b: Neighborhood) -> float:
        """
        Distance in meters between the centroids of two neighborhoods.

        Raises:
            ProviderError: the provider failed on a miss.
        """
        if a.name == b.name and a.coordinates == b.coordinates:
            return 0.0

        key = cache_key(a, b)
        cached = self._entries.get(key)
        if cached is not None:
            return cached

        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                # Another coroutine may have filled the entry while we waited.
                cached = self._entries.get(key)
                if cached is not None:
                    return cached

                cached = await self._l2_get(key)
                if cached is None:
                    logger.debug("Distance cache miss: %s <-> %s", a.name, b.name)
                    cached = await self._provider.distance_meters(a.coordinates, b.coordinates)
                    if not math.isfinite(cached):
                        raise ProviderError(
                            f"Non-finite distance {cached!r} between {a.name} and {b.name}"
                        )
                    await self._l2_set(key, cached)

                self._entries[key] = cached
                return cached
        finally:
            self._lock_users[key] -= 1
            if self._lock_users[key] == 0:
                del self._lock_users[key]
                del self._locks[key]

    async def _l2_get(self, key: str) -> float | None:
        if self._redis is None:
            return None

        try:
            raw = await self._redis.get(_redis_key(key))
        except Exception:
            logger.warning("Distance cache GET failed for key=%s", key, exc_info=True)
            return None

        if raw is None:
            return None
        try:
            meters = float(raw)
        except (TypeError, ValueError):
            meters = math.nan
        if not math.isfinite(meters):
            logger.warning("Discarding malformed distance cache entry key=%s value=%r", key, raw)
            return None
        return meters

    async def _l2_set(self, key: str, meters: float) -> None:
        if self._redis is None:
            return

        try:
            await self._redis.set(_redis_key(key), repr(meters), ex=self._ttl_seconds)
        except Exception:
            logger.warning("Distance cache SET failed for key=%s", key, exc_info=True)
