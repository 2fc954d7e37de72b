"""
Tests for DistanceCache.

Covers:
- Symmetric keys
- Provider called once per unordered pair (call-counting stub)
- Failures propagate and are not cached
- Self-distance short circuit
- Redis L2 tier hit/miss/degradation
- Concurrent misses on the same pair coalesce
- Coordinates are part of the key
- Non-finite distances are rejected
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from services.locator.errors import ProviderError
from services.locator.resolution.distance_cache import DistanceCache, cache_key
from services.locator.tests.conftest import (
    CountingDistanceProvider,
    make_neighborhood,
    pair,
)

DOWNTOWN = make_neighborhood("Downtown", latitude=37.7946, longitude=-122.3999)
MISSION = make_neighborhood("Mission", latitude=37.7599, longitude=-122.4148)


class TestCacheKey:
    def test_symmetric(self):
        assert cache_key(DOWNTOWN, MISSION) == cache_key(MISSION, DOWNTOWN)

    def test_distinct_pairs_differ(self):
        other = make_neighborhood("Marina")
        assert cache_key(DOWNTOWN, MISSION) != cache_key(DOWNTOWN, other)

    def test_city_is_part_of_identity(self):
        oakland_downtown = make_neighborhood("Downtown", city="Oakland")
        assert cache_key(DOWNTOWN, MISSION) != cache_key(oakland_downtown, MISSION)

    def test_coordinates_are_part_of_key(self):
        moved = make_neighborhood("Mission", latitude=37.70, longitude=-122.40)
        assert cache_key(DOWNTOWN, MISSION) != cache_key(DOWNTOWN, moved)


class TestDistance:
    @pytest.mark.asyncio
    async def test_symmetric_distance(self, provider):
        cache = DistanceCache(provider)
        assert await cache.distance(DOWNTOWN, MISSION) == await cache.distance(MISSION, DOWNTOWN)

    @pytest.mark.asyncio
    async def test_provider_called_once_per_pair(self, provider):
        cache = DistanceCache(provider)
        for _ in range(3):
            await cache.distance(DOWNTOWN, MISSION)
            await cache.distance(MISSION, DOWNTOWN)
        assert provider.call_count == 1
        assert len(cache) == 1
        assert (MISSION, DOWNTOWN) in cache

    @pytest.mark.asyncio
    async def test_uses_provider_value(self):
        provider = CountingDistanceProvider(fixed={pair(DOWNTOWN, MISSION): 1234.5})
        cache = DistanceCache(provider)
        assert await cache.distance(DOWNTOWN, MISSION) == 1234.5

    @pytest.mark.asyncio
    async def test_self_distance_is_zero_without_provider_call(self, provider):
        cache = DistanceCache(provider)
        assert await cache.distance(DOWNTOWN, DOWNTOWN) == 0.0
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_failure_propagates_and_is_not_cached(self):
        provider = CountingDistanceProvider(failing={pair(DOWNTOWN, MISSION)})
        cache = DistanceCache(provider)

        with pytest.raises(ProviderError):
            await cache.distance(DOWNTOWN, MISSION)
        assert len(cache) == 0

        provider.failing.clear()
        await cache.distance(DOWNTOWN, MISSION)
        assert provider.call_count == 2

    @pytest.mark.asyncio
    async def test_clear_forces_recompute(self, provider):
        cache = DistanceCache(provider)
        await cache.distance(DOWNTOWN, MISSION)
        cache.clear()
        await cache.distance(DOWNTOWN, MISSION)
        assert provider.call_count == 2

    @pytest.mark.asyncio
    async def test_concurrent_misses_call_provider_once(self):
        class SlowProvider(CountingDistanceProvider):
            async def distance_meters(self, a, b):
                await asyncio.sleep(0.01)
                return await super().distance_meters(a, b)

        provider = SlowProvider()
        cache = DistanceCache(provider)
        results = await asyncio.gather(
            *(cache.distance(DOWNTOWN, MISSION) for _ in range(5)),
            *(cache.distance(MISSION, DOWNTOWN) for _ in range(5)),
        )
        assert provider.call_count == 1
        assert len(set(results)) == 1

    @pytest.mark.asyncio
    async def test_same_name_different_coordinates_not_shared(self, provider):
        origin = make_neighborhood("Downtown", latitude=0.0, longitude=0.0)
        near = make_neighborhood("Downtown", latitude=0.0, longitude=1.0)
        far = make_neighborhood("Downtown", latitude=0.0, longitude=50.0)
        cache = DistanceCache(provider)

        near_m = await cache.distance(origin, near)
        far_m = await cache.distance(origin, far)
        assert provider.call_count == 2
        assert far_m == pytest.approx(5_559_746, rel=1e-3)
        assert far_m > near_m

    @pytest.mark.asyncio
    async def test_moved_centroid_is_recomputed(self, provider):
        x = make_neighborhood("X", latitude=0.0, longitude=0.0)
        y = make_neighborhood("Y", latitude=0.0, longitude=1.0)
        y_moved = make_neighborhood("Y", latitude=0.0, longitude=90.0)
        cache = DistanceCache(provider)

        await cache.distance(x, y)
        meters = await cache.distance(x, y_moved)
        assert meters == pytest.approx(10_007_543, rel=1e-3)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad", [float("nan"), float("inf")])
    async def test_non_finite_distance_is_provider_error(self, bad):
        provider = CountingDistanceProvider(fixed={pair(DOWNTOWN, MISSION): bad})
        cache = DistanceCache(provider)

        with pytest.raises(ProviderError):
            await cache.distance(DOWNTOWN, MISSION)
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_waiters_keep_lock_after_failed_holder(self):
        gate = asyncio.Event()

        class GatedProvider(CountingDistanceProvider):
            async def distance_meters(self, a, b):
                call = self.call_count
                self.calls.append((a, b))
                if call == 0:
                    await gate.wait()
                    raise ProviderError("first call fails")
                await asyncio.sleep(0.01)
                return 42.0

        provider = GatedProvider()
        cache = DistanceCache(provider)

        first = asyncio.create_task(cache.distance(DOWNTOWN, MISSION))
        waiter = asyncio.create_task(cache.distance(DOWNTOWN, MISSION))
        await asyncio.sleep(0)
        gate.set()
        with pytest.raises(ProviderError):
            await first

        # Arrives while the waiter is retrying; must share its lock.
        latecomer = asyncio.create_task(cache.distance(MISSION, DOWNTOWN))
        assert await waiter == 42.0
        assert await latecomer == 42.0
        assert provider.call_count == 2
        assert cache._locks == {}


class TestRedisTier:
    @pytest.mark.asyncio
    async def test_miss_writes_through_with_ttl(self, provider, fake_redis):
        cache = DistanceCache(provider, redis=fake_redis, ttl_seconds=60)
        meters = await cache.distance(DOWNTOWN, MISSION)

        key = f"neighborhood_distance:{cache_key(DOWNTOWN, MISSION)}"
        assert float(fake_redis.store[key]) == meters
        assert fake_redis.ttls[key] == 60

    @pytest.mark.asyncio
    async def test_shared_redis_entry_skips_provider(self, fake_redis):
        first = DistanceCache(CountingDistanceProvider(), redis=fake_redis)
        await first.distance(DOWNTOWN, MISSION)

        provider = CountingDistanceProvider()
        second = DistanceCache(provider, redis=fake_redis)
        await second.distance(MISSION, DOWNTOWN)
        assert provider.call_count == 0

    @pytest.mark.asyncio
    async def test_redis_failure_degrades_to_provider(self, provider):
        redis = AsyncMock()
        redis.get = AsyncMock(side_effect=ConnectionError("Redis down"))
        redis.set = AsyncMock(side_effect=ConnectionError("Redis down"))
        cache = DistanceCache(provider, redis=redis)

        meters = await cache.distance(DOWNTOWN, MISSION)
        assert meters > 0
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_malformed_entry_is_ignored(self, provider, fake_redis):
        key = f"neighborhood_distance:{cache_key(DOWNTOWN, MISSION)}"
        fake_redis.store[key] = "not-a-number"
        cache = DistanceCache(provider, redis=fake_redis)

        await cache.distance(DOWNTOWN, MISSION)
        assert provider.call_count == 1

    @pytest.mark.asyncio
    async def test_non_finite_entry_is_ignored(self, provider, fake_redis):
        key = f"neighborhood_distance:{cache_key(DOWNTOWN, MISSION)}"
        fake_redis.store[key] = "nan"
        cache = DistanceCache(provider, redis=fake_redis)

        meters = await cache.distance(DOWNTOWN, MISSION)
        assert meters > 0
        assert provider.call_count == 1
