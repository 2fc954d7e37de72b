"""Tests for distance providers."""

import math
from unittest.mock import AsyncMock, MagicMock

import pytest

from services.locator.errors import ProviderError
from services.locator.geo.distance import (
    HaversineDistanceProvider,
    PostGISDistanceProvider,
    create_distance_provider,
    haversine_distance,
)
from services.locator.resolution.models import Coordinates

SF = Coordinates(latitude=37.7749, longitude=-122.4194)
LA = Coordinates(latitude=34.0522, longitude=-118.2437)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_distance(SF.latitude, SF.longitude, SF.latitude, SF.longitude) == 0.0

    def test_sf_to_la(self):
        meters = haversine_distance(SF.latitude, SF.longitude, LA.latitude, LA.longitude)
        assert 555_000 < meters < 565_000

    def test_one_degree_latitude(self):
        meters = haversine_distance(0.0, 0.0, 1.0, 0.0)
        assert meters == pytest.approx(111_195, rel=1e-3)

    @pytest.mark.asyncio
    async def test_provider_is_symmetric(self):
        provider = HaversineDistanceProvider()
        assert await provider.distance_meters(SF, LA) == await provider.distance_meters(LA, SF)

    @pytest.mark.asyncio
    async def test_provider_rejects_non_finite(self):
        provider = HaversineDistanceProvider()
        with pytest.raises(ProviderError):
            await provider.distance_meters(SF, Coordinates(latitude=math.nan, longitude=0.0))


class TestPostGIS:
    @pytest.mark.asyncio
    async def test_passes_lon_lat_order(self):
        pool = MagicMock()
        pool.fetchval = AsyncMock(return_value=559_120.5)
        provider = PostGISDistanceProvider(pool)

        meters = await provider.distance_meters(SF, LA)

        assert meters == 559_120.5
        args = pool.fetchval.call_args[0]
        assert "ST_DistanceSphere" in args[0]
        assert args[1:] == (SF.longitude, SF.latitude, LA.longitude, LA.latitude)

    @pytest.mark.asyncio
    async def test_driver_error_becomes_provider_error(self):
        pool = MagicMock()
        pool.fetchval = AsyncMock(side_effect=ConnectionError("connection reset"))
        with pytest.raises(ProviderError):
            await PostGISDistanceProvider(pool).distance_meters(SF, LA)

    @pytest.mark.asyncio
    async def test_null_result_is_provider_error(self):
        pool = MagicMock()
        pool.fetchval = AsyncMock(return_value=None)
        with pytest.raises(ProviderError):
            await PostGISDistanceProvider(pool).distance_meters(SF, LA)


class TestCreateDistanceProvider:
    def test_postgis_with_pool(self):
        assert isinstance(create_distance_provider("postgis", MagicMock()), PostGISDistanceProvider)

    def test_postgis_without_pool_falls_back(self):
        assert isinstance(create_distance_provider("postgis", None), HaversineDistanceProvider)

    def test_haversine(self):
        assert isinstance(create_distance_provider("haversine"), HaversineDistanceProvider)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_distance_provider("vincenty")
