"""
Distance providers: surface distance in meters between two WGS84 points.

PostGISDistanceProvider asks the database (ST_DistanceSphere); it is the
production default because it agrees with the centroids PostGIS computes.
HaversineDistanceProvider is pure math, used when no database is wired in
and in tests. Both raise ProviderError on failure and never retry.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Protocol

from services.locator.errors import ProviderError
from services.locator.resolution.models import Coordinates

logger = logging.getLogger(__name__)

_EARTH_RADIUS_M = 6_371_000.0


class DistanceProvider(Protocol):
    async def distance_meters(self, a: Coordinates, b: Coordinates) -> float: ...


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return _EARTH_RADIUS_M * c


class HaversineDistanceProvider:
    """In-process great-circle distance. No I/O."""

    async def distance_meters(self, a: Coordinates, b: Coordinates) -> float:
        values = (a.latitude, a.longitude, b.latitude, b.longitude)
        if not all(math.isfinite(v) for v in values):
            raise ProviderError(f"Non-finite coordinates: {a} -> {b}")
        return haversine_distance(*values)


class PostGISDistanceProvider:
    """
    Distance via PostGIS.

    See: https://postgis.net/docs/ST_DistanceSphere.html
    """

    _QUERY = """
        SELECT ST_DistanceSphere(
            ST_SetSRID(ST_Point($1, $2), 4326),
            ST_SetSRID(ST_Point($3, $4), 4326)
        ) AS distance_in_meters
    """

    def __init__(self, pool: Any) -> None:
        """
        Args:
            pool: asyncpg pool (or anything exposing fetchval).
        """
        self._pool = pool

    async def distance_meters(self, a: Coordinates, b: Coordinates) -> float:
        try:
            # ST_Point takes (x, y) = (longitude, latitude)
            meters = await self._pool.fetchval(
                self._QUERY,
                a.longitude,
                a.latitude,
                b.longitude,
                b.latitude,
            )
        except Exception as exc:
            logger.warning("ST_DistanceSphere failed for %s -> %s: %s", a, b, exc)
            raise ProviderError(f"Unable to get distance between two coordinates: {exc}") from exc

        if meters is None:
            raise ProviderError(f"ST_DistanceSphere returned NULL for {a} -> {b}")
        return float(meters)


def create_distance_provider(backend: str, pool: Any = None) -> DistanceProvider:
    """Pick a provider for the DISTANCE_BACKEND setting."""
    if backend == "postgis":
        if pool is None:
            logger.warning("DISTANCE_BACKEND=postgis but no DB pool; falling back to haversine")
            return HaversineDistanceProvider()
        return PostGISDistanceProvider(pool)
    if backend == "haversine":
        return HaversineDistanceProvider()
    raise ValueError(f"Unknown distance backend: {backend!r}")
