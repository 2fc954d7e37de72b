"""
Spatial containment lookups against the neighborhood polygon store.

Table: neighborhood_geocoding.neighborhoods
  name, city, state, country  text
  geom                        MultiPolygon, SRID 4326

PostGIS functions used:
  ST_Point / ST_SetSRID  - build the attraction point (x = lon, y = lat)
  ST_Contains            - polygon contains point
  ST_Centroid            - representative point of a neighborhood polygon

One attraction can fall inside several overlapping polygons (a district
and a sub-district, say). Each match is reduced to its centroid and the
match whose centroid is closest to the attraction wins.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from services.locator.errors import ProviderError, SpatialLookupError
from services.locator.geo.distance import DistanceProvider
from services.locator.resolution.models import Coordinates, Neighborhood

logger = logging.getLogger(__name__)

_CONTAINING_QUERY = """
    SELECT name, city, state, country
    FROM neighborhood_geocoding.neighborhoods
    WHERE ST_Contains(geom, ST_SetSRID(ST_Point($1, $2), 4326))
"""

_CENTROID_QUERY = """
    SELECT ST_X(centroid) AS longitude, ST_Y(centroid) AS latitude
    FROM (
        SELECT ST_Centroid(geom) AS centroid
        FROM neighborhood_geocoding.neighborhoods
        WHERE name ILIKE $1
          AND city ILIKE $2
          AND state ILIKE $3
        LIMIT 1
    ) AS c
"""


class NeighborhoodStore:
    """
    Point-in-polygon neighborhood lookup.

    Injected dependencies:
      pool              - asyncpg pool
      distance_provider - ranks overlapping matches by centroid distance
    """

    def __init__(self, pool: Any, distance_provider: DistanceProvider) -> None:
        self._pool = pool
        self._distance_provider = distance_provider

    async def centroid(self, name: str, city: str, state: str) -> Coordinates | None:
        """Centroid of a neighborhood's polygon, or None if it is not stored."""
        row = await self._pool.fetchrow(_CENTROID_QUERY, name, city, state)
        if row is None or row["latitude"] is None or row["longitude"] is None:
            return None
        return Coordinates(latitude=float(row["latitude"]), longitude=float(row["longitude"]))

    async def find_containing(self, point: Coordinates) -> Neighborhood | None:
        """
        Resolve the neighborhood containing a point.

        Returns None when no polygon contains it.

        Raises:
            SpatialLookupError: the containment query itself failed.
        """
        try:
            rows = await self._pool.fetch(_CONTAINING_QUERY, point.longitude, point.latitude)
        except Exception as exc:
            logger.exception("Containment query failed for (%f,%f)", point.latitude, point.longitude)
            raise SpatialLookupError(f"Neighborhood lookup failed: {exc}") from exc

        best: Neighborhood | None = None
        min_distance = math.inf
        for row in rows:
            name, city, state = row["name"], row["city"], row["state"]
            try:
                centroid = await self.centroid(name, city, state)
            except Exception:
                logger.warning("Unable to resolve centroid for %s", name, exc_info=True)
                continue
            if centroid is None:
                logger.warning("Unable to resolve centroid for %s", name)
                continue

            try:
                meters = await self._distance_provider.distance_meters(centroid, point)
            except ProviderError as exc:
                logger.warning("Unable to get distance from %s to attraction: %s", name, exc)
                continue

            if meters < min_distance:
                min_distance = meters
                best = Neighborhood(
                    name=name,
                    city=city,
                    state_or_province=state,
                    country=row["country"] or "",
                    latitude=centroid.latitude,
                    longitude=centroid.longitude,
                )

        logger.debug(
            "Containment lookup (%f,%f): matches=%d best=%s",
            point.latitude,
            point.longitude,
            len(rows),
            best.name if best else None,
        )
        return best
