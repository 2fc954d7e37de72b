"""
AttractionService: enrich a batch of attractions and summarise it.

Flow:
  1. Geocode every attraction ("NAME, CITY, STATE") with bounded concurrency.
     Incomplete addresses, geocoder misses and geocoder errors land in
     failed_attractions; the rest are copied with their coordinates into
     successful_attractions.
  2. For each geocoded attraction, find the containing neighborhood.
     No containing polygon -> excluded from the candidate set.
     SpatialLookupError -> propagated (the whole batch fails).
  3. NeighborhoodResolver picks the best neighborhood for the batch.
     NoNeighborhoodFoundError -> closest_neighborhood stays None.
     ProviderError -> propagated.

Output order always follows input order.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from services.locator.attractions.models import Attraction, EnrichmentResult
from services.locator.errors import (
    GeocodingError,
    MissingAttractionKeyIdentifierError,
    NoNeighborhoodFoundError,
)
from services.locator.resolution.models import Coordinates
from services.locator.resolution.resolver import NeighborhoodResolver

logger = logging.getLogger(__name__)


class AttractionService:
    """
    Attraction batch enrichment.

    Injected dependencies for testability:
      geocoder - NominatimGeocoder (or anything with geocode_attraction)
      store    - NeighborhoodStore (or anything with find_containing)
      resolver - NeighborhoodResolver
    """

    def __init__(
        self,
        geocoder: Any,
        store: Any,
        resolver: NeighborhoodResolver,
        max_concurrency: int = 1,
    ) -> None:
        self._geocoder = geocoder
        self._store = store
        self._resolver = resolver
        self._max_concurrency = max(1, max_concurrency)

    async def _geocode(self, attraction: Attraction, semaphore: asyncio.Semaphore) -> Coordinates | None:
        try:
            async with semaphore:
                return await self._geocoder.geocode_attraction(attraction)
        except MissingAttractionKeyIdentifierError as exc:
            logger.info("Skipping attraction %r: %s", attraction.name, exc)
            return None
        except GeocodingError as exc:
            logger.warning("Geocoding failed for attraction %r: %s", attraction.name, exc)
            return None

    async def enrich(self, attractions: Sequence[Attraction]) -> EnrichmentResult:
        """
        Geocode, locate and summarise a batch of attractions.

        Raises:
            SpatialLookupError: the containment store failed.
            ProviderError: a distance needed for resolution failed.
        """
        result = EnrichmentResult()
        semaphore = asyncio.Semaphore(self._max_concurrency)

        locations = await asyncio.gather(
            *(self._geocode(attraction, semaphore) for attraction in attractions)
        )

        for attraction, location in zip(attractions, locations):
            if location is None:
                result.failed_attractions.append(attraction)
                continue

            located = attraction.with_coordinates(location)
            result.successful_attractions.append(located)

            neighborhood = await self._store.find_containing(location)
            if neighborhood is None or neighborhood.is_empty:
                logger.info("No neighborhood contains attraction %r", attraction.name)
                continue
            result.neighborhoods.append(neighborhood)

        try:
            result.closest_neighborhood = await self._resolver.find_best_neighborhood(
                result.neighborhoods
            )
        except NoNeighborhoodFoundError as exc:
            logger.info("No neighborhood resolved for batch of %d attractions: %s", len(attractions), exc)

        logger.info(
            "Enriched attractions: total=%d geocoded=%d failed=%d neighborhoods=%d best=%s",
            len(attractions),
            len(result.successful_attractions),
            len(result.failed_attractions),
            len(result.neighborhoods),
            result.closest_neighborhood.name if result.closest_neighborhood else None,
        )
        return result
