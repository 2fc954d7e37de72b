#!/usr/bin/env python3
"""
Resolve the best neighborhood for a JSON file of attractions, outside FastAPI.

Usage:
    python3 scripts/resolve_attractions.py attractions.json
    python3 scripts/resolve_attractions.py attractions.json --distance-backend haversine

The input file holds a JSON array of attractions:
    [{"name": "Ferry Building", "city": "San Francisco", "state_or_province_name": "CA"}, ...]

Prints the enrichment result as JSON. Exits 1 on a lookup or provider failure.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import asyncpg

sys.path.insert(0, str(Path(__file__).parent.parent))

from services.locator.attractions.models import Attraction  # noqa: E402
from services.locator.attractions.service import AttractionService  # noqa: E402
from services.locator.config import settings  # noqa: E402
from services.locator.errors import LocatorError  # noqa: E402
from services.locator.geo.distance import create_distance_provider  # noqa: E402
from services.locator.geo.geocoder import NominatimGeocoder  # noqa: E402
from services.locator.geo.spatial import NeighborhoodStore  # noqa: E402
from services.locator.resolution.distance_cache import DistanceCache  # noqa: E402
from services.locator.resolution.resolver import NeighborhoodResolver  # noqa: E402

logger = logging.getLogger("resolve_attractions")


async def run(path: Path, distance_backend: str) -> int:
    attractions = [Attraction(**item) for item in json.loads(path.read_text())]

    pool = await asyncpg.create_pool(settings.database_url, min_size=1, max_size=2)
    geocoder = NominatimGeocoder(
        base_url=settings.nominatim_url,
        user_agent=settings.geocoder_user_agent,
        timeout_s=settings.geocoder_timeout_s,
    )
    try:
        provider = create_distance_provider(distance_backend, pool)
        service = AttractionService(
            geocoder=geocoder,
            store=NeighborhoodStore(pool, provider),
            resolver=NeighborhoodResolver(DistanceCache(provider)),
            max_concurrency=settings.geocoder_max_concurrency,
        )
        try:
            result = await service.enrich(attractions)
        except LocatorError as e:
            logger.error("Resolution failed: %s", e)
            return 1
    finally:
        await geocoder.aclose()
        await pool.close()

    print(json.dumps(result.to_dict(), indent=2))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Resolve the best neighborhood for attractions")
    parser.add_argument("path", type=Path, help="JSON file with an array of attractions")
    parser.add_argument(
        "--distance-backend",
        choices=["postgis", "haversine"],
        default=settings.distance_backend,
    )
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args.path, args.distance_backend))


if __name__ == "__main__":
    sys.exit(main())
