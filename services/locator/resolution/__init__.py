"""
Best-neighborhood resolution engine.

Public API:
    from services.locator.resolution import NeighborhoodResolver, DistanceCache, Neighborhood
"""

from services.locator.resolution.distance_cache import DistanceCache
from services.locator.resolution.models import Coordinates, Neighborhood
from services.locator.resolution.resolver import NeighborhoodResolver

__all__ = ["Coordinates", "DistanceCache", "Neighborhood", "NeighborhoodResolver"]
