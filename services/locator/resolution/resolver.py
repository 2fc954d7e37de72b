"""
Resolution Orchestrator: picks the one neighborhood that best summarises a
batch of per-attraction neighborhood matches.

"Best" is defined as:
  a) having the highest occurrence (frequency) in the batch, then
  b) among ties, the least total distance to the other tied neighborhoods.

Stages (linear, no branching back):
  1. FrequencyResolution  resolve_tied_names()
  2. Filtering            keep candidates whose name tied for the max
  3. GraphConstruction    build_candidate_graph() via the shared DistanceCache
  4. Selection            select_best()

All failures propagate unchanged; there is no partial result.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from services.locator.resolution.distance_cache import DistanceCache
from services.locator.resolution.frequency import resolve_tied_names
from services.locator.resolution.graph import build_candidate_graph
from services.locator.resolution.models import Neighborhood
from services.locator.resolution.selector import select_best

logger = logging.getLogger(__name__)


class NeighborhoodResolver:
    """
    Best-neighborhood resolution engine.

    Injected dependencies:
      distance_cache - shared across requests (see DistanceCache docstring)
    """

    def __init__(self, distance_cache: DistanceCache) -> None:
        self._distance_cache = distance_cache

    async def find_best_neighborhood(self, candidates: Sequence[Neighborhood]) -> Neighborhood:
        """
        Resolve the best neighborhood from a candidate set.

        Raises:
            NoNeighborhoodFoundError: no usable candidates.
            ProviderError: a pairwise distance could not be computed.
        """
        usable = [n for n in candidates if not n.is_empty]
        if len(usable) != len(candidates):
            logger.debug("Dropped %d not-found sentinels", len(candidates) - len(usable))

        tied_names = resolve_tied_names(usable)
        tied = [n for n in usable if n.name in tied_names]

        graph = await build_candidate_graph(tied, self._distance_cache)
        best = select_best(graph)

        logger.info(
            "Resolved best neighborhood %r from %d candidates (tied names: %d, nodes: %d)",
            best.name,
            len(usable),
            len(tied_names),
            len(graph.nodes),
        )
        return best
