"""
Minimum-Sum Selector: the node most central to a tied cluster.

For every node the weights of its incident edges are summed; the node with
the smallest sum wins. On an exact tie the first node in graph order wins,
so the result is deterministic for a given input order. Callers should only
rely on getting *a* member of the argmin set.

Time complexity is O(V + E).
"""

from __future__ import annotations

import math

from services.locator.errors import NoNeighborhoodFoundError
from services.locator.resolution.graph import CandidateGraph
from services.locator.resolution.models import Neighborhood


def select_best(graph: CandidateGraph) -> Neighborhood:
    """
    Return the node with the least total distance to all other nodes.

    Raises:
        NoNeighborhoodFoundError: the graph has no nodes.
    """
    if not graph.nodes:
        raise NoNeighborhoodFoundError("Cannot select a neighborhood from an empty graph.")

    if len(graph.nodes) == 1:
        return graph.nodes[0]

    best = graph.nodes[0]
    min_sum = math.inf
    for node in graph.nodes:
        total = graph.incident_sum(node)
        if total < min_sum:
            min_sum = total
            best = node

    return best
