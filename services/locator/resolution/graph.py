"""
Candidate Graph Builder.

Nodes are the distinct neighborhoods in a tie group; edges connect every
pair of nodes, weighted by the distance between their centroids. Each
unordered pair is stored as two directed edges so incident sums can be read
straight off a node's edge list. No self-edges.

With N nodes this costs N*(N-1)/2 distance lookups on a cold cache. N is
bounded by the number of attractions in one request, so that is fine.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from services.locator.resolution.distance_cache import DistanceCache
from services.locator.resolution.models import Neighborhood

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Edge:
    """A directed connection between two neighborhood nodes."""

    source: Neighborhood
    target: Neighborhood
    distance_meters: float


@dataclass
class CandidateGraph:
    """Complete graph over tied neighborhoods."""

    nodes: list[Neighborhood] = field(default_factory=list)
    edges: dict[Neighborhood, list[Edge]] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        """Number of undirected edges."""
        return sum(len(out) for out in self.edges.values()) // 2

    def add_node(self, node: Neighborhood) -> None:
        self.nodes.append(node)
        self.edges.setdefault(node, [])

    def connect(self, a: Neighborhood, b: Neighborhood, distance_meters: float) -> None:
        self.edges.setdefault(a, []).append(Edge(a, b, distance_meters))
        self.edges.setdefault(b, []).append(Edge(b, a, distance_meters))

    def incident_sum(self, node: Neighborhood) -> float:
        """Total distance from node to every other node."""
        return sum(edge.distance_meters for edge in self.edges.get(node, ()))


def distinct_neighborhoods(neighborhoods: Sequence[Neighborhood]) -> list[Neighborhood]:
    """Drop repeats, keeping first-seen order."""
    return list(dict.fromkeys(neighborhoods))


async def build_candidate_graph(
    tied: Sequence[Neighborhood],
    cache: DistanceCache,
) -> CandidateGraph:
    """
    Build the complete graph over the distinct members of a tie group.

    Raises:
        ProviderError: a distance could not be computed.
    """
    graph = CandidateGraph()
    for node in distinct_neighborhoods(tied):
        graph.add_node(node)

    for i, source in enumerate(graph.nodes):
        for target in graph.nodes[i + 1:]:
            meters = await cache.distance(source, target)
            graph.connect(source, target, meters)

    logger.debug(
        "Built candidate graph: nodes=%d edges=%d (from %d tied entries)",
        len(graph.nodes),
        graph.edge_count,
        len(tied),
    )
    return graph
