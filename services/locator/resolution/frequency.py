"""
Frequency Resolver: which neighborhood names occur most often in a batch.

Every attraction contributes one neighborhood, so a name that shows up more
often is a stronger signal for "where this batch of attractions is". Ties
are preserved: every name sharing the maximum count is returned so the
caller can disambiguate geographically.

Two neighborhoods with the same name but different city or coordinates are
merged under the name. Empty names are counted like any other name.
"""

from __future__ import annotations

import heapq
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from services.locator.resolution.models import Neighborhood


@dataclass(frozen=True, order=True)
class NameFrequency:
    """A (name, count) pair ordered so the highest count sorts first."""

    sort_key: int = field(init=False, repr=False)
    name: str = field(compare=False)
    count: int = field(compare=False)

    def __post_init__(self) -> None:
        # heapq is a min-heap; negate so the most frequent name pops first.
        object.__setattr__(self, "sort_key", -self.count)


class NameFrequencyHeap:
    """Max-priority queue of NameFrequency pairs, ordered by count."""

    def __init__(self, items: Iterable[NameFrequency] = ()) -> None:
        self._heap: list[NameFrequency] = list(items)
        heapq.heapify(self._heap)

    @classmethod
    def from_table(cls, table: dict[str, int]) -> NameFrequencyHeap:
        return cls(NameFrequency(name=name, count=count) for name, count in table.items())

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, item: NameFrequency) -> None:
        heapq.heappush(self._heap, item)

    def pop(self) -> NameFrequency:
        return heapq.heappop(self._heap)

    def peek(self) -> NameFrequency:
        return self._heap[0]


def build_frequency_table(candidates: Sequence[Neighborhood]) -> dict[str, int]:
    """Count occurrences of each neighborhood name."""
    return dict(Counter(n.name for n in candidates))


def names_with_max_frequency(heap: NameFrequencyHeap) -> set[str]:
    """
    Drain the heap while counts equal the maximum.

    Example: {"Downtown": 4, "Southside": 4, "East Bay": 1}
             -> {"Downtown", "Southside"}
    """
    if not heap:
        return set()

    max_count = heap.peek().count
    names: set[str] = set()
    while heap and heap.peek().count == max_count:
        names.add(heap.pop().name)
    return names


def resolve_tied_names(candidates: Sequence[Neighborhood]) -> set[str]:
    """Return every neighborhood name tied for the highest occurrence."""
    table = build_frequency_table(candidates)
    return names_with_max_frequency(NameFrequencyHeap.from_table(table))
