"""Class graph construction from scan results.

Reference sites are folded into a keyed accumulator, so the graph depends
only on which results were merged and never on their order. Builders can
also be combined pairwise (commutative, associative), which lets per-worker
partial graphs be reduced into one.
"""

from __future__ import annotations

from collections import Counter
from functools import reduce
from typing import Iterable

import numpy as np

from ..logging_config import get_logger
from ..scanning.models import ScanResult, Unit
from .models import ClassGraph

logger = get_logger(__name__)


class ClassGraphBuilder:
    """Merges per-artifact reference lists into one ClassGraph."""

    def __init__(self) -> None:
        self._weights: dict[str, int] = {}
        self._counts: Counter[tuple[str, str]] = Counter()
        self._duplicates: set[str] = set()

    def add(self, result: ScanResult) -> None:
        """Merge one scan result.

        A unit seen twice (the same class in two artifacts) keeps the larger
        weight and accumulates the references of both.
        """
        name = result.unit.name
        if name in self._weights:
            self._duplicates.add(name)
        self._weights[name] = max(self._weights.get(name, 0), result.unit.weight)
        for ref in result.references:
            if ref.target != name:
                self._counts[(name, ref.target)] += 1

    def add_all(self, results: Iterable[ScanResult]) -> ClassGraphBuilder:
        for result in results:
            self.add(result)
        return self

    def combine(self, other: ClassGraphBuilder) -> ClassGraphBuilder:
        """Return a new builder holding the merge of both."""
        merged = ClassGraphBuilder()
        merged._counts = self._counts + other._counts
        merged._duplicates = self._duplicates | other._duplicates
        for name in self._weights.keys() | other._weights.keys():
            if name in self._weights and name in other._weights:
                merged._duplicates.add(name)
            merged._weights[name] = max(self._weights.get(name, 0), other._weights.get(name, 0))
        return merged

    @property
    def duplicates(self) -> set[str]:
        """Unit names contributed by more than one artifact."""
        return set(self._duplicates)

    def build(self) -> ClassGraph:
        """Freeze the accumulated state into a ClassGraph.

        References to classes outside the unit set (third-party libraries,
        anything not scanned) are dropped here, once the full set is known.
        """
        units = tuple(Unit(name, weight) for name, weight in sorted(self._weights.items()))
        index = {u.name: i for i, u in enumerate(units)}

        keyed: list[tuple[int, int, int]] = []
        external = 0
        for (source, target), count in self._counts.items():
            if target in index:
                keyed.append((index[source], index[target], count))
            else:
                external += count
        keyed.sort()

        if self._duplicates:
            logger.warning(f"{len(self._duplicates)} classes found in more than one artifact")
        logger.debug(
            f"Class graph: {len(units)} units, {len(keyed)} edges, "
            f"{external} external references dropped"
        )

        return ClassGraph(
            units=units,
            sources=np.array([k[0] for k in keyed], dtype=np.int64),
            targets=np.array([k[1] for k in keyed], dtype=np.int64),
            multiplicities=np.array([k[2] for k in keyed], dtype=np.int64),
        )


def build_class_graph(results: Iterable[ScanResult]) -> ClassGraph:
    """Convenience wrapper: merge all results and build."""
    return ClassGraphBuilder().add_all(results).build()


def reduce_builders(builders: Iterable[ClassGraphBuilder]) -> ClassGraphBuilder:
    """Combine partial builders into one, in any order."""
    return reduce(ClassGraphBuilder.combine, builders, ClassGraphBuilder())
