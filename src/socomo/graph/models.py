"""Unit-level dependency graph.

Units live in a name-sorted array; edges are parallel index arrays
(source, target, multiplicity) keyed by the ordered unit pair. No edge
appears twice and no edge is a self-loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator

import numpy as np

from ..scanning.models import Unit


@dataclass(frozen=True)
class UnitEdge:
    """A directed reference between two distinct units."""

    source: str
    target: str
    multiplicity: int = 1


@dataclass(frozen=True, eq=False)
class ClassGraph:
    """Immutable directed multigraph over the units of one codebase."""

    units: tuple[Unit, ...]
    sources: np.ndarray
    targets: np.ndarray
    multiplicities: np.ndarray
    _index: dict[str, int] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        for array in (self.sources, self.targets, self.multiplicities):
            array.setflags(write=False)
        object.__setattr__(self, "_index", {u.name: i for i, u in enumerate(self.units)})

    @classmethod
    def from_edges(cls, units: list[Unit], edges: list[UnitEdge]) -> ClassGraph:
        """Build a graph directly from units and already-merged edges."""
        ordered = tuple(sorted(units, key=lambda u: u.name))
        index = {u.name: i for i, u in enumerate(ordered)}
        keyed = sorted((index[e.source], index[e.target], e.multiplicity) for e in edges)
        return cls(
            units=ordered,
            sources=np.array([k[0] for k in keyed], dtype=np.int64),
            targets=np.array([k[1] for k in keyed], dtype=np.int64),
            multiplicities=np.array([k[2] for k in keyed], dtype=np.int64),
        )

    @property
    def unit_names(self) -> list[str]:
        return [u.name for u in self.units]

    @property
    def unit_count(self) -> int:
        return len(self.units)

    @property
    def edge_count(self) -> int:
        return int(self.sources.shape[0])

    @property
    def total_weight(self) -> int:
        return sum(u.weight for u in self.units)

    def index_of(self, name: str) -> int:
        return self._index[name]

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def edges(self) -> Iterator[UnitEdge]:
        names = self.unit_names
        for s, t, m in zip(self.sources.tolist(), self.targets.tolist(), self.multiplicities.tolist()):
            yield UnitEdge(source=names[s], target=names[t], multiplicity=m)

    def multiplicity(self, source: str, target: str) -> int:
        """Multiplicity of the edge source -> target, 0 if absent."""
        if source not in self._index or target not in self._index:
            return 0
        mask = (self.sources == self._index[source]) & (self.targets == self._index[target])
        return int(self.multiplicities[mask].sum())
