"""Projection of unit edges onto the components of one level.

Each edge is looked up by the component index of its two endpoints. Edges
whose endpoints share a component are masked out; the rest are summed per
(source component, target component) pair. The work is proportional to the
number of edges, whatever the size of the codebase.
"""

from __future__ import annotations

import numpy as np

from ..graph.models import ClassGraph
from .grouping import Grouping
from .models import ComponentDep


def aggregate_dependencies(graph: ClassGraph, grouping: Grouping) -> tuple[ComponentDep, ...]:
    """Aggregate unit edges into inter-component dependencies.

    Returns:
        Dependencies ordered by (source, target) name; never a self-loop,
        never a zero strength
    """
    if graph.edge_count == 0:
        return ()

    source_group = grouping.unit_group[graph.sources]
    target_group = grouping.unit_group[graph.targets]
    crossing = source_group != target_group
    if not crossing.any():
        return ()

    group_count = len(grouping.group_names)
    keys = source_group[crossing] * group_count + target_group[crossing]
    pairs, inverse = np.unique(keys, return_inverse=True)
    strengths = np.zeros(pairs.shape[0], dtype=np.int64)
    np.add.at(strengths, inverse.ravel(), graph.multiplicities[crossing])

    names = grouping.group_names
    return tuple(
        ComponentDep(
            source=names[pair // group_count],
            target=names[pair % group_count],
            strength=strength,
        )
        for pair, strength in zip(pairs.tolist(), strengths.tolist())
    )
