"""Grouping units into components at one granularity.

A grouping rule is any callable ``unit name -> group name`` with a ``name``
attribute. The built-in rule truncates the dotted class name to a package
depth, which is how the candidate levels of a codebase are produced:

    depth 1: app                      (everything under the root)
    depth 2: web, service             (first package below the root)
    depth 3: web.Controller, ...      (single classes)

The root package shared by every unit is stripped from group names so that
components read as ``web`` rather than ``com.acme.app.web``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol, Sequence

import numpy as np

from ..exceptions import InvalidGroupingRuleError
from ..graph.models import ClassGraph
from .models import Component


class GroupingRule(Protocol):
    """Pure function mapping a unit name to the name of its group."""

    @property
    def name(self) -> str: ...

    def __call__(self, unit_name: str) -> str: ...


@dataclass(frozen=True)
class PackageDepthRule:
    """Truncate the unit name to ``depth`` segments, then strip ``root``."""

    depth: int
    root: str = ""

    def __post_init__(self) -> None:
        if self.depth < 1:
            raise ValueError("depth must be at least 1")

    @property
    def name(self) -> str:
        return f"depth {self.depth}"

    def __call__(self, unit_name: str) -> str:
        group = ".".join(unit_name.split(".")[: self.depth])
        if self.root and group.startswith(self.root + "."):
            return group[len(self.root) + 1 :]
        return group


@dataclass
class Grouping:
    """Result of applying one rule to every unit of a graph.

    ``unit_group[i]`` is the index into ``group_names`` (sorted) of the group
    that unit ``i`` of the graph belongs to.
    """

    rule_name: str
    group_names: list[str]
    unit_group: np.ndarray
    components: tuple[Component, ...]


def root_package(unit_names: Iterable[str]) -> str:
    """Longest dotted package prefix shared by every unit ("" if none).

    >>> root_package(["app.web.Controller", "app.service.UserService"])
    'app'
    """
    common: list[str] | None = None
    for name in unit_names:
        package = name.split(".")[:-1]
        if common is None:
            common = package
            continue
        size = 0
        for a, b in zip(common, package):
            if a != b:
                break
            size += 1
        common = common[:size]
        if not common:
            break
    return ".".join(common or [])


def candidate_depths(unit_names: Iterable[str]) -> list[int]:
    """Every depth from 1 to the deepest unit name; empty for no units."""
    deepest = max((len(name.split(".")) for name in unit_names), default=0)
    return list(range(1, deepest + 1))


def package_depth_rules(unit_names: Sequence[str]) -> list[PackageDepthRule]:
    """One PackageDepthRule per candidate depth, coarse to fine."""
    root = root_package(unit_names)
    return [PackageDepthRule(depth, root) for depth in candidate_depths(unit_names)]


def assign_groups(unit_names: Sequence[str], rule: GroupingRule) -> list[str]:
    """Apply ``rule`` to every unit, checking it is total and deterministic.

    Each unit is evaluated twice; a rule that answers differently, or
    answers with anything but a non-empty string, cannot be trusted to
    partition the units.

    Raises:
        InvalidGroupingRuleError: On an empty/non-string or unstable group
    """
    rule_name = getattr(rule, "name", repr(rule))
    groups: list[str] = []
    for unit in unit_names:
        group = rule(unit)
        if not isinstance(group, str) or not group:
            raise InvalidGroupingRuleError(rule_name, unit, f"empty group name {group!r}")
        again = rule(unit)
        if again != group:
            raise InvalidGroupingRuleError(
                rule_name, unit, f"non-deterministic: {group!r} then {again!r}"
            )
        groups.append(group)
    return groups


def group_units(graph: ClassGraph, rule: GroupingRule) -> Grouping:
    """Partition the units of ``graph`` into components under ``rule``.

    Units mapped to the same group name form one component whose size is
    the sum of their weights.
    """
    names = graph.unit_names
    groups = assign_groups(names, rule)

    group_names = sorted(set(groups))
    group_index = {g: i for i, g in enumerate(group_names)}
    unit_group = np.array([group_index[g] for g in groups], dtype=np.int64)

    members: list[list[str]] = [[] for _ in group_names]
    sizes = [0] * len(group_names)
    for unit, group in zip(graph.units, groups):
        i = group_index[group]
        members[i].append(unit.name)
        sizes[i] += unit.weight

    components = tuple(
        Component(name=g, size=sizes[i], members=tuple(members[i]))
        for i, g in enumerate(group_names)
    )
    return Grouping(
        rule_name=getattr(rule, "name", repr(rule)),
        group_names=group_names,
        unit_group=unit_group,
        components=components,
    )
