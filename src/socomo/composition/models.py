"""Composition model: the finished, read-only result handed to renderers.

    Module
      └── Level (one granularity, ordered coarse → fine)
            ├── Component (named group of units, with summed size)
            └── ComponentDep (directed, between distinct components)

Invariants are checked when each object is constructed. A violation raises
PartitionError, which always means the engine is broken, never the input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..exceptions import PartitionError


@dataclass(frozen=True)
class Component:
    """A named group of units at one granularity."""

    name: str
    size: int
    members: tuple[str, ...] = ()


@dataclass(frozen=True)
class ComponentDep:
    """Aggregated dependency between two distinct components."""

    source: str
    target: str
    strength: int

    @property
    def name(self) -> str:
        return f"{self.source} -> {self.target}"


@dataclass(frozen=True)
class Level:
    """One granularity: a partition of all units plus its dependencies."""

    name: str
    components: tuple[Component, ...]
    dependencies: tuple[ComponentDep, ...] = ()
    _by_name: dict[str, Component] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name: dict[str, Component] = {}
        seen: set[str] = set()
        for component in self.components:
            if not component.name:
                self._fail("component with empty name")
            if component.name in by_name:
                self._fail(f"duplicate component {component.name!r}")
            if not component.members:
                self._fail(f"component {component.name!r} has no members")
            overlap = seen.intersection(component.members)
            if overlap or len(set(component.members)) != len(component.members):
                self._fail(f"unit in more than one component: {sorted(overlap)[:3]}")
            seen.update(component.members)
            by_name[component.name] = component

        pairs: set[tuple[str, str]] = set()
        for dep in self.dependencies:
            if dep.source == dep.target:
                self._fail(f"self-loop on {dep.source!r}")
            if dep.strength <= 0:
                self._fail(f"non-positive strength on {dep.name}")
            if dep.source not in by_name or dep.target not in by_name:
                self._fail(f"dependency {dep.name} names an unknown component")
            if (dep.source, dep.target) in pairs:
                self._fail(f"duplicate dependency {dep.name}")
            pairs.add((dep.source, dep.target))

        object.__setattr__(self, "_by_name", by_name)

    def _fail(self, reason: str) -> None:
        raise PartitionError(self.name, reason)

    @property
    def total_size(self) -> int:
        return sum(c.size for c in self.components)

    @property
    def unit_names(self) -> frozenset[str]:
        return frozenset(m for c in self.components for m in c.members)

    def component(self, name: str) -> Component:
        return self._by_name[name]

    def dependency(self, source: str, target: str) -> Optional[ComponentDep]:
        for dep in self.dependencies:
            if dep.source == source and dep.target == target:
                return dep
        return None

    def max_component_size(self) -> int:
        return max((c.size for c in self.components), default=0)

    def max_dependency_strength(self) -> int:
        return max((d.strength for d in self.dependencies), default=0)

    def verify_partition(self, weights: Mapping[str, int]) -> None:
        """Check this level partitions exactly ``weights`` and conserves size.

        Raises:
            PartitionError: If a unit is missing, unknown, or sizes disagree
        """
        members = self.unit_names
        missing = weights.keys() - members
        if missing:
            self._fail(f"{len(missing)} units in no component, e.g. {sorted(missing)[0]!r}")
        unknown = members - weights.keys()
        if unknown:
            self._fail(f"{len(unknown)} unknown units, e.g. {sorted(unknown)[0]!r}")
        for component in self.components:
            expected = sum(weights[m] for m in component.members)
            if component.size != expected:
                self._fail(f"component {component.name!r} has size {component.size}, expected {expected}")


@dataclass(frozen=True)
class Module:
    """The analysis result for one codebase: levels ordered coarse to fine."""

    name: str
    levels: tuple[Level, ...]
    default_level: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.levels:
            raise PartitionError("<module>", "a module needs at least one level")
        names = [level.name for level in self.levels]
        if len(set(names)) != len(names):
            raise PartitionError("<module>", f"duplicate level names in {names}")

        first = self.levels[0]
        for level in self.levels[1:]:
            if level.unit_names != first.unit_names:
                raise PartitionError(level.name, f"partitions a different unit set than {first.name!r}")
            if level.total_size != first.total_size:
                raise PartitionError(level.name, f"total size differs from {first.name!r}")

        if self.default_level is not None and self.default_level not in names:
            raise PartitionError(self.default_level, "default level is not one of the module levels")

    def level(self, name: str) -> Level:
        for level in self.levels:
            if level.name == name:
                return level
        raise KeyError(name)

    @property
    def level_names(self) -> list[str]:
        return [level.name for level in self.levels]

    @property
    def default(self) -> Level:
        """The default level, or the coarsest one when none was chosen."""
        if self.default_level is None:
            return self.levels[0]
        return self.level(self.default_level)

    def levels_default_first(self) -> list[Level]:
        """Levels in presentation order: the default one, then the rest coarse → fine."""
        default = self.default
        return [default] + [level for level in self.levels if level is not default]
