"""CompositionEngine: from a finished class graph to a Module.

Orchestrates:
1. Grouping rules (one per package depth, unless given explicitly)
2. Components per rule, with the partition checked against the unit set
3. Aggregated dependencies per level
4. Default-level selection
5. Module assembly

Levels are computed independently from the same read-only graph, so they
can be built on a thread pool; ``ThreadPoolExecutor.map`` keeps them in
rule order.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Optional, Sequence

from ..config import SelectionConfig
from ..exceptions import InvalidConfigError, NoLevelsProducedError
from ..graph.models import ClassGraph
from ..logging_config import get_logger
from .aggregation import aggregate_dependencies
from .grouping import GroupingRule, group_units, package_depth_rules
from .models import Level, Module
from .selection import LevelScorer, make_scorer, select_level

logger = get_logger(__name__)


def build_level(graph: ClassGraph, rule: GroupingRule) -> Level:
    """Group, aggregate and verify one level."""
    grouping = group_units(graph, rule)
    level = Level(
        name=grouping.rule_name,
        components=grouping.components,
        dependencies=aggregate_dependencies(graph, grouping),
    )
    level.verify_partition({u.name: u.weight for u in graph.units})
    return level


class CompositionEngine:
    """Builds the layered composition model of one codebase."""

    def __init__(
        self,
        selection: Optional[SelectionConfig] = None,
        scorer: Optional[LevelScorer] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self.selection = selection or SelectionConfig()
        self.scorer = scorer or make_scorer(self.selection)
        self._max_workers = max_workers

    def build_levels(
        self, graph: ClassGraph, rules: Optional[Sequence[GroupingRule]] = None
    ) -> list[Level]:
        """Compute one level per rule, coarse to fine.

        A level whose partition is identical to the previous (coarser) one
        adds nothing and is left out, so a deep root package does not yield
        a stack of single-component levels.
        """
        if rules is None:
            rules = package_depth_rules(graph.unit_names)
        if not rules:
            return []

        if self._max_workers == 1 or len(rules) == 1:
            built = [build_level(graph, rule) for rule in rules]
        else:
            with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
                built = list(executor.map(lambda rule: build_level(graph, rule), rules))

        levels: list[Level] = []
        previous: Optional[frozenset[frozenset[str]]] = None
        for level in built:
            partition = frozenset(frozenset(c.members) for c in level.components)
            if partition == previous:
                logger.debug(f"Level {level.name!r} repeats the previous partition, dropped")
                continue
            levels.append(level)
            previous = partition
        return levels

    def choose_default(self, levels: Sequence[Level], unit_count: int) -> Level:
        """The configured default level, or the scorer's pick.

        Raises:
            InvalidConfigError: If the configured default names no level
            NoLevelsProducedError: If ``levels`` is empty
        """
        if not levels:
            raise NoLevelsProducedError()
        wanted = self.selection.default_level
        if wanted is not None:
            for level in levels:
                if level.name == wanted:
                    return level
            raise InvalidConfigError(
                "selection.default_level",
                wanted,
                f"available levels: {', '.join(level.name for level in levels)}",
            )
        return select_level(levels, unit_count, self.scorer)

    def compose(
        self,
        name: str,
        graph: ClassGraph,
        rules: Optional[Sequence[GroupingRule]] = None,
    ) -> Module:
        """Build the full Module for ``graph``.

        Raises:
            NoLevelsProducedError: If no grouping rule produced a level
            InvalidGroupingRuleError: If a rule is empty or unstable
        """
        levels = self.build_levels(graph, rules)
        if not levels:
            raise NoLevelsProducedError("the codebase has no units to group")

        default = self.choose_default(levels, graph.unit_count)
        logger.debug(
            f"Composed {len(levels)} levels for {name!r}, default {default.name!r} "
            f"({len(default.components)} components, {len(default.dependencies)} dependencies)"
        )
        return Module(name=name, levels=tuple(levels), default_level=default.name)
