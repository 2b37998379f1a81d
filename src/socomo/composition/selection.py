"""Guessing which level is most useful to show first.

The coarsest level tends to collapse everything into one or two boxes with
no visible dependencies; the finest is one box per class with an edge count
nobody can read. Somewhere in between is the view worth opening with.

"Useful" is a judgment call, so the choice is a pluggable ``LevelScorer``:

    density   (default) moderate component count and moderate edge density
    coarsest  the first level that shows any dependency at all
    finest    the level with the most components

``select_level`` takes the highest score; ties go to the coarser level.

Density score, for a level with c components, e dependencies and n units:

    count       = 0                         if c <= 1
                  (c - 1) / (lo - 1)        if c < lo
                  1                         if lo <= c <= hi
                  hi / c                    if c > hi
    density     = 0 if e == 0, else with d = e / c:
                  d                         if d < 1
                  1                         if 1 <= d <= max_density
                  max_density / d           if d > max_density
    granularity = 1 - (c - 1) / n

    score = count * density * granularity
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Sequence

from ..config import SelectionConfig
from ..exceptions import InvalidConfigError, NoLevelsProducedError
from .models import Level


class LevelScorer(Protocol):
    """Strategy that rates how useful a level is as the default view."""

    name: str

    def score(self, level: Level, unit_count: int) -> float: ...


@dataclass(frozen=True)
class DensityScorer:
    target_components_min: int = 3
    target_components_max: int = 15
    max_density: float = 3.0
    name: str = "density"

    def score(self, level: Level, unit_count: int) -> float:
        c = len(level.components)
        e = len(level.dependencies)
        if c <= 1 or e == 0 or unit_count <= 0:
            return 0.0
        return (
            self.count_score(c)
            * self.density_score(e / c)
            * (1.0 - (c - 1) / unit_count)
        )

    def count_score(self, c: int) -> float:
        lo, hi = self.target_components_min, self.target_components_max
        if c <= 1:
            return 0.0
        if c < lo:
            return (c - 1) / (lo - 1)
        if c > hi:
            return hi / c
        return 1.0

    def density_score(self, d: float) -> float:
        if d <= 0:
            return 0.0
        if d < 1.0:
            return d
        if d > self.max_density:
            return self.max_density / d
        return 1.0


@dataclass(frozen=True)
class CoarsestScorer:
    name: str = "coarsest"

    def score(self, level: Level, unit_count: int) -> float:
        return 1.0 if level.dependencies else 0.0


@dataclass(frozen=True)
class FinestScorer:
    name: str = "finest"

    def score(self, level: Level, unit_count: int) -> float:
        return float(len(level.components))


def _density_from(config: SelectionConfig) -> LevelScorer:
    return DensityScorer(
        target_components_min=config.target_components_min,
        target_components_max=config.target_components_max,
        max_density=config.max_density,
    )


SCORERS: dict[str, Callable[[SelectionConfig], LevelScorer]] = {
    "density": _density_from,
    "coarsest": lambda config: CoarsestScorer(),
    "finest": lambda config: FinestScorer(),
}


def make_scorer(config: Optional[SelectionConfig] = None) -> LevelScorer:
    """Instantiate the scorer named by ``config.scorer``.

    Raises:
        InvalidConfigError: If no scorer is registered under that name
    """
    config = config or SelectionConfig()
    factory = SCORERS.get(config.scorer)
    if factory is None:
        raise InvalidConfigError(
            "selection.scorer", config.scorer, f"expected one of {', '.join(sorted(SCORERS))}"
        )
    return factory(config)


def rank_levels(
    levels: Sequence[Level], unit_count: int, scorer: LevelScorer
) -> list[tuple[Level, float]]:
    """Score every level, keeping the coarse → fine order."""
    return [(level, scorer.score(level, unit_count)) for level in levels]


def select_level(
    levels: Sequence[Level],
    unit_count: int,
    scorer: Optional[LevelScorer] = None,
) -> Level:
    """Pick the default level: highest score, coarser level on ties.

    Raises:
        NoLevelsProducedError: If ``levels`` is empty
    """
    if not levels:
        raise NoLevelsProducedError()
    scorer = scorer or DensityScorer()

    best, best_score = levels[0], float("-inf")
    for level, score in rank_levels(levels, unit_count, scorer):
        if score > best_score:
            best, best_score = level, score
    return best
