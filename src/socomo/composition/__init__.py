"""Composition analysis: grouping, aggregation, level selection, the Module model."""

from .aggregation import aggregate_dependencies
from .engine import CompositionEngine, build_level
from .grouping import (
    Grouping,
    GroupingRule,
    PackageDepthRule,
    candidate_depths,
    group_units,
    package_depth_rules,
    root_package,
)
from .models import Component, ComponentDep, Level, Module
from .selection import (
    SCORERS,
    CoarsestScorer,
    DensityScorer,
    FinestScorer,
    LevelScorer,
    make_scorer,
    select_level,
)

__all__ = [
    "CoarsestScorer",
    "Component",
    "ComponentDep",
    "CompositionEngine",
    "DensityScorer",
    "FinestScorer",
    "Grouping",
    "GroupingRule",
    "Level",
    "LevelScorer",
    "Module",
    "PackageDepthRule",
    "SCORERS",
    "aggregate_dependencies",
    "build_level",
    "candidate_depths",
    "group_units",
    "make_scorer",
    "package_depth_rules",
    "root_package",
    "select_level",
]
