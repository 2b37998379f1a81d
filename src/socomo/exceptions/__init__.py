"""Exception hierarchy for Socomo."""

from .analysis import (
    AnalysisCancelledError,
    AnalysisError,
    EmptyCodebaseError,
    InvalidGroupingRuleError,
    NoLevelsProducedError,
    UnreadableArtifactError,
)
from .base import SocomoError
from .composition import CompositionError, PartitionError
from .config import ConfigurationError, InvalidConfigError, InvalidPathError

__all__ = [
    "SocomoError",
    "AnalysisError",
    "UnreadableArtifactError",
    "EmptyCodebaseError",
    "InvalidGroupingRuleError",
    "NoLevelsProducedError",
    "AnalysisCancelledError",
    "CompositionError",
    "PartitionError",
    "ConfigurationError",
    "InvalidPathError",
    "InvalidConfigError",
]
