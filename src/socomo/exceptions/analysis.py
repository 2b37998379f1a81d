"""Analysis-related exceptions: unreadable artifacts, empty codebases, bad rules."""

from typing import Optional

from .base import SocomoError


class AnalysisError(SocomoError):
    """Base class for errors raised while analyzing a codebase."""

    pass


class UnreadableArtifactError(AnalysisError):
    """Raised when one compiled artifact cannot be parsed.

    Recovered locally by the scanner: the artifact is skipped and reported
    as a diagnostic.
    """

    def __init__(self, artifact: str, reason: str):
        super().__init__(
            f"Cannot read artifact: {artifact}",
            details={"artifact": artifact, "reason": reason},
        )
        self.artifact = artifact
        self.reason = reason


class EmptyCodebaseError(AnalysisError):
    """Raised when no artifact could be scanned successfully."""

    def __init__(self, artifact_count: int, skipped_count: int):
        super().__init__(
            "No artifact was scanned successfully",
            details={"artifacts": str(artifact_count), "skipped": str(skipped_count)},
        )
        self.artifact_count = artifact_count
        self.skipped_count = skipped_count


class InvalidGroupingRuleError(AnalysisError):
    """Raised when a grouping rule yields an empty or unstable group name."""

    def __init__(self, rule: str, unit: str, reason: str):
        super().__init__(
            f"Invalid grouping rule {rule}",
            details={"unit": unit, "reason": reason},
        )
        self.rule = rule
        self.unit = unit
        self.reason = reason


class NoLevelsProducedError(AnalysisError):
    """Raised when level selection is asked to choose among zero levels."""

    def __init__(self, reason: str = "no granularity candidates"):
        super().__init__(f"No levels produced: {reason}", details={"reason": reason})
        self.reason = reason


class AnalysisCancelledError(AnalysisError):
    """Raised when a run is cancelled or times out before the merge barrier."""

    def __init__(self, reason: str, completed: Optional[int] = None):
        details = {"reason": reason}
        if completed is not None:
            details["completed"] = str(completed)
        super().__init__(f"Analysis cancelled: {reason}", details=details)
        self.reason = reason
        self.completed = completed
