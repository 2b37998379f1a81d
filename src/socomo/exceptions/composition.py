"""Composition model exceptions: invariant violations at construction."""

from .base import SocomoError


class CompositionError(SocomoError):
    """Base class for composition model errors."""

    pass


class PartitionError(CompositionError):
    """Raised when a Level or Module would violate its structural invariants.

    This signals a programming error in the engine, never bad input.
    """

    def __init__(self, level: str, reason: str):
        super().__init__(
            f"Invalid composition for level {level!r}: {reason}",
            details={"level": level, "reason": reason},
        )
        self.level = level
        self.reason = reason
