"""Data types produced by the scanning phase."""

from dataclasses import dataclass, field
from enum import Enum


class ReferenceKind(Enum):
    """Where in a class file a reference to another class was found."""

    SUPERTYPE = "supertype"  # superclass, implemented interfaces
    FIELD_TYPE = "field_type"
    METHOD_SIGNATURE = "method_signature"  # parameter and return types
    THROWS = "throws"
    ANNOTATION = "annotation"
    CLASS_CONSTANT = "class_constant"  # new, casts, instanceof, member owners, literals
    MEMBER_REFERENCE = "member_reference"  # types in descriptors of used fields/methods


@dataclass(frozen=True)
class Reference:
    """One reference site: a target class name and the kind of site."""

    target: str
    kind: ReferenceKind


@dataclass(frozen=True)
class Unit:
    """One compiled code artifact, identified by its fully-qualified name."""

    name: str
    weight: int = 1

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.name.split("."))

    @property
    def depth(self) -> int:
        return len(self.segments)


@dataclass(frozen=True)
class ScanResult:
    """Everything the scanner extracted from one artifact.

    ``references`` keeps one entry per reference site, so duplicates are
    meaningful and add to the edge multiplicity.
    """

    artifact: str
    unit: Unit
    references: tuple[Reference, ...] = ()


@dataclass(frozen=True)
class Diagnostic:
    """A skipped artifact and why it was skipped."""

    artifact: str
    reason: str


@dataclass
class ScanReport:
    """Outcome of scanning a whole artifact set."""

    results: list[ScanResult] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def scanned_count(self) -> int:
        return len(self.results)

    @property
    def skipped_count(self) -> int:
        return len(self.diagnostics)
