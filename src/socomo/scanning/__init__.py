"""Scanning: compiled artifacts in, per-unit reference lists out."""

from .artifacts import Artifact, artifacts_from_bytes, discover_artifacts
from .models import Diagnostic, Reference, ReferenceKind, ScanReport, ScanResult, Unit
from .scanner import ArtifactScanner

__all__ = [
    "Artifact",
    "ArtifactScanner",
    "Diagnostic",
    "Reference",
    "ReferenceKind",
    "ScanReport",
    "ScanResult",
    "Unit",
    "artifacts_from_bytes",
    "discover_artifacts",
]
