"""Public API for Socomo.

Example:
    >>> from socomo import analyze
    >>>
    >>> result = analyze("target/classes", name="shop")
    >>> result.module.default.name
    'depth 3'
    >>> [d.artifact for d in result.diagnostics]
    []

A run either returns a complete, invariant-checked Module together with the
(possibly empty) list of skipped artifacts, or raises. Nothing in between is
ever handed out.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from .composition.engine import CompositionEngine
from .composition.models import Module
from .config import AnalysisConfig, load_config
from .exceptions import EmptyCodebaseError
from .graph.builder import build_class_graph
from .logging_config import get_logger
from .scanning.artifacts import Artifact, discover_artifacts
from .scanning.models import Diagnostic
from .scanning.scanner import ArtifactScanner

logger = get_logger(__name__)


@dataclass(frozen=True)
class AnalysisResult:
    """A finished Module plus the artifacts that had to be skipped."""

    module: Module
    diagnostics: tuple[Diagnostic, ...] = ()
    unit_count: int = 0
    edge_count: int = 0


def run_analysis(
    name: str,
    artifacts: Sequence[Artifact],
    config: Optional[AnalysisConfig] = None,
    cancel: Optional[threading.Event] = None,
) -> AnalysisResult:
    """Scan ``artifacts`` and compose the Module named ``name``.

    Args:
        name: Name of the analyzed codebase
        artifacts: Compiled artifacts to analyze
        config: Analysis configuration (defaults when None)
        cancel: Set this event to abandon the run

    Raises:
        EmptyCodebaseError: If no artifact could be scanned
        AnalysisCancelledError: If cancelled or timed out while scanning
        InvalidConfigError: If the configured scorer/default level is unknown
    """
    config = config or AnalysisConfig()

    scanner = ArtifactScanner(
        weight=config.weight,
        platform_prefixes=config.platform_prefixes,
        max_artifact_size=config.max_artifact_size_bytes,
        max_workers=config.workers,
    )
    report = scanner.scan_all(artifacts, cancel=cancel, timeout=config.timeout_seconds)
    if not report.results:
        raise EmptyCodebaseError(len(artifacts), report.skipped_count)

    graph = build_class_graph(report.results)
    engine = CompositionEngine(selection=config.selection, max_workers=config.workers)
    module = engine.compose(name, graph)

    logger.info(
        f"Analyzed {name!r}: {graph.unit_count} classes, {graph.edge_count} dependencies, "
        f"{len(module.levels)} levels, {report.skipped_count} skipped"
    )
    return AnalysisResult(
        module=module,
        diagnostics=tuple(report.diagnostics),
        unit_count=graph.unit_count,
        edge_count=graph.edge_count,
    )


def analyze(
    path: str | Path = ".",
    name: Optional[str] = None,
    config_file: Optional[Path] = None,
    cancel: Optional[threading.Event] = None,
    **overrides: Any,
) -> AnalysisResult:
    """Analyze the compiled classes under ``path``.

    Args:
        path: Directory of class files, a class file, or a jar/zip archive
        name: Module name (default: the directory or archive name)
        config_file: Optional explicit config file path
        cancel: Set this event to abandon the run
        **overrides: Configuration overrides (e.g. workers=4, scorer="coarsest")

    Raises:
        SocomoError: On invalid configuration, a missing path, or an empty codebase
    """
    config = load_config(config_file=config_file, **overrides)
    root = Path(path)
    artifacts = discover_artifacts(root)
    return run_analysis(name or root.resolve().name, artifacts, config, cancel=cancel)
