"""ArtifactScanner: turns compiled artifacts into per-unit reference lists.

Usage:
    scanner = ArtifactScanner(weight="bytes")
    report = scanner.scan_all(discover_artifacts(Path("target/classes")))
    # report.results: list[ScanResult], report.diagnostics: list[Diagnostic]

Scanning one artifact is a pure function of its bytes, so ``scan_all`` fans
the work out over a thread pool. Results are sorted by artifact name before
they are returned; completion order never leaks into the output.

Unreadable artifacts never abort the run. Each one becomes a ``Diagnostic``
and the rest of the set is scanned as usual.
"""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Iterable, Optional, Sequence, Union

from ..config import DEFAULT_PLATFORM_PREFIXES, WEIGHT_KINDS
from ..exceptions import AnalysisCancelledError, UnreadableArtifactError
from ..logging_config import get_logger
from .artifacts import Artifact
from .classfile import ClassFormatError, parse_class
from .models import Diagnostic, ScanReport, ScanResult, Unit

logger = get_logger(__name__)

# Default worker count: use CPU count, capped at 8 to avoid overwhelming I/O
_DEFAULT_WORKERS = min(os.cpu_count() or 4, 8)

# Below this many artifacts the pool costs more than it saves
_PARALLEL_THRESHOLD = 10


class ArtifactScanner:
    """Extracts a Unit and its outgoing references from each artifact.

    Attributes:
        weight: How unit weight is measured (bytes, code, count)
        platform_prefixes: Targets starting with one of these are dropped
    """

    def __init__(
        self,
        weight: str = "bytes",
        platform_prefixes: Iterable[str] = DEFAULT_PLATFORM_PREFIXES,
        max_artifact_size: Optional[int] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        if weight not in WEIGHT_KINDS:
            raise ValueError(f"unknown weight kind {weight!r}")
        self.weight = weight
        self.platform_prefixes = tuple(platform_prefixes)
        self._max_artifact_size = max_artifact_size
        self._max_workers = max_workers or _DEFAULT_WORKERS

    def scan(self, artifact: Artifact) -> ScanResult:
        """Scan a single artifact.

        Raises:
            UnreadableArtifactError: If the artifact cannot be read or parsed
        """
        if (
            self._max_artifact_size is not None
            and artifact.size is not None
            and artifact.size > self._max_artifact_size
        ):
            raise UnreadableArtifactError(
                artifact.name, f"too large ({artifact.size} > {self._max_artifact_size} bytes)"
            )

        try:
            data = artifact.read()
        except OSError as e:
            raise UnreadableArtifactError(artifact.name, f"read failed: {e}")

        try:
            parsed = parse_class(data)
        except ClassFormatError as e:
            raise UnreadableArtifactError(artifact.name, str(e))

        if parsed.is_module:
            raise UnreadableArtifactError(artifact.name, "module descriptor, not a class")

        references = tuple(r for r in parsed.references if not self._is_platform(r.target))
        unit = Unit(name=parsed.name, weight=self._weigh(parsed.size, parsed.code_length))
        return ScanResult(artifact=artifact.name, unit=unit, references=references)

    def scan_all(
        self,
        artifacts: Sequence[Artifact],
        parallel: bool = True,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> ScanReport:
        """Scan every artifact, collecting results and diagnostics.

        Args:
            artifacts: Artifact handles to scan
            parallel: Use the thread pool (default: True)
            cancel: Set this event to abandon the run
            timeout: Seconds after which the run is abandoned

        Returns:
            ScanReport with results and diagnostics, both sorted by artifact name

        Raises:
            AnalysisCancelledError: On cancellation or timeout; no partial
                report is returned
        """
        if not parallel or len(artifacts) < _PARALLEL_THRESHOLD:
            outcomes = self._scan_sequential(artifacts, cancel, timeout)
        else:
            outcomes = self._scan_parallel(artifacts, cancel, timeout)

        report = ScanReport()
        for outcome in outcomes:
            if isinstance(outcome, Diagnostic):
                report.diagnostics.append(outcome)
            else:
                report.results.append(outcome)
        report.results.sort(key=lambda r: r.artifact)
        report.diagnostics.sort(key=lambda d: d.artifact)

        if report.diagnostics:
            logger.warning(
                f"Skipped {report.skipped_count} of {len(artifacts)} artifacts (unreadable)"
            )
        logger.debug(f"Scanned {report.scanned_count} artifacts")
        return report

    def _scan_one(self, artifact: Artifact) -> Union[ScanResult, Diagnostic]:
        try:
            return self.scan(artifact)
        except UnreadableArtifactError as e:
            logger.debug(f"Skipping {artifact.name}: {e.reason}")
            return Diagnostic(artifact=artifact.name, reason=e.reason)

    def _scan_sequential(
        self,
        artifacts: Sequence[Artifact],
        cancel: Optional[threading.Event],
        timeout: Optional[float],
    ) -> list[Union[ScanResult, Diagnostic]]:
        deadline = time.monotonic() + timeout if timeout is not None else None
        outcomes: list[Union[ScanResult, Diagnostic]] = []
        for artifact in artifacts:
            if cancel is not None and cancel.is_set():
                raise AnalysisCancelledError("cancelled by caller", completed=len(outcomes))
            if deadline is not None and time.monotonic() > deadline:
                raise AnalysisCancelledError(f"timed out after {timeout}s", completed=len(outcomes))
            outcomes.append(self._scan_one(artifact))
        return outcomes

    def _scan_parallel(
        self,
        artifacts: Sequence[Artifact],
        cancel: Optional[threading.Event],
        timeout: Optional[float],
    ) -> list[Union[ScanResult, Diagnostic]]:
        outcomes: list[Union[ScanResult, Diagnostic]] = []
        executor = ThreadPoolExecutor(max_workers=self._max_workers)
        try:
            futures = []
            for artifact in artifacts:
                if cancel is not None and cancel.is_set():
                    raise AnalysisCancelledError("cancelled by caller", completed=0)
                futures.append(executor.submit(self._scan_one, artifact))
            try:
                for future in as_completed(futures, timeout=timeout):
                    if cancel is not None and cancel.is_set():
                        raise AnalysisCancelledError("cancelled by caller", completed=len(outcomes))
                    outcomes.append(future.result())
            except FuturesTimeoutError:
                raise AnalysisCancelledError(f"timed out after {timeout}s", completed=len(outcomes))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return outcomes

    def _is_platform(self, name: str) -> bool:
        return name.startswith(self.platform_prefixes)

    def _weigh(self, size: int, code_length: int) -> int:
        if self.weight == "count":
            return 1
        if self.weight == "code":
            return max(code_length, 1)
        return max(size, 1)
