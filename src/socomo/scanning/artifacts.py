"""Compiled-artifact handles and their discovery on disk.

An ``Artifact`` is a stable name plus a way to read its bytes. Handles are
cheap to create and read lazily, so scanning workers do the I/O.

Discovery understands:
    - a directory: walked recursively for ``*.class`` files and jar/zip archives
    - a single ``*.class`` file
    - a single ``*.jar`` / ``*.zip`` archive

The module descriptor ``module-info.class`` and multi-release copies under
``META-INF/`` are never units and are left out.
"""

from __future__ import annotations

import zipfile
import zlib
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Callable, Mapping, Optional

from ..exceptions import InvalidPathError, UnreadableArtifactError
from ..logging_config import get_logger

logger = get_logger(__name__)

CLASS_SUFFIX = ".class"
ARCHIVE_SUFFIXES = (".jar", ".zip")
_EXCLUDED_NAMES = frozenset({"module-info.class"})


@dataclass(frozen=True)
class Artifact:
    """Handle to one compiled artifact."""

    name: str
    loader: Callable[[], bytes] = field(repr=False, compare=False)
    size: Optional[int] = field(default=None, compare=False)

    def read(self) -> bytes:
        return self.loader()


def discover_artifacts(path: Path) -> list[Artifact]:
    """Enumerate the compiled artifacts under ``path``, sorted by name.

    Raises:
        InvalidPathError: If the path does not exist or is not a class
            file, archive or directory
    """
    path = Path(path)
    if not path.exists():
        raise InvalidPathError(path, "does not exist")

    if path.is_file():
        if path.suffix == CLASS_SUFFIX:
            artifacts = [_file_artifact(path, path.parent)]
        elif path.suffix in ARCHIVE_SUFFIXES:
            artifacts = _archive_artifacts(path, path.parent)
        else:
            raise InvalidPathError(path, "expected a directory, .class file or jar/zip archive")
    else:
        artifacts = []
        for candidate in sorted(path.rglob("*")):
            if not candidate.is_file():
                continue
            if candidate.suffix == CLASS_SUFFIX and candidate.name not in _EXCLUDED_NAMES:
                artifacts.append(_file_artifact(candidate, path))
            elif candidate.suffix in ARCHIVE_SUFFIXES:
                artifacts.extend(_archive_artifacts(candidate, path))

    artifacts.sort(key=lambda a: a.name)
    logger.debug(f"Discovered {len(artifacts)} artifacts under {path}")
    return artifacts


def artifacts_from_bytes(contents: Mapping[str, bytes]) -> list[Artifact]:
    """Wrap in-memory class file contents as artifacts, sorted by name."""
    return [
        Artifact(name=name, loader=partial(bytes, data), size=len(data))
        for name, data in sorted(contents.items())
    ]


def _file_artifact(path: Path, root: Path) -> Artifact:
    return Artifact(
        name=path.relative_to(root).as_posix(),
        loader=path.read_bytes,
        size=path.stat().st_size,
    )


def _archive_artifacts(archive: Path, root: Path) -> list[Artifact]:
    prefix = archive.relative_to(root).as_posix()
    try:
        with zipfile.ZipFile(archive) as zf:
            entries = [
                info
                for info in zf.infolist()
                if not info.is_dir()
                and info.filename.endswith(CLASS_SUFFIX)
                and not info.filename.startswith("META-INF/")
                and info.filename.rsplit("/", 1)[-1] not in _EXCLUDED_NAMES
            ]
    except (OSError, zipfile.BadZipFile) as e:
        # Surfaces as a scan diagnostic rather than aborting discovery
        return [Artifact(name=prefix, loader=partial(_broken_archive, prefix, str(e)))]

    return [
        Artifact(
            name=f"{prefix}!/{info.filename}",
            loader=partial(_read_entry, archive, info.filename, f"{prefix}!/{info.filename}"),
            size=info.file_size,
        )
        for info in entries
    ]


def _read_entry(archive: Path, entry: str, name: str) -> bytes:
    try:
        with zipfile.ZipFile(archive) as zf:
            return zf.read(entry)
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise UnreadableArtifactError(name, f"corrupt archive entry: {e}")
    except RuntimeError as e:
        # Encrypted entries and unsupported compression methods
        raise UnreadableArtifactError(name, f"unreadable archive entry: {e}")


def _broken_archive(name: str, reason: str) -> bytes:
    raise UnreadableArtifactError(name, f"bad archive: {reason}")
