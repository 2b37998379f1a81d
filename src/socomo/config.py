"""Configuration loading and management for Socomo.

This module provides configuration discovery and validation. Configuration
sources are merged in priority order:
    1. Defaults (defined in AnalysisConfig)
    2. Global config (~/.socomo.toml)
    3. Project config (./socomo.toml)
    4. Explicit config file (--config)
    5. Environment variables (SOCOMO_* prefix)
    6. CLI overrides (passed as kwargs)

Example:
    >>> config = load_config(workers=4, weight="count")
    >>> config.workers
    4
    >>> config.selection.scorer
    'density'
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]
WeightKind = Literal["bytes", "code", "count"]

WEIGHT_KINDS = ("bytes", "code", "count")
VERBOSITIES = ("quiet", "normal", "verbose")

ENV_PREFIX = "SOCOMO_"

DEFAULT_PLATFORM_PREFIXES = (
    "java.",
    "javax.",
    "jdk.",
    "sun.",
    "com.sun.",
    "kotlin.",
    "scala.",
)


@dataclass(frozen=True)
class SelectionConfig:
    """Tuning for the default-level guess.

    The default ``density`` scorer rewards levels whose component count lies
    in ``[target_components_min, target_components_max]`` and whose
    dependencies per component lie in ``[1, max_density]``.

    Attributes:
        scorer: Name of the registered level scorer (density, coarsest, finest)
        default_level: Level name that overrides scoring when set
        target_components_min: Lower bound of the ideal component count
        target_components_max: Upper bound of the ideal component count
        max_density: Dependencies per component above which a level is too dense
    """

    scorer: str = "density"
    default_level: Optional[str] = None
    target_components_min: int = 3
    target_components_max: int = 15
    max_density: float = 3.0

    def __post_init__(self) -> None:
        if not self.scorer:
            raise InvalidConfigError("selection.scorer", self.scorer, "must not be empty")
        if self.target_components_min < 2:
            raise InvalidConfigError(
                "selection.target_components_min", self.target_components_min, "must be at least 2"
            )
        if self.target_components_max < self.target_components_min:
            raise InvalidConfigError(
                "selection.target_components_max",
                self.target_components_max,
                "must not be below target_components_min",
            )
        if self.max_density < 1.0:
            raise InvalidConfigError("selection.max_density", self.max_density, "must be at least 1.0")


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for one analysis run.

    Attributes:
        Performance tuning:
            workers: Number of parallel scan workers (None = auto-detect)
            timeout_seconds: Abort the scan phase after this long (None = no limit)

        Scanning:
            weight: How a unit is weighed (bytes, code, count)
            platform_prefixes: Package prefixes of the platform, never part of the graph
            max_artifact_size_mb: Larger artifacts are skipped with a diagnostic

        Output:
            skip: Do nothing at all (temporary escape hatch during refactoring)
            output_file: Where the html launcher page is written
            asset_urls: Stylesheet/script URLs linked from the html page
            inline_assets: Local .css/.js files embedded in the html page
            verbosity: Logging verbosity level
            log_file: Also append log records to this file

        Level selection:
            selection: Nested SelectionConfig
    """

    workers: Optional[int] = None
    timeout_seconds: Optional[float] = None

    weight: WeightKind = "bytes"
    platform_prefixes: list[str] = field(default_factory=lambda: list(DEFAULT_PLATFORM_PREFIXES))
    max_artifact_size_mb: float = 50.0

    skip: bool = False
    output_file: str = "socomo.html"
    asset_urls: list[str] = field(default_factory=list)
    inline_assets: list[str] = field(default_factory=list)
    verbosity: Verbosity = "normal"
    log_file: Optional[str] = None

    selection: SelectionConfig = field(default_factory=SelectionConfig)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.workers is not None and self.workers < 1:
            raise InvalidConfigError("workers", self.workers, "must be at least 1")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise InvalidConfigError("timeout_seconds", self.timeout_seconds, "must be positive")
        if self.weight not in WEIGHT_KINDS:
            raise InvalidConfigError("weight", self.weight, f"expected one of {', '.join(WEIGHT_KINDS)}")
        if self.max_artifact_size_mb <= 0:
            raise InvalidConfigError("max_artifact_size_mb", self.max_artifact_size_mb, "must be positive")
        if not self.output_file:
            raise InvalidConfigError("output_file", self.output_file, "must not be empty")
        if self.verbosity not in VERBOSITIES:
            raise InvalidConfigError("verbosity", self.verbosity, f"expected one of {', '.join(VERBOSITIES)}")
        for prefix in self.platform_prefixes:
            if not prefix:
                raise InvalidConfigError("platform_prefixes", prefix, "empty prefix matches everything")

    @property
    def max_artifact_size_bytes(self) -> int:
        """Get max artifact size in bytes."""
        return int(self.max_artifact_size_mb * 1024 * 1024)


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> AnalysisConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides (typically from CLI flags). Keys of
            SelectionConfig (``scorer``, ``default_level``, ...) are routed
            into the nested selection config.

    Returns:
        Validated AnalysisConfig instance

    Raises:
        ConfigurationError: If a config file is missing or unreadable
        InvalidConfigError: If a value is out of range or a key is unknown
    """
    merged: dict[str, Any] = {}
    selection: dict[str, Any] = {}

    candidates = [Path.home() / ".socomo.toml", Path.cwd() / "socomo.toml"]
    for candidate in candidates:
        if candidate.exists():
            _merge_section(merged, selection, _load_toml_file(candidate))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")
        _merge_section(merged, selection, _load_toml_file(config_file))

    top_env, selection_env = _load_env_vars()
    merged.update(top_env)
    selection.update(selection_env)

    # CLI overrides: drop unset options, translate verbosity flags
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides.pop("verbose", False):
        overrides["verbosity"] = "verbose"
    if overrides.pop("quiet", False):
        overrides["verbosity"] = "quiet"
    selection_keys = {f.name for f in fields(SelectionConfig)}
    for key in list(overrides):
        if key in selection_keys:
            selection[key] = overrides.pop(key)
    merged.update(overrides)

    try:
        merged["selection"] = SelectionConfig(**selection)
        return AnalysisConfig(**merged)
    except TypeError as e:
        raise InvalidConfigError("config", sorted(merged), str(e))


def _merge_section(merged: dict[str, Any], selection: dict[str, Any], data: dict[str, Any]) -> None:
    """Fold one parsed TOML document into the running merge."""
    section = data.pop("selection", None)
    if section is not None:
        if not isinstance(section, dict):
            raise InvalidConfigError("selection", section, "expected a [selection] table")
        selection.update(section)
    merged.update(data)


def _load_env_vars() -> tuple[dict[str, Any], dict[str, Any]]:
    """Load configuration from SOCOMO_* environment variables.

    Top-level fields use ``SOCOMO_<FIELD>`` (e.g. ``SOCOMO_WORKERS``), the
    selection fields use ``SOCOMO_SELECTION_<FIELD>`` (e.g.
    ``SOCOMO_SELECTION_SCORER``). List-valued fields take a comma-separated
    value.

    Returns:
        (top-level overrides, selection overrides)
    """
    top = _env_for(AnalysisConfig, ENV_PREFIX, skip={"selection"})
    selection = _env_for(SelectionConfig, f"{ENV_PREFIX}SELECTION_")
    return top, selection


def _env_for(cls: type, prefix: str, skip: frozenset[str] | set[str] = frozenset()) -> dict[str, Any]:
    type_hints = get_type_hints(cls)
    result: dict[str, Any] = {}

    for f in fields(cls):
        if f.name in skip:
            continue
        env_key = f"{prefix}{f.name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue
        try:
            result[f.name] = _parse_env_value(env_value, type_hints[f.name])
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]

    origin = getattr(type_hint, "__origin__", None)

    if origin is list or type_hint is list:
        return [item.strip() for item in value.split(",") if item.strip()]

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        if lower in ("false", "0", "no", "off"):
            return False
        raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    return value


def _load_toml_file(path: Path) -> dict[str, Any]:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        import tomllib
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Invalid config file '{path}': {e}")
