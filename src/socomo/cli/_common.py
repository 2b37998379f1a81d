"""Shared CLI helpers."""

from pathlib import Path
from typing import Optional

from rich.console import Console

from ..config import AnalysisConfig, load_config

# Status output goes to stderr so stdout can carry JSON
console = Console(stderr=True)


def resolve_config(
    config: Optional[Path] = None,
    workers: Optional[int] = None,
    weight: Optional[str] = None,
    scorer: Optional[str] = None,
    level: Optional[str] = None,
    output: Optional[Path] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> AnalysisConfig:
    """Build configuration from CLI options."""
    overrides: dict = {
        "workers": workers,
        "weight": weight,
        "scorer": scorer,
        "default_level": level,
        "verbose": verbose,
        "quiet": quiet,
    }
    if output is not None:
        overrides["output_file"] = str(output)
    return load_config(config_file=config, **overrides)
