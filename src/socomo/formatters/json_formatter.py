"""JSON formatter for Socomo."""

import json
from typing import Any

from ..api import AnalysisResult
from ..composition.models import Level
from .base import BaseFormatter


class JsonFormatter(BaseFormatter):
    """Render the composition model as JSON (levels coarse to fine)."""

    def render(self, result: AnalysisResult) -> None:
        print(self.format(result))

    def format(self, result: AnalysisResult) -> str:
        return json.dumps(to_dict(result), indent=2)


def to_dict(result: AnalysisResult) -> dict[str, Any]:
    module = result.module
    return {
        "module": module.name,
        "default_level": module.default_level,
        "levels": [_level_dict(level) for level in module.levels],
        "diagnostics": [{"artifact": d.artifact, "reason": d.reason} for d in result.diagnostics],
    }


def _level_dict(level: Level) -> dict[str, Any]:
    return {
        "name": level.name,
        "components": [{"name": c.name, "size": c.size} for c in level.components],
        "dependencies": [
            {"from": d.source, "to": d.target, "strength": d.strength} for d in level.dependencies
        ],
    }
