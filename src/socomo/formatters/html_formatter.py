"""HTML launcher page for the visualizer.

The page is meant to be committed next to the code it describes, so its
text is laid out by hand: one component or dependency per line, stable
ordering, no template engine deciding on whitespace. All data goes into a
single ``socomo(name, {level: {...}})`` call; the visualizer scripts linked
in ``<head>`` draw it, starting with the first level (the default one).

Sizes and strengths are normalised per level to the largest value, so the
visualizer only ever sees numbers in (0, 1].

Assets are either linked by URL or embedded inline from a local file; a
page with only inline assets works offline.
"""

import html
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Union

from ..api import AnalysisResult
from ..composition.models import Level
from ..exceptions import InvalidPathError
from .base import BaseFormatter

BANNER = (
    "<!-- File autogenerated by socomo: do not edit by hand, but do commit to repository -->"
)


@dataclass(frozen=True)
class Asset:
    """A stylesheet or script for the page head.

    Exactly one of ``url`` and ``content`` is set.
    """

    kind: str  # "style" or "script"
    url: Optional[str] = None
    content: Optional[str] = None

    @classmethod
    def linked(cls, url: str) -> "Asset":
        return cls("style" if url.endswith(".css") else "script", url=url)

    @classmethod
    def embedded(cls, path: Union[str, Path]) -> "Asset":
        """Read a local ``.css`` or ``.js`` file to embed in the page.

        Raises:
            InvalidPathError: If the file cannot be read
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise InvalidPathError(path, f"cannot read asset: {e}")
        return cls("style" if path.suffix == ".css" else "script", content=content)


class HtmlFormatter(BaseFormatter):
    """Render the composition model as the visualizer's launcher html."""

    def __init__(
        self,
        asset_urls: Sequence[str] = (),
        inline_assets: Sequence[Union[str, Path]] = (),
    ) -> None:
        self.assets = [Asset.linked(url) for url in asset_urls]
        self.assets.extend(Asset.embedded(path) for path in inline_assets)
        self._lines: list[str] = []
        self._indent = ""

    def render(self, result: AnalysisResult) -> None:
        print(self.format(result), end="")

    def write(self, result: AnalysisResult, target: Path) -> Path:
        target.write_text(self.format(result), encoding="utf-8")
        return target

    def format(self, result: AnalysisResult) -> str:
        self._lines = []
        self._indent = ""
        self._html(result)
        return "\n".join(self._lines) + "\n"

    def _html(self, result: AnalysisResult) -> None:
        self._out(BANNER)
        self._out("<!doctype html>")
        self._out("<!--suppress ALL-->")
        self._out("<html lang='en'>")
        self._head(result)
        self._body(result)
        self._out("</html>")

    def _head(self, result: AnalysisResult) -> None:
        self._out("<head>")
        self._shift(+4)
        self._out(f"<title>socomo: {html.escape(result.module.name)}</title>")
        for asset in self.assets:
            if asset.content is not None:
                self._out(f"<{asset.kind}>")
                for line in asset.content.rstrip("\n").split("\n"):
                    self._out(line)
                self._out(f"</{asset.kind}>")
            elif asset.kind == "style":
                self._out(f"<link href='{html.escape(asset.url)}' rel='stylesheet'>")
            else:
                self._out(f"<script src='{html.escape(asset.url)}'></script>")
        self._shift(-4)
        self._out("</head>")

    def _body(self, result: AnalysisResult) -> None:
        self._out("<body>")
        self._out("<script>")
        self._out(f"socomo({ecma_string(result.module.name)}, {{ // module")
        for level in result.module.levels_default_first():
            self._out("")
            self._level(level)
        self._out("")
        self._out("});")
        self._out("</script>")
        self._out("</body>")

    def _level(self, level: Level) -> None:
        self._out(f"[{ecma_string(level.name)}]: // level")
        self._out("{")
        self._shift(+2)

        max_size = level.max_component_size() or 1
        self._out("components: {")
        self._shift(+2)
        for component in level.components:
            self._out(f"{ecma_string(component.name):<36} :{{ size: {component.size / max_size:.1f} }},")
        self._shift(-2)
        self._out("},")

        max_strength = level.max_dependency_strength() or 1
        self._out("dependencies: {")
        self._shift(+2)
        for dep in level.dependencies:
            self._out(f"{ecma_string(dep.name):<36} :{{ strength: {dep.strength / max_strength:.1f} }},")
        self._shift(-2)
        self._out("},")

        self._shift(-2)
        self._out("},")

    def _shift(self, change: int) -> None:
        self._indent = " " * (len(self._indent) + change)

    def _out(self, line: str) -> None:
        self._lines.append(f"{self._indent}{line}" if line else "")


def ecma_string(contents: str) -> str:
    """Single-quoted JavaScript string literal, safe inside a <script> block."""
    escaped = json.dumps(contents, ensure_ascii=False)[1:-1]
    escaped = escaped.replace("'", "\\'").replace("/", "\\/")
    return f"'{escaped}'"
