"""Rich terminal formatter: level overview plus the default level in detail."""

import io
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..api import AnalysisResult
from .base import BaseFormatter


class RichFormatter(BaseFormatter):
    """Render the composition model as rich tables."""

    def __init__(self, console: Optional[Console] = None, verbose: bool = False) -> None:
        self.console = console or Console()
        self.verbose = verbose

    def render(self, result: AnalysisResult) -> None:
        module = result.module
        default = module.default

        self.console.print()
        self.console.print(f"[bold cyan]SOCOMO: {escape(module.name)}[/bold cyan]")
        self.console.print(
            f"  [green]{result.unit_count}[/green] classes, "
            f"[green]{result.edge_count}[/green] class dependencies"
        )
        self.console.print()

        overview = Table(title="Levels", show_header=True, header_style="bold")
        overview.add_column("Level")
        overview.add_column("Components", justify="right")
        overview.add_column("Dependencies", justify="right")
        for level in module.levels:
            marker = " [bold yellow]*[/bold yellow]" if level is default else ""
            overview.add_row(
                f"{level.name}{marker}",
                str(len(level.components)),
                str(len(level.dependencies)),
            )
        self.console.print(overview)

        components = Table(title=f"Components of {default.name}", header_style="bold")
        components.add_column("Component")
        components.add_column("Size", justify="right")
        components.add_column("Classes", justify="right")
        for component in sorted(default.components, key=lambda c: -c.size):
            components.add_row(component.name, str(component.size), str(len(component.members)))
        self.console.print(components)

        dependencies = Table(title=f"Dependencies of {default.name}", header_style="bold")
        dependencies.add_column("From")
        dependencies.add_column("To")
        dependencies.add_column("Strength", justify="right")
        shown = sorted(default.dependencies, key=lambda d: -d.strength)
        if not self.verbose:
            shown = shown[:25]
        for dep in shown:
            dependencies.add_row(dep.source, dep.target, str(dep.strength))
        self.console.print(dependencies)

        if result.diagnostics:
            self.console.print()
            self.console.print(f"[yellow]Skipped {len(result.diagnostics)} artifacts:[/yellow]")
            for diagnostic in result.diagnostics:
                self.console.print(f"  {diagnostic.artifact}: {diagnostic.reason}", markup=False)

    def format(self, result: AnalysisResult) -> str:
        console = Console(record=True, width=120, file=io.StringIO())
        RichFormatter(console=console, verbose=self.verbose).render(result)
        return console.export_text()
