"""Composition analysis command."""

from pathlib import Path
from typing import Optional

import typer
from rich.markup import escape

from ..api import run_analysis
from ..exceptions import SocomoError
from ..formatters import HtmlFormatter, JsonFormatter, RichFormatter
from ..logging_config import setup_logging
from ..scanning.artifacts import discover_artifacts
from . import app
from ._common import console, resolve_config

_FORMATS = ("html", "json", "rich")


@app.command()
def analyze(
    path: Path = typer.Argument(
        Path("target/classes"),
        help="Directory of compiled classes, a .class file, or a jar/zip archive",
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Module name shown in the output (default: directory name)",
    ),
    fmt: str = typer.Option(
        "html",
        "--format",
        "-f",
        help="Output format: html (launcher page), json, or rich (terminal tables)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Where the html page is written (default: socomo.html)",
    ),
    level: Optional[str] = typer.Option(
        None,
        "--level",
        help="Level to show by default, e.g. 'depth 3' (default: guessed)",
    ),
    scorer: Optional[str] = typer.Option(
        None,
        "--scorer",
        help="How the default level is guessed: density, coarsest, finest",
    ),
    weight: Optional[str] = typer.Option(
        None,
        "--weight",
        help="Class weight: bytes, code (bytecode length), count",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Parallel scan workers",
        min=1,
        max=64,
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (TOML)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging, all rows"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
):
    """
    Analyze the composition of a compiled codebase.

    Groups classes by package depth, aggregates their dependencies at every
    level and writes a launcher page for the visualizer (or JSON / tables).

    [bold cyan]Examples:[/bold cyan]

      socomo analyze target/classes

      socomo analyze app.jar --format json > composition.json

      socomo analyze build/classes --format rich --level "depth 4"
    """
    if fmt not in _FORMATS:
        console.print(
            f"[red]Error:[/red] unknown format {escape(repr(fmt))}, "
            f"expected one of {', '.join(_FORMATS)}"
        )
        raise typer.Exit(2)

    try:
        settings = resolve_config(
            config=config,
            workers=workers,
            weight=weight,
            scorer=scorer,
            level=level,
            output=output,
            verbose=verbose,
            quiet=quiet,
        )
        logger = setup_logging(settings.verbosity, settings.log_file)

        if settings.skip:
            logger.warning("skipping socomo")
            return

        if not path.exists():
            logger.warning(f"bytecode path {path}")
            logger.warning("skipping socomo, the bytecode path is missing")
            return

        artifacts = discover_artifacts(path)
        module_name = name or path.resolve().name
        result = run_analysis(module_name, artifacts, settings)

        if fmt == "json":
            JsonFormatter().render(result)
        elif fmt == "rich":
            RichFormatter(verbose=settings.verbosity == "verbose").render(result)
        else:
            formatter = HtmlFormatter(settings.asset_urls, settings.inline_assets)
            target = formatter.write(result, Path(settings.output_file))
            if settings.verbosity != "quiet":
                console.print(
                    f"Wrote [green]{escape(str(target))}[/green] "
                    f"({len(result.module.levels)} levels, default [bold]{escape(result.module.default.name)}[/bold])"
                )

    except SocomoError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(1)
