"""Command line for replaying runner scenarios."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

load_dotenv()

from .errors import ScenarioError
from .scenario import ScenarioResult, load_scenario, run_scenario
from .ui.theme import THEME

console = Console()

app = typer.Typer(
    name="seqrun",
    help="Replay submit/shutdown scenarios against a sequential task runner.",
    epilog=(
        "Examples:\n"
        "  seqrun run scenario.yaml\n"
        "  seqrun run scenario.yaml --json\n"
        "  seqrun run scenario.yaml --log-level DEBUG"
    ),
    add_completion=False,
)


def _markup(text: str, color: str) -> str:
    """Wrap text in Rich markup with the given color, escaping special chars."""
    return f"[{color}]{escape(text)}[/{color}]"


def _configure_logging(level: str) -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise typer.BadParameter(f"Unknown log level '{level}'", param_hint="--log-level")
    logging.basicConfig(level=numeric, format="%(levelname)s %(name)s: %(message)s")


def _render(result: ScenarioResult) -> None:
    table = Table(show_header=True, header_style=THEME.secondary, title=result.name)
    table.add_column("Elapsed", justify="right", style=THEME.muted)
    table.add_column("Event")
    for entry in result.timeline:
        table.add_row(f"{entry.elapsed * 1000:.1f} ms", _markup(entry.event, THEME.for_event(entry.event)))
    console.print(table)

    summary = ", ".join(result.log) if result.log else "(nothing ran)"
    console.print(_markup(f"Log: {summary}", THEME.primary))
    if result.failures:
        console.print(_markup(f"{len(result.failures)} failure(s) reported", THEME.error))


@app.command()
def run(
    scenario_file: Annotated[
        str,
        typer.Argument(metavar="SCENARIO", help="YAML scenario file to replay"),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the result as JSON instead of a table"),
    ] = False,
    log_level: Annotated[
        str,
        typer.Option("--log-level", help="Logging level for runner diagnostics"),
    ] = os.getenv("SEQRUN_LOG_LEVEL", "WARNING"),
) -> None:
    """Replay a scenario and show what ran, in order."""
    _configure_logging(log_level)
    try:
        scenario = load_scenario(scenario_file)
    except ScenarioError as exc:
        console.print(_markup(str(exc), THEME.error))
        raise typer.Exit(1)

    result = asyncio.run(run_scenario(scenario))

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        _render(result)


@app.command()
def version() -> None:
    """Print the installed version."""
    from . import __version__

    typer.echo(__version__)


def cli() -> None:
    app(prog_name="seqrun")


if __name__ == "__main__":
    cli()
