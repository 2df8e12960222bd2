"""Options CLI command -- list the selectable filter values of a repository."""

import json
from pathlib import Path
from typing import Optional

import typer

from ..exceptions import RepoTimelineError
from . import app
from ._common import build_orchestrator, console, fail, resolve_config


@app.command()
def options(
    path: Path = typer.Argument(Path("."), help="Repository path"),
    max_commits: Optional[int] = typer.Option(
        None, "--max-commits", min=1, help="Upper bound on commits walked"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output in machine-readable JSON format"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    List branches, authors, event types, providers and tags of a repository.

    [bold cyan]Examples:[/bold cyan]

      repo-timeline options

      repo-timeline options ../project --json
    """
    settings = resolve_config(max_commits=max_commits, verbose=verbose)
    orchestrator = build_orchestrator(settings)
    try:
        filter_options = orchestrator.get_filter_options(str(path))
    except RepoTimelineError as e:
        fail(e)
    finally:
        orchestrator.dispose()

    if json_output:
        print(json.dumps(filter_options.to_dict(), indent=2))
        return

    from rich.table import Table

    table = Table(title="Filter Options", show_header=False, pad_edge=True)
    table.add_column("Dimension", style="bold")
    table.add_column("Values")
    for label, values in (
        ("Branches", filter_options.branches),
        ("Authors", filter_options.authors),
        ("Event types", filter_options.event_types),
        ("Providers", filter_options.providers),
        ("Tags", filter_options.tags),
    ):
        table.add_row(label, ", ".join(values) if values else "[dim]-[/dim]")
    if filter_options.date_range:
        start, end = filter_options.date_range
        table.add_row("Date range", f"{start:%Y-%m-%d} .. {end:%Y-%m-%d}")
    console.print(table)
