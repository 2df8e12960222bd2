"""Events CLI command -- print the filtered event stream of a repository."""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import typer

from ..events.models import DateRange, FilterCriteria, NormalizedEvent, event_to_dict
from ..exceptions import RepoTimelineError
from . import app
from ._common import build_orchestrator, console, fail, resolve_config

_TYPE_STYLES = {
    "commit": "cyan",
    "merge": "magenta",
    "branch-created": "green",
    "tag": "yellow",
    "release": "bold yellow",
}


@app.command()
def events(
    path: Path = typer.Argument(
        Path("."),
        help="Repository path (any directory inside the work tree)",
    ),
    event_type: Optional[List[str]] = typer.Option(
        None, "--type", "-t", help="Only show events of this type (repeatable)"
    ),
    exclude_type: Optional[List[str]] = typer.Option(
        None, "--exclude-type", help="Hide events of this type (repeatable)"
    ),
    branch: Optional[List[str]] = typer.Option(
        None, "--branch", "-b", help="Only show events on this branch (repeatable)"
    ),
    author: Optional[List[str]] = typer.Option(
        None, "--author", "-a", help="Only show events by this author name (repeatable)"
    ),
    provider: Optional[List[str]] = typer.Option(
        None, "--provider", help="Only show events from this provider (repeatable)"
    ),
    tag: Optional[List[str]] = typer.Option(
        None, "--tag", help="Only show events carrying this tag (repeatable)"
    ),
    search: Optional[str] = typer.Option(
        None, "--search", "-s", help="Case-insensitive search over title, description and hash"
    ),
    since: Optional[datetime] = typer.Option(
        None, "--since", help="Only events at or after this ISO date/time (UTC if no offset)"
    ),
    until: Optional[datetime] = typer.Option(
        None, "--until", help="Only events at or before this ISO date/time (UTC if no offset)"
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", min=1, help="Show only the most recent N matching events"
    ),
    max_commits: Optional[int] = typer.Option(
        None, "--max-commits", min=1, help="Upper bound on commits walked"
    ),
    current_branch_only: bool = typer.Option(
        False, "--current-branch-only", help="Walk history from HEAD only"
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML config file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output in machine-readable JSON format"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging"
    ),
):
    """
    Print the normalized event stream of a repository.

    Filters combine with AND; repeat an option to accept several values.

    [bold cyan]Examples:[/bold cyan]

      repo-timeline events

      repo-timeline events ../project --type merge --type release

      repo-timeline events --branch main --since 2024-01-01 --json
    """
    settings = resolve_config(config, max_commits, current_branch_only, verbose)
    criteria = FilterCriteria(
        event_types=event_type or None,
        excluded_event_types=exclude_type or None,
        branches=branch or None,
        authors=author or None,
        providers=provider or None,
        tags=tag or None,
        search_query=search or None,
        date_range=DateRange(_utc(since), _utc(until)) if (since or until) else None,
    )

    orchestrator = build_orchestrator(settings)
    try:
        filtered = orchestrator.get_filtered_events(str(path), criteria)
    except RepoTimelineError as e:
        fail(e)
    finally:
        orchestrator.dispose()

    if limit is not None:
        filtered = filtered[-limit:]

    if json_output:
        print(json.dumps([event_to_dict(e) for e in filtered], indent=2, default=str))
    else:
        _output_rich(filtered)


def _utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _output_rich(events: List[NormalizedEvent]) -> None:
    """Human-readable Rich table output."""
    from rich.table import Table

    if not events:
        console.print("[yellow]No matching events.[/yellow]")
        return

    table = Table(show_lines=False, pad_edge=True)
    table.add_column("Time", style="green", no_wrap=True)
    table.add_column("Type", no_wrap=True)
    table.add_column("Hash", style="dim", no_wrap=True)
    table.add_column("Branch", style="cyan")
    table.add_column("Author")
    table.add_column("Title")

    for event in events:
        style = _TYPE_STYLES.get(event.type.value, "white")
        extra = len(event.branches) - 1
        branch_cell = event.primary_branch + (f" (+{extra})" if extra else "")
        table.add_row(
            event.timestamp.strftime("%Y-%m-%d %H:%M"),
            f"[{style}]{event.type.value}[/{style}]",
            (event.hash or "")[:8],
            branch_cell,
            event.author.name,
            event.title,
        )

    console.print(table)
    console.print(f"[dim]{len(events)} event(s)[/dim]")
