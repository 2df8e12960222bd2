"""Shared CLI helpers."""

from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console

from ..config import TimelineConfig, load_config
from ..exceptions import AllProvidersFailedError, RepoTimelineError
from ..logging_config import setup_logging
from ..orchestration import TimelineOrchestrator

console = Console()
err_console = Console(stderr=True)


def resolve_config(
    config: Optional[Path] = None,
    max_commits: Optional[int] = None,
    current_branch_only: bool = False,
    verbose: bool = False,
) -> TimelineConfig:
    """Build config from CLI options and set up logging to match."""
    overrides = {}
    if max_commits is not None:
        overrides["git_max_commits"] = max_commits
    if current_branch_only:
        overrides["include_all_branches"] = False
    try:
        settings = load_config(config_file=config, verbose=verbose, **overrides)
    except RepoTimelineError as e:
        fail(e)
    setup_logging(settings.verbosity)
    return settings


def build_orchestrator(settings: TimelineConfig) -> TimelineOrchestrator:
    return TimelineOrchestrator.with_default_providers(settings)


def fail(error: RepoTimelineError) -> NoReturn:
    """Print a red error (and provider causes) and exit with status 1."""
    err_console.print(f"[red]Error:[/red] {error.message}", highlight=False)
    if isinstance(error, AllProvidersFailedError):
        for provider_id, cause in sorted(error.failures.items()):
            err_console.print(f"  [dim]{provider_id}:[/dim] {cause}", highlight=False)
    elif error.details:
        for key, value in error.details.items():
            err_console.print(f"  [dim]{key}:[/dim] {value}", highlight=False)
    if error.recovery_hint:
        err_console.print(f"[yellow]Hint:[/yellow] {error.recovery_hint}", highlight=False)
    raise typer.Exit(1)
