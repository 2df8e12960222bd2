"""CLI entry point: registers all subcommands."""

import typer

from .. import __version__
from ._common import console

app = typer.Typer(
    name="repo-timeline",
    help="repo-timeline - Unified, filterable timeline of repository history",
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"repo-timeline {__version__}")
        raise typer.Exit()


@app.callback()
def _root(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
):
    """Print the event stream and filter options of a git repository."""


# Import subcommands to register them
from .events import events as _events  # noqa: F401, E402
from .options import options as _options  # noqa: F401, E402


def main() -> None:
    app()
