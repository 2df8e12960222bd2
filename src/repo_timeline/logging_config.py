"""
Logging for repo-timeline.

Library modules only call :func:`get_logger`; nothing is printed until an
application installs handlers with :func:`setup_logging`. The console gets
a rich handler on stderr whose level follows the configured verbosity. An
optional log file always records DEBUG, including the provider worker
thread each record came from, since fetches run on a thread pool.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "repo_timeline"

# TimelineConfig.verbosity -> console level
VERBOSITY_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}

FILE_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s: %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Install the console (and optional file) handler on the package logger.

    Calling it again replaces the handlers of the previous call, so the CLI
    and tests can reconfigure freely. Records do not propagate to the root
    logger.

    Args:
        verbosity: "quiet", "normal" or "verbose"
        log_file: Optional path; appended to at DEBUG level

    Returns:
        The repo_timeline logger

    Raises:
        ValueError: unknown verbosity
    """
    try:
        console_level = VERBOSITY_LEVELS[verbosity]
    except KeyError:
        raise ValueError(
            f"unknown verbosity {verbosity!r}; expected one of {', '.join(VERBOSITY_LEVELS)}"
        ) from None
    verbose = verbosity == "verbose"

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        level=console_level,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=verbose,
        show_path=verbose,
    )
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=FILE_DATE_FORMAT))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(console_level)

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger under the package namespace; ``name`` is usually ``__name__``."""
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
