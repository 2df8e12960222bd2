"""Run git subprocesses with a time budget and cooperative cancellation."""

from __future__ import annotations

import os
import shutil
import subprocess
import threading
import time
from typing import Optional, Sequence

from ..exceptions import (
    ExtractionCancelledError,
    ExtractionTimeoutError,
    GitCommandError,
    GitUnavailableError,
)
from ..logging_config import get_logger

logger = get_logger(__name__)

# How often a running git process is checked against the cancel event
_POLL_SECONDS = 0.1


def git_available(executable: str = "git") -> bool:
    return shutil.which(executable) is not None


class GitRunner:
    """Thin wrapper around ``subprocess.Popen`` for git.

    Every failure is translated into an ``ExtractionError`` subclass; raw
    ``subprocess`` exceptions never escape.
    """

    def __init__(self, executable: str = "git"):
        self.executable = executable
        self._env = dict(os.environ)
        self._env.update(
            {
                "GIT_TERMINAL_PROMPT": "0",
                "GIT_OPTIONAL_LOCKS": "0",
                "LC_ALL": "C",
            }
        )

    def run(
        self,
        args: Sequence[str],
        cwd: str,
        timeout: float,
        cancel_event: Optional[threading.Event] = None,
        check: bool = True,
    ) -> tuple[int, str, str]:
        """Run ``git <args>`` in ``cwd``.

        Returns:
            (returncode, stdout, stderr). With ``check=True`` a non-zero
            status raises GitCommandError instead.

        Raises:
            GitUnavailableError: git cannot be started
            ExtractionTimeoutError: the process outlived ``timeout``
            ExtractionCancelledError: ``cancel_event`` was set
            GitCommandError: non-zero exit (``check=True``) or killed by a signal
        """
        cmd = [self.executable, *args]
        logger.debug(f"Running: {' '.join(cmd)} (cwd={cwd})")

        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelledError(cwd)

        try:
            proc = subprocess.Popen(
                cmd,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self._env,
            )
        except FileNotFoundError as e:
            raise GitUnavailableError(str(e)) from e
        except PermissionError as e:
            raise GitUnavailableError(str(e)) from e

        deadline = time.monotonic() + timeout
        try:
            while True:
                try:
                    out, err = proc.communicate(timeout=_POLL_SECONDS)
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        self._kill(proc)
                        raise ExtractionCancelledError(cwd)
                    if time.monotonic() >= deadline:
                        self._kill(proc)
                        raise ExtractionTimeoutError(cmd, timeout)
        finally:
            if proc.poll() is None:
                self._kill(proc)

        stdout = out.decode("utf-8", errors="replace")
        stderr = err.decode("utf-8", errors="replace")
        returncode = proc.returncode

        if returncode < 0:
            raise GitCommandError(cmd, returncode, stderr)
        if check and returncode != 0:
            raise GitCommandError(cmd, returncode, stderr)
        return returncode, stdout, stderr

    @staticmethod
    def _kill(proc: subprocess.Popen) -> None:
        proc.kill()
        try:
            proc.communicate(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning(f"git process {proc.pid} did not exit after kill")
