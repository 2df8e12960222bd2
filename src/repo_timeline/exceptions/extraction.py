"""Extraction-related exceptions: repository resolution, git subprocess, parsing."""

from pathlib import Path
from typing import Optional, Sequence, Union

from .base import RepoTimelineError
from .taxonomy import ErrorCode

PathLike = Union[str, Path]


class ExtractionError(RepoTimelineError):
    """Base class for errors raised by the git extraction engine."""

    code = ErrorCode.RT103


class RepositoryNotFoundError(ExtractionError):
    """Raised when the repository path does not exist."""

    code = ErrorCode.RT100
    recovery_hint = "Check the repository path for typos"

    def __init__(self, path: PathLike):
        super().__init__(f"Repository path does not exist: {path}", details={"path": str(path)})
        self.path = path


class NotAVersionControlRepositoryError(ExtractionError):
    """Raised when the path exists but holds no git metadata."""

    code = ErrorCode.RT101
    recovery_hint = "Run 'git init' or point at a directory inside a git work tree"

    def __init__(self, path: PathLike, reason: str = ""):
        details = {"path": str(path)}
        if reason:
            details["reason"] = reason
        super().__init__(f"Not a git repository: {path}", details=details)
        self.path = path
        self.reason = reason


class GitUnavailableError(ExtractionError):
    """Raised when the git executable cannot be started."""

    code = ErrorCode.RT102
    recovery_hint = "Install git and make sure it is on PATH"

    def __init__(self, reason: str):
        super().__init__("git executable is not available", details={"reason": reason})
        self.reason = reason


class GitCommandError(ExtractionError):
    """Raised when git exits with a non-zero status or is killed by a signal."""

    code = ErrorCode.RT103

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        command = " ".join(args)
        details = {"command": command, "returncode": str(returncode)}
        if stderr:
            details["stderr"] = stderr.strip()[:500]
        if returncode < 0:
            message = f"git terminated by signal {-returncode}"
        else:
            message = f"git exited with status {returncode}"
        super().__init__(message, details=details)
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr


class ExtractionTimeoutError(ExtractionError):
    """Raised when a git subprocess exceeds its time budget."""

    code = ErrorCode.RT104
    recoverable = True
    recovery_hint = "Raise git_timeout_seconds or lower git_max_commits"

    def __init__(self, args: Sequence[str], timeout_seconds: float):
        super().__init__(
            f"git did not finish within {timeout_seconds:g}s",
            details={"command": " ".join(args), "timeout_seconds": f"{timeout_seconds:g}"},
        )
        self.timeout_seconds = timeout_seconds


class ExtractionCancelledError(ExtractionError):
    """Raised when extraction is cancelled through its cancel event."""

    code = ErrorCode.RT105
    recoverable = True

    def __init__(self, path: Optional[PathLike] = None):
        details = {"path": str(path)} if path is not None else None
        super().__init__("Extraction cancelled", details=details)


class ParseError(ExtractionError):
    """Raised when git output cannot be parsed.

    Raised per record (and recovered by skipping it), or once for the whole
    log when not a single record could be parsed.
    """

    code = ErrorCode.RT110
    recoverable = True

    def __init__(self, reason: str, record: str = "", skipped: Optional[int] = None):
        details = {"reason": reason}
        if record:
            details["record"] = record[:120]
        if skipped is not None:
            details["skipped"] = str(skipped)
        super().__init__(f"Failed to parse git output: {reason}", details=details)
        self.reason = reason
        self.record = record
