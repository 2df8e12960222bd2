"""Configuration exceptions."""

from typing import Any

from .base import RepoTimelineError
from .taxonomy import ErrorCode


class InvalidConfigError(RepoTimelineError):
    """Raised when configuration values or files are invalid."""

    code = ErrorCode.RT400

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason
