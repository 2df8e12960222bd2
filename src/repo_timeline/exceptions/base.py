"""Base exception for repo-timeline."""

from typing import Any, Dict, Optional

from .taxonomy import ErrorCode


class RepoTimelineError(Exception):
    """Base exception for all repo-timeline errors.

    Attributes:
        message: Human-readable error description
        details: Flat string context (path, provider id, ...)
        code: Structured error code for categorization
        recoverable: Whether callers may continue with a degraded result
        recovery_hint: Suggested fix for the user
    """

    code: ErrorCode = ErrorCode.RT400
    recoverable: bool = False
    recovery_hint: Optional[str] = None

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code.value}] {self.message} ({details_str})"
        return f"[{self.code.value}] {self.message}"

    def to_json(self) -> Dict[str, Any]:
        """Structured logging format."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "context": dict(self.details),
            "recoverable": self.recoverable,
            "recovery_hint": self.recovery_hint,
        }
