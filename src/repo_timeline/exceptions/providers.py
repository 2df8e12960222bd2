"""Provider and orchestration exceptions."""

from typing import Dict, Mapping, Optional

from .base import RepoTimelineError
from .taxonomy import ErrorCode


class ProviderError(RepoTimelineError):
    """Base class for provider-related errors."""

    code = ErrorCode.RT203

    def __init__(self, provider_id: str, message: str, details: Optional[Dict[str, str]] = None):
        merged = {"provider": provider_id}
        merged.update(details or {})
        super().__init__(message, details=merged)
        self.provider_id = provider_id


class ProviderInitializationError(ProviderError):
    """Raised when a provider fails to initialize or is not a valid provider."""

    code = ErrorCode.RT200

    def __init__(self, provider_id: str, reason: str):
        super().__init__(provider_id, f"Provider {provider_id!r} failed to initialize", {"reason": reason})
        self.reason = reason


class ProviderTimeoutError(ProviderError):
    """Raised (or recorded) when a provider does not answer in time."""

    code = ErrorCode.RT201
    recoverable = True

    def __init__(self, provider_id: str, timeout_seconds: float):
        super().__init__(
            provider_id,
            f"Provider {provider_id!r} timed out after {timeout_seconds:g}s",
            {"timeout_seconds": f"{timeout_seconds:g}"},
        )
        self.timeout_seconds = timeout_seconds


class ProviderNotFoundError(ProviderError):
    """Raised when an operation names a provider that is not registered."""

    code = ErrorCode.RT202

    def __init__(self, provider_id: str):
        super().__init__(provider_id, f"Provider not found: {provider_id!r}")


class ProviderFetchError(ProviderError):
    """Wraps an unexpected exception raised by a provider's fetch."""

    code = ErrorCode.RT203
    recoverable = True

    def __init__(self, provider_id: str, cause: BaseException):
        super().__init__(
            provider_id,
            f"Provider {provider_id!r} failed: {cause}",
            {"cause": type(cause).__name__},
        )
        self.cause = cause


class NoHealthyProvidersError(RepoTimelineError):
    """Raised when no provider is both enabled and healthy."""

    code = ErrorCode.RT300
    recovery_hint = "Enable a provider or check its health"

    def __init__(self, repo_path: str):
        super().__init__("No enabled and healthy providers", details={"repo_path": repo_path})
        self.repo_path = repo_path


class AllProvidersFailedError(RepoTimelineError):
    """Raised when every provider consulted for a fetch failed."""

    code = ErrorCode.RT301

    def __init__(self, repo_path: str, failures: Mapping[str, BaseException]):
        super().__init__(
            f"All {len(failures)} provider(s) failed",
            details={"repo_path": repo_path, "providers": ", ".join(sorted(failures))},
        )
        self.repo_path = repo_path
        self.failures = dict(failures)
