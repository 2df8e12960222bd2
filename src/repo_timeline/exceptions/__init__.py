"""Exception hierarchy for repo-timeline."""

from .base import RepoTimelineError
from .config import InvalidConfigError
from .extraction import (
    ExtractionCancelledError,
    ExtractionError,
    ExtractionTimeoutError,
    GitCommandError,
    GitUnavailableError,
    NotAVersionControlRepositoryError,
    ParseError,
    RepositoryNotFoundError,
)
from .providers import (
    AllProvidersFailedError,
    NoHealthyProvidersError,
    ProviderError,
    ProviderFetchError,
    ProviderInitializationError,
    ProviderNotFoundError,
    ProviderTimeoutError,
)
from .taxonomy import ErrorCode

__all__ = [
    "ErrorCode",
    "RepoTimelineError",
    "ExtractionError",
    "RepositoryNotFoundError",
    "NotAVersionControlRepositoryError",
    "GitUnavailableError",
    "GitCommandError",
    "ExtractionTimeoutError",
    "ExtractionCancelledError",
    "ParseError",
    "ProviderError",
    "ProviderInitializationError",
    "ProviderTimeoutError",
    "ProviderNotFoundError",
    "ProviderFetchError",
    "NoHealthyProvidersError",
    "AllProvidersFailedError",
    "InvalidConfigError",
]
