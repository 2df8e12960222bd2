"""Git history extraction: subprocess runner, parser, branch graph, memo."""

from .git_extractor import GIT_PROVIDER_ID, GitEventExtractor
from .git_runner import GitRunner, git_available
from .memo import ExtractionMemo
from .models import (
    ExtractionConfig,
    ExtractionMetadata,
    ExtractionResult,
    RawCommit,
    RawRef,
    RepositoryInfo,
)

__all__ = [
    "GIT_PROVIDER_ID",
    "ExtractionConfig",
    "ExtractionMemo",
    "ExtractionMetadata",
    "ExtractionResult",
    "GitEventExtractor",
    "GitRunner",
    "RawCommit",
    "RawRef",
    "RepositoryInfo",
    "git_available",
]
