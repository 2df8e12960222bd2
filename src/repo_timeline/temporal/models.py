"""Data models for git history extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..events.models import Author, NormalizedEvent


@dataclass
class RawCommit:
    """One parsed ``git log`` record."""

    hash: str
    parents: list[str]
    author_name: str
    author_email: str
    author_time: int  # unix seconds
    commit_time: int  # unix seconds
    subject: str
    body: str = ""
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0
    has_stats: bool = False  # merges usually carry no numstat lines

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1


@dataclass
class RawRef:
    """One parsed ``git for-each-ref`` line."""

    name: str  # short name, e.g. "main", "origin/feature", "v1.0.0"
    kind: str  # "branch" | "remote" | "tag"
    target: str  # commit the ref points at (tags peeled)
    tagger_time: Optional[int] = None  # annotated tags only
    tagger_name: str = ""
    tagger_email: str = ""
    message: str = ""


@dataclass(frozen=True)
class ExtractionConfig:
    max_commits: int = 1000
    include_all_branches: bool = True
    timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if self.max_commits < 1:
            raise ValueError("max_commits must be at least 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    def fingerprint(self) -> tuple:
        """Memo key component; only fields that change the output."""
        return (self.max_commits, self.include_all_branches)


@dataclass(frozen=True)
class RepositoryInfo:
    """Resolved facts about a repository.

    ``root`` and the git directories are stable and cached per input path;
    the HEAD fields are read again on every extraction that misses the memo.
    """

    root: str
    git_dir: str
    common_dir: str  # differs from git_dir inside a linked worktree
    head_branch: Optional[str] = None  # None when HEAD is detached
    head_commit: Optional[str] = None  # None for an empty repository


@dataclass
class ExtractionMetadata:
    total_events: int = 0
    unique_authors: int = 0
    total_branches: int = 0
    extracted_at: Optional[datetime] = None
    repository_root: str = ""
    head_branch: Optional[str] = None
    truncated: bool = False
    elided_references: list[str] = field(default_factory=list)
    skipped_records: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_events": self.total_events,
            "unique_authors": self.unique_authors,
            "total_branches": self.total_branches,
            "extracted_at": self.extracted_at.isoformat() if self.extracted_at else None,
            "repository_root": self.repository_root,
            "head_branch": self.head_branch,
            "truncated": self.truncated,
            "elided_references": list(self.elided_references),
            "skipped_records": self.skipped_records,
        }


@dataclass
class ExtractionResult:
    events: list[NormalizedEvent]  # chronological
    relationships: list[tuple[str, str]]  # (parent id, child id)
    branches: set[str]
    authors: set[Author]
    date_range: Optional[tuple[datetime, datetime]]
    metadata: ExtractionMetadata

    @property
    def total_events(self) -> int:
        return len(self.events)
