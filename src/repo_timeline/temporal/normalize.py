"""Map raw git records onto NormalizedEvent."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Mapping, Optional

from ..events.models import (
    Author,
    EventType,
    ImpactMetrics,
    NormalizedEvent,
    VisualizationHints,
    make_canonical_id,
)
from .graph import Membership
from .models import RawCommit, RawRef

SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

_CO_AUTHOR_RE = re.compile(r"^co-authored-by:\s*(.+?)\s*<([^>]*)>\s*$", re.IGNORECASE | re.MULTILINE)

VISUALIZATION = {
    EventType.COMMIT: VisualizationHints(icon="git-commit", color="#4f8cc9"),
    EventType.MERGE: VisualizationHints(icon="git-merge", color="#8e5ec9"),
    EventType.BRANCH_CREATED: VisualizationHints(icon="git-branch", color="#3fa66b"),
    EventType.TAG: VisualizationHints(icon="tag", color="#d4a72c"),
    EventType.RELEASE: VisualizationHints(icon="package", color="#e36a2e"),
}


def is_release_tag(name: str) -> bool:
    return SEMVER_RE.match(name) is not None


def to_datetime(unix_seconds: int) -> datetime:
    return datetime.fromtimestamp(unix_seconds, tz=timezone.utc)


def make_author(name: str, email: str) -> Author:
    email = email.strip()
    return Author(id=(email.lower() or name), name=name, email=email or None)


def parse_co_authors(body: str) -> list[Author]:
    return [make_author(name, email) for name, email in _CO_AUTHOR_RE.findall(body or "")]


def commit_event(
    commit: RawCommit,
    membership: Membership,
    provider_id: str,
    known: Mapping[str, RawCommit],
    child_ids: list[str],
    tags: list[str],
) -> NormalizedEvent:
    event_type = EventType.MERGE if commit.is_merge else EventType.COMMIT
    elided = [p for p in commit.parents if p not in known]

    impact: Optional[ImpactMetrics]
    if commit.has_stats or not commit.is_merge:
        impact = ImpactMetrics(
            files_changed=commit.files_changed,
            insertions=commit.insertions,
            deletions=commit.deletions,
        )
    else:
        impact = None

    return NormalizedEvent(
        id=commit.hash,
        canonical_id=make_canonical_id(provider_id, commit.hash),
        provider_id=provider_id,
        type=event_type,
        timestamp=to_datetime(commit.commit_time),
        author=make_author(commit.author_name, commit.author_email),
        title=commit.subject,
        description=commit.body or None,
        branches=list(membership.branches),
        primary_branch=membership.primary,
        parent_ids=list(commit.parents),
        child_ids=child_ids,
        elided_parent_ids=elided,
        hash=commit.hash,
        tags=list(tags),
        co_authors=parse_co_authors(commit.body),
        impact=impact,
        visualization=VISUALIZATION[event_type],
        metadata={
            "short_hash": commit.hash[:7],
            "author_date": to_datetime(commit.author_time).isoformat(),
            "parent_count": len(commit.parents),
        },
    )


def tag_event(
    ref: RawRef, target: RawCommit, membership: Membership, provider_id: str
) -> NormalizedEvent:
    """Tag or release event anchored on the tagged commit."""
    release = is_release_tag(ref.name)
    event_type = EventType.RELEASE if release else EventType.TAG
    event_id = f"{target.hash}-tag-{ref.name}"

    if ref.tagger_time is not None:
        timestamp = to_datetime(ref.tagger_time)
        author = make_author(ref.tagger_name or target.author_name, ref.tagger_email)
    else:
        timestamp = to_datetime(target.commit_time)
        author = make_author(target.author_name, target.author_email)

    title = f"Release {ref.name}" if release else f"Tag {ref.name}"
    return NormalizedEvent(
        id=event_id,
        canonical_id=make_canonical_id(provider_id, event_id),
        provider_id=provider_id,
        type=event_type,
        timestamp=timestamp,
        author=author,
        title=title,
        description=ref.message or None,
        branches=list(membership.branches),
        primary_branch=membership.primary,
        parent_ids=[target.hash],
        hash=target.hash,
        tags=[ref.name],
        visualization=VISUALIZATION[event_type],
        metadata={"tag_name": ref.name, "annotated": ref.tagger_time is not None},
    )


def branch_created_event(
    branch: str, first: RawCommit, known: Mapping[str, RawCommit], provider_id: str
) -> NormalizedEvent:
    """Branch creation placed at the branch's first own commit."""
    event_id = f"branch-created:{branch}"
    fork_point = first.parents[0] if first.parents else None
    parent_ids = [fork_point] if fork_point else []
    elided = [p for p in parent_ids if p not in known]

    return NormalizedEvent(
        id=event_id,
        canonical_id=make_canonical_id(provider_id, event_id),
        provider_id=provider_id,
        type=EventType.BRANCH_CREATED,
        timestamp=to_datetime(first.commit_time),
        author=make_author(first.author_name, first.author_email),
        title=f"Branch {branch} created",
        branches=[branch],
        primary_branch=branch,
        parent_ids=parent_ids,
        elided_parent_ids=elided,
        hash=first.hash,
        visualization=VISUALIZATION[EventType.BRANCH_CREATED],
        metadata={"branch": branch, "first_commit": first.hash, "fork_point": fork_point},
    )
