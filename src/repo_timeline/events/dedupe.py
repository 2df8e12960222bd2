"""Deduplicate events and link the same history item across providers."""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from ..logging_config import get_logger
from .models import EventSource, EventType, NormalizedEvent

logger = get_logger(__name__)

# Shortest hash prefix two providers may use to refer to one commit
_MIN_HASH_PREFIX = 7

_COMMIT_TYPES = {EventType.COMMIT, EventType.MERGE, EventType.PR_MERGED}
_TAG_TYPES = {EventType.TAG, EventType.RELEASE}
_PR_TYPES = {EventType.PR_OPENED, EventType.PR_MERGED}

_VERSION_PREFIX = re.compile(r"^(?:release[-/_]?|v(?=\d))", re.IGNORECASE)


@dataclass
class DeduplicationStats:
    total_input: int = 0
    total_output: int = 0
    duplicates_removed: int = 0
    linked_groups: int = 0


@dataclass
class DeduplicationResult:
    events: list[NormalizedEvent] = field(default_factory=list)
    stats: DeduplicationStats = field(default_factory=DeduplicationStats)


def normalize_tag_name(name: str) -> str:
    """'v1.2.0', 'release-1.2.0' and '1.2.0' all normalize to '1.2.0'."""
    return _VERSION_PREFIX.sub("", name.strip()).lower()


class EventMatcher:
    """Merges the per-provider event lists of one repository.

    Exact duplicates (same canonical id) are collapsed to the first
    occurrence. Events from different providers that describe the same
    commit, tag or pull request are both kept and cross-referenced through
    their ``sources`` lists.
    """

    def deduplicate(self, events: Sequence[NormalizedEvent]) -> DeduplicationResult:
        unique: list[NormalizedEvent] = []
        seen: set[str] = set()
        for event in events:
            if event.canonical_id in seen:
                continue
            seen.add(event.canonical_id)
            unique.append(event)

        merged, linked = self._link_cross_provider(unique)

        stats = DeduplicationStats(
            total_input=len(events),
            total_output=len(merged),
            duplicates_removed=len(events) - len(merged),
            linked_groups=linked,
        )
        if stats.duplicates_removed or linked:
            logger.debug(
                f"Dedupe: {stats.total_input} -> {stats.total_output} events "
                f"({stats.duplicates_removed} duplicates, {linked} cross-provider links)"
            )
        return DeduplicationResult(events=merged, stats=stats)

    def _link_cross_provider(
        self, events: list[NormalizedEvent]
    ) -> tuple[list[NormalizedEvent], int]:
        """Return events with ``sources`` filled in, plus the number of linked groups.

        Input events are never mutated; linked events are replaced by copies
        since provider results may be memoized and shared.
        """
        if len({e.provider_id for e in events}) < 2:
            return events, 0

        buckets: dict[tuple[str, str], list[NormalizedEvent]] = defaultdict(list)
        for event in events:
            key = self._match_key(event)
            if key is not None:
                buckets[key].append(event)

        new_sources: dict[str, list[EventSource]] = {}
        linked = 0
        for (kind, _), group in buckets.items():
            if len({e.provider_id for e in group}) < 2:
                continue
            group_linked = False
            for event in group:
                for other in group:
                    if other.provider_id == event.provider_id:
                        continue
                    if kind == "commit" and not _hashes_match(_commit_hash(event), _commit_hash(other)):
                        continue
                    sources = new_sources.setdefault(event.canonical_id, list(event.sources))
                    if not any(s.canonical_id == other.canonical_id for s in sources):
                        sources.append(
                            EventSource(
                                provider_id=other.provider_id,
                                event_id=other.id,
                                canonical_id=other.canonical_id,
                            )
                        )
                    group_linked = True
            if group_linked:
                linked += 1

        if not new_sources:
            return events, 0
        merged = [
            replace(e, sources=new_sources[e.canonical_id]) if e.canonical_id in new_sources else e
            for e in events
        ]
        return merged, linked

    @staticmethod
    def _match_key(event: NormalizedEvent) -> Optional[tuple[str, str]]:
        if event.type in _TAG_TYPES:
            name = event.metadata.get("tag_name") or (event.tags[0] if event.tags else None)
            if name:
                return ("tag", normalize_tag_name(name))
        if event.type in _COMMIT_TYPES:
            commit_hash = _commit_hash(event)
            if commit_hash and len(commit_hash) >= _MIN_HASH_PREFIX:
                return ("commit", commit_hash[:_MIN_HASH_PREFIX])
        if event.type in _PR_TYPES:
            number = event.metadata.get("pull_request_number")
            if number is not None:
                return ("pr", str(number))
        return None


def _commit_hash(event: NormalizedEvent) -> Optional[str]:
    value = event.hash or event.metadata.get("sha") or event.metadata.get("merge_commit_sha")
    if isinstance(value, str) and value:
        return value.lower()
    return None


def _hashes_match(a: Optional[str], b: Optional[str]) -> bool:
    if not a or not b:
        return False
    return a.startswith(b) or b.startswith(a)
