"""Data models for the normalized timeline event stream."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Tuple


class EventType(str, Enum):
    """Normalized event types across all providers."""

    # Git events
    COMMIT = "commit"
    MERGE = "merge"
    BRANCH_CREATED = "branch-created"
    BRANCH_DELETED = "branch-deleted"
    TAG = "tag"
    RELEASE = "release"

    # Hosted platform events
    PR_OPENED = "pr-opened"
    PR_MERGED = "pr-merged"
    ISSUE_OPENED = "issue-opened"
    ISSUE_CLOSED = "issue-closed"

    # CI events
    BUILD_SUCCESS = "build-success"
    BUILD_FAILED = "build-failed"

    # Knowledge events (emitted by intelligence providers)
    LEARNING_STORED = "learning-stored"
    PATTERN_DETECTED = "pattern-detected"
    ADR_RECORDED = "adr-recorded"

    CUSTOM = "custom"


# Secondary sort rank for events sharing timestamp and hash: a commit sorts
# before the branch/tag events synthesized from it.
_TYPE_RANK = {
    EventType.COMMIT: 0,
    EventType.MERGE: 0,
    EventType.BRANCH_CREATED: 1,
    EventType.TAG: 2,
    EventType.RELEASE: 2,
}


@dataclass(frozen=True)
class Author:
    id: str
    name: str
    email: Optional[str] = None


@dataclass(frozen=True)
class ImpactMetrics:
    files_changed: int = 0
    insertions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class VisualizationHints:
    icon: str
    color: str


@dataclass(frozen=True)
class EventSource:
    """Another provider's view of the same underlying event."""

    provider_id: str
    event_id: str
    canonical_id: str


@dataclass
class NormalizedEvent:
    """Provider-agnostic representation of one history item.

    ``canonical_id`` is ``"<provider_id>:<id>"`` and is stable across
    re-extraction. ``elided_parent_ids`` lists the parents that exist but
    were cut off by a history bound; every other parent id is expected to
    be present in the same result set.
    """

    id: str
    canonical_id: str
    provider_id: str
    type: EventType
    timestamp: datetime
    author: Author
    title: str
    branches: list[str]
    primary_branch: str
    description: Optional[str] = None
    parent_ids: list[str] = field(default_factory=list)
    child_ids: list[str] = field(default_factory=list)
    elided_parent_ids: list[str] = field(default_factory=list)
    hash: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    co_authors: list[Author] = field(default_factory=list)
    impact: Optional[ImpactMetrics] = None
    visualization: Optional[VisualizationHints] = None
    sources: list[EventSource] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.branches:
            raise ValueError(f"event {self.canonical_id!r} must belong to at least one branch")
        if self.primary_branch not in self.branches:
            raise ValueError(
                f"primary branch {self.primary_branch!r} is not among the branches "
                f"of event {self.canonical_id!r}"
            )
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=timezone.utc)

    @property
    def is_merge(self) -> bool:
        return len(self.parent_ids) > 1

    def sort_key(self) -> Tuple[datetime, str, int, str]:
        return (
            self.timestamp,
            self.hash or self.id,
            _TYPE_RANK.get(self.type, 3),
            self.canonical_id,
        )


def make_canonical_id(provider_id: str, event_id: str) -> str:
    return f"{provider_id}:{event_id}"


def sort_events(events: Sequence[NormalizedEvent]) -> list[NormalizedEvent]:
    """Chronological order, ties broken by hash then type rank then id."""
    return sorted(events, key=NormalizedEvent.sort_key)


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range; a missing bound is unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, moment: datetime) -> bool:
        moment = _aware(moment)
        if self.start is not None and moment < _aware(self.start):
            return False
        if self.end is not None and moment > _aware(self.end):
            return False
        return True

    def to_dict(self) -> dict[str, Optional[str]]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }

    @classmethod
    def from_value(cls, value: Any) -> "DateRange":
        """Build from a DateRange, a mapping with start/end, or a 2-sequence."""
        if isinstance(value, DateRange):
            return value
        if isinstance(value, Mapping):
            start, end = value.get("start"), value.get("end")
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            start, end = value
        else:
            raise ValueError(f"cannot interpret {value!r} as a date range")
        return cls(start=_parse_moment(start), end=_parse_moment(end))


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _parse_moment(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _aware(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"timestamp {value!r} is out of range") from e
    if isinstance(value, str):
        return _aware(datetime.fromisoformat(value.replace("Z", "+00:00")))
    raise ValueError(f"cannot interpret {value!r} as a timestamp")


# Keys accepted from camelCase producers (the editor host persists filter
# state with these names) mapped onto FilterState field names.
_FIELD_ALIASES = {
    "selectedEventTypes": "event_types",
    "eventTypes": "event_types",
    "excludedEventTypes": "excluded_event_types",
    "selectedBranches": "branches",
    "selectedAuthors": "authors",
    "selectedProviders": "providers",
    "selectedTags": "tags",
    "selectedLabels": "labels",
    "searchQuery": "search_query",
    "dateRange": "date_range",
    "colorMode": "color_mode",
    "showConnections": "show_connections",
    "enabledProviders": "enabled_providers",
    "timeWindow": "time_window",
}

_LIST_FIELDS = (
    "event_types",
    "excluded_event_types",
    "branches",
    "authors",
    "providers",
    "tags",
    "labels",
)


@dataclass
class FilterCriteria:
    """Per-dimension filter selection.

    For every list field: ``None`` lets all values pass, a populated list
    lets only the listed values pass, and an empty list lets nothing pass.
    ``excluded_event_types`` is the inverse: listed types are hidden, so an
    empty list hides nothing.
    """

    event_types: Optional[list[str]] = None
    excluded_event_types: Optional[list[str]] = None
    branches: Optional[list[str]] = None
    authors: Optional[list[str]] = None
    providers: Optional[list[str]] = None
    tags: Optional[list[str]] = None
    labels: Optional[list[str]] = None
    search_query: Optional[str] = None
    date_range: Optional[DateRange] = None

    def __post_init__(self) -> None:
        for name in _LIST_FIELDS:
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, _as_str_list(name, value))
        if self.search_query is not None and not isinstance(self.search_query, str):
            raise ValueError("search_query must be a string")
        if self.date_range is not None and not isinstance(self.date_range, DateRange):
            self.date_range = DateRange.from_value(self.date_range)

    @classmethod
    def filter_field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(FilterCriteria))

    def is_empty(self) -> bool:
        """True when no filter dimension is defined (show everything)."""
        return all(getattr(self, name) is None for name in self.filter_field_names())

    def to_dict(self) -> dict[str, Any]:
        """Serializable form; ``None`` fields are omitted, empty lists kept."""
        result: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, DateRange):
                value = value.to_dict()
            else:
                value = copy.deepcopy(value)
            result[f.name] = value
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """Build from a mapping, accepting snake_case and camelCase keys.

        Unknown keys are ignored. Raises ValueError/TypeError on values of
        the wrong shape.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            name = _FIELD_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return cls(**kwargs)

    def merged_with(self, partial: Mapping[str, Any]):
        """Copy with only the keys present in ``partial`` replaced."""
        data = self.to_dict()
        for key, value in partial.items():
            name = _FIELD_ALIASES.get(key, key)
            if value is None:
                data.pop(name, None)
            else:
                data[name] = value
        return type(self).from_dict(data)

    def copy(self):
        return copy.deepcopy(self)


@dataclass
class FilterState(FilterCriteria):
    """FilterCriteria plus per-repository UI settings that never filter."""

    color_mode: Optional[str] = None
    show_connections: Optional[bool] = None
    enabled_providers: Optional[list[str]] = None
    time_window: Optional[dict[str, Any]] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.enabled_providers is not None:
            self.enabled_providers = _as_str_list("enabled_providers", self.enabled_providers)
        if self.time_window is not None and not isinstance(self.time_window, Mapping):
            raise ValueError("time_window must be a mapping")
        if self.show_connections is not None and not isinstance(self.show_connections, bool):
            raise ValueError("show_connections must be a boolean")

    def criteria(self) -> FilterCriteria:
        """The filtering part only."""
        return FilterCriteria(
            **{name: copy.deepcopy(getattr(self, name)) for name in self.filter_field_names()}
        )


def _as_str_list(name: str, value: Any) -> list[str]:
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValueError(f"{name} must be a list of strings, got {type(value).__name__}")
    items: list[str] = []
    for item in value:
        if isinstance(item, Enum):
            item = item.value
        if not isinstance(item, str):
            raise ValueError(f"{name} must contain only strings, got {item!r}")
        items.append(item)
    return items


@dataclass(frozen=True)
class FilterOptions:
    """Universe of selectable values, computed from the unfiltered events."""

    branches: Tuple[str, ...] = ()
    authors: Tuple[str, ...] = ()
    event_types: Tuple[str, ...] = ()
    providers: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    labels: Tuple[str, ...] = ()
    date_range: Optional[Tuple[datetime, datetime]] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "branches": list(self.branches),
            "authors": list(self.authors),
            "event_types": list(self.event_types),
            "providers": list(self.providers),
            "tags": list(self.tags),
            "labels": list(self.labels),
            "date_range": (
                [self.date_range[0].isoformat(), self.date_range[1].isoformat()]
                if self.date_range
                else None
            ),
        }


def event_to_dict(event: NormalizedEvent) -> dict[str, Any]:
    """JSON-friendly representation used by the CLI and debug exports."""
    return {
        "id": event.id,
        "canonical_id": event.canonical_id,
        "provider_id": event.provider_id,
        "type": event.type.value,
        "timestamp": event.timestamp.isoformat(),
        "author": {"id": event.author.id, "name": event.author.name, "email": event.author.email},
        "title": event.title,
        "description": event.description,
        "branches": list(event.branches),
        "primary_branch": event.primary_branch,
        "parent_ids": list(event.parent_ids),
        "child_ids": list(event.child_ids),
        "elided_parent_ids": list(event.elided_parent_ids),
        "hash": event.hash,
        "tags": list(event.tags),
        "labels": list(event.labels),
        "impact": (
            {
                "files_changed": event.impact.files_changed,
                "insertions": event.impact.insertions,
                "deletions": event.impact.deletions,
            }
            if event.impact
            else None
        ),
        "visualization": (
            {"icon": event.visualization.icon, "color": event.visualization.color}
            if event.visualization
            else None
        ),
        "sources": [s.canonical_id for s in event.sources],
        "metadata": event.metadata,
    }
