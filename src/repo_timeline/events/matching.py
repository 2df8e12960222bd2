"""Filter matching and filter-option derivation over normalized events."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .models import FilterCriteria, FilterOptions, NormalizedEvent


def matches(event: NormalizedEvent, criteria: Optional[FilterCriteria]) -> bool:
    """Return True if ``event`` passes every specified dimension of ``criteria``.

    Dimensions combine with AND. A dimension set to ``None`` is skipped; an
    empty list rejects every event for that dimension.
    """
    if criteria is None:
        return True

    event_type = event.type.value

    if criteria.event_types is not None and event_type not in criteria.event_types:
        return False

    if criteria.excluded_event_types and event_type in criteria.excluded_event_types:
        return False

    if criteria.branches is not None and not _intersects(event.branches, criteria.branches):
        return False

    if criteria.authors is not None:
        names = [event.author.name] + [a.name for a in event.co_authors]
        if not _intersects(names, criteria.authors):
            return False

    if criteria.providers is not None and event.provider_id not in criteria.providers:
        return False

    if criteria.tags is not None and not _intersects(event.tags, criteria.tags):
        return False

    if criteria.labels is not None and not _intersects(event.labels, criteria.labels):
        return False

    if criteria.search_query:
        query = criteria.search_query.strip().lower()
        if query:
            haystack = (event.title, event.description or "", event.hash or "")
            if not any(query in text.lower() for text in haystack):
                return False

    if criteria.date_range is not None and not criteria.date_range.contains(event.timestamp):
        return False

    return True


def apply_filters(
    events: Iterable[NormalizedEvent], criteria: Optional[FilterCriteria]
) -> list[NormalizedEvent]:
    """Order-preserving subset of ``events`` that match ``criteria``."""
    if criteria is None or criteria.is_empty():
        return list(events)
    return [e for e in events if matches(e, criteria)]


def derive_filter_options(events: Sequence[NormalizedEvent]) -> FilterOptions:
    """Compute the universe of selectable values.

    Always called with the unfiltered event set so the options offered to
    a user do not shrink as filters are applied.
    """
    branches: set[str] = set()
    authors: set[str] = set()
    event_types: set[str] = set()
    providers: set[str] = set()
    tags: set[str] = set()
    labels: set[str] = set()

    for event in events:
        branches.update(event.branches)
        authors.add(event.author.name)
        authors.update(a.name for a in event.co_authors)
        event_types.add(event.type.value)
        providers.add(event.provider_id)
        tags.update(event.tags)
        labels.update(event.labels)

    date_range = None
    if events:
        timestamps = [e.timestamp for e in events]
        date_range = (min(timestamps), max(timestamps))

    return FilterOptions(
        branches=tuple(sorted(branches)),
        authors=tuple(sorted(authors)),
        event_types=tuple(sorted(event_types)),
        providers=tuple(sorted(providers)),
        tags=tuple(sorted(tags)),
        labels=tuple(sorted(labels)),
        date_range=date_range,
    )


def _intersects(values: Iterable[str], selected: Sequence[str]) -> bool:
    wanted = set(selected)
    return any(v in wanted for v in values)
