"""Normalized event model, filter matching and cross-provider dedupe."""

from .dedupe import DeduplicationResult, DeduplicationStats, EventMatcher, normalize_tag_name
from .matching import apply_filters, derive_filter_options, matches
from .models import (
    Author,
    DateRange,
    EventSource,
    EventType,
    FilterCriteria,
    FilterOptions,
    FilterState,
    ImpactMetrics,
    NormalizedEvent,
    VisualizationHints,
    event_to_dict,
    make_canonical_id,
    sort_events,
)

__all__ = [
    "Author",
    "DateRange",
    "DeduplicationResult",
    "DeduplicationStats",
    "EventMatcher",
    "EventSource",
    "EventType",
    "FilterCriteria",
    "FilterOptions",
    "FilterState",
    "ImpactMetrics",
    "NormalizedEvent",
    "VisualizationHints",
    "apply_filters",
    "derive_filter_options",
    "event_to_dict",
    "make_canonical_id",
    "matches",
    "normalize_tag_name",
    "sort_events",
]
