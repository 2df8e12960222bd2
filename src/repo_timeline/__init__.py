"""
repo-timeline - unified, filterable timeline of repository history

Reconstructs the commit DAG of a git repository, merges it with events from
other pluggable providers, caches the result and applies per-dimension
filters with exact AND semantics.
"""

__version__ = "0.1.0"

from .config import TimelineConfig, load_config
from .events import EventType, FilterCriteria, FilterOptions, FilterState, NormalizedEvent
from .filters import FilterStateStore
from .orchestration import TimelineOrchestrator, TimelineView
from .providers import GitLocalProvider, ProviderRegistry, TimelineProvider
from .temporal import ExtractionConfig, ExtractionResult, GitEventExtractor

__all__ = [
    "TimelineOrchestrator",  # Main entry point
    "TimelineView",
    "TimelineConfig",
    "load_config",
    "EventType",
    "NormalizedEvent",
    "FilterCriteria",
    "FilterState",
    "FilterOptions",
    "FilterStateStore",
    "ProviderRegistry",
    "TimelineProvider",
    "GitLocalProvider",
    "GitEventExtractor",
    "ExtractionConfig",
    "ExtractionResult",
]
