"""Provider fan-out, merge, TTL cache and single-flight."""

from .cache import CacheEntry, EventCache
from .orchestrator import FetchReport, TimelineOrchestrator, TimelineView
from .single_flight import SingleFlight

__all__ = [
    "CacheEntry",
    "EventCache",
    "FetchReport",
    "SingleFlight",
    "TimelineOrchestrator",
    "TimelineView",
]
