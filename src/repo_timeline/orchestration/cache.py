"""TTL cache of merged provider results, keyed by repository path."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from ..events.models import FilterOptions, NormalizedEvent
from ..logging_config import get_logger

if TYPE_CHECKING:
    from .orchestrator import FetchReport

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    events: list[NormalizedEvent]
    fetched_at: float
    ttl: float
    provider_ids: tuple[str, ...]
    filter_options: FilterOptions
    report: Optional["FetchReport"] = None

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at <= self.ttl


class EventCache:
    """Missing -> Fresh on put; Fresh -> Stale once the TTL has elapsed.

    A stale entry is dropped on the next ``get``. ``clock`` is injectable so
    expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[CacheEntry]:
        """Fresh entry for ``key``, or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_fresh(self._clock()):
                logger.debug(f"Cache entry for {key} is stale")
                del self._entries[key]
                return None
            return entry

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Entry for ``key`` regardless of freshness."""
        with self._lock:
            return self._entries.get(key)

    def put(
        self,
        key: str,
        events: list[NormalizedEvent],
        provider_ids: tuple[str, ...],
        filter_options: FilterOptions,
        report: Optional["FetchReport"] = None,
    ) -> CacheEntry:
        entry = CacheEntry(
            events=events,
            fetched_at=self._clock(),
            ttl=self.ttl,
            provider_ids=provider_ids,
            filter_options=filter_options,
            report=report,
        )
        with self._lock:
            self._entries[key] = entry
        return entry

    def invalidate(self, key: Optional[str] = None) -> int:
        """Drop one entry, or all entries when ``key`` is None."""
        with self._lock:
            if key is None:
                count = len(self._entries)
                self._entries.clear()
                return count
            return 1 if self._entries.pop(key, None) is not None else 0

    def invalidate_provider(self, provider_id: str) -> int:
        """Drop every entry that includes events from ``provider_id``."""
        with self._lock:
            keys = [k for k, e in self._entries.items() if provider_id in e.provider_ids]
            for k in keys:
                del self._entries[k]
            return len(keys)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
