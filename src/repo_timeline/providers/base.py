"""Provider contract: every source of timeline events implements TimelineProvider."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Optional

from ..events.models import EventType, FilterOptions, NormalizedEvent


@dataclass(frozen=True)
class ProviderCapabilities:
    supported_event_types: FrozenSet[EventType] = frozenset()
    supports_historical_data: bool = True
    supports_filtering: bool = False
    supports_real_time_updates: bool = False
    supports_authentication: bool = False
    supports_write_operations: bool = False
    supports_search: bool = False


@dataclass
class ProviderConfig:
    """Settings handed to ``initialize``; ``settings`` is provider specific."""

    enabled: bool = True
    settings: dict[str, Any] = field(default_factory=dict)


@dataclass
class ProviderContext:
    """What a provider needs to fetch events for one repository."""

    repo_path: str
    force_refresh: bool = False
    # Set by the orchestrator when the fetch is abandoned (timeout, dispose)
    cancel_event: Optional[threading.Event] = None
    settings: dict[str, Any] = field(default_factory=dict)


class TimelineProvider(ABC):
    """A pluggable source of normalized events.

    Implementations must be safe to call from a worker thread; the
    orchestrator fetches from every healthy provider concurrently.
    """

    id: str
    name: str
    version: str
    capabilities: ProviderCapabilities

    @abstractmethod
    def initialize(self, config: ProviderConfig) -> None:
        """Prepare the provider. Raise to reject registration."""

    @abstractmethod
    def fetch_events(self, context: ProviderContext) -> list[NormalizedEvent]:
        """Return the events for ``context.repo_path``."""

    @abstractmethod
    def get_filter_options(self, context: ProviderContext) -> FilterOptions:
        """Return the selectable filter values for ``context.repo_path``."""

    @abstractmethod
    def is_healthy(self) -> bool:
        """Cheap, side-effect free health check."""

    def dispose(self) -> None:
        """Release resources; the provider is not used afterwards."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={getattr(self, 'id', '?')!r}>"
