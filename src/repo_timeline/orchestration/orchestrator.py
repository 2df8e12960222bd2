"""Fan out to providers, merge their events and serve them from a TTL cache."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from ..config import TimelineConfig
from ..events.dedupe import EventMatcher
from ..events.matching import apply_filters, derive_filter_options
from ..events.models import FilterCriteria, FilterOptions, FilterState, NormalizedEvent, sort_events
from ..exceptions import (
    AllProvidersFailedError,
    NoHealthyProvidersError,
    ProviderFetchError,
    ProviderTimeoutError,
    RepoTimelineError,
)
from ..filters.store import FilterStateStore
from ..logging_config import get_logger
from ..paths import normalize_repo_path
from ..providers.base import ProviderConfig, ProviderContext, TimelineProvider
from ..providers.registry import ProviderRegistry, create_provider
from .cache import CacheEntry, EventCache
from .single_flight import SingleFlight

logger = get_logger(__name__)

CriteriaLike = Union[FilterCriteria, Mapping[str, Any], None]


@dataclass
class FetchReport:
    """Outcome of one provider fan-out for a repository."""

    repo_path: str
    succeeded: list[str] = field(default_factory=list)
    failures: dict[str, RepoTimelineError] = field(default_factory=dict)
    event_count: int = 0
    duration_seconds: float = 0.0

    @property
    def partial(self) -> bool:
        return bool(self.succeeded) and bool(self.failures)


@dataclass
class TimelineView:
    all_events: list[NormalizedEvent]
    filtered_events: list[NormalizedEvent]
    filter_options: FilterOptions
    applied_filters: FilterCriteria


class TimelineOrchestrator:
    """Single entry point for consumers of the timeline.

    Usage:
        with TimelineOrchestrator.with_default_providers() as orchestrator:
            view = orchestrator.get_events_with_filters("/path/to/repo")
            print(len(view.filtered_events), view.filter_options.branches)
    """

    def __init__(
        self,
        registry: Optional[ProviderRegistry] = None,
        filter_store: Optional[FilterStateStore] = None,
        config: Optional[TimelineConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or TimelineConfig()
        self.registry = registry or ProviderRegistry()
        self.filter_store = filter_store or FilterStateStore()
        self.provider_timeout = self.config.provider_timeout_seconds

        self._cache = EventCache(self.config.cache_ttl_seconds, clock)
        self._flight: SingleFlight[CacheEntry] = SingleFlight()
        self._matcher = EventMatcher()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="timeline-provider"
        )
        self._reports: dict[str, FetchReport] = {}
        self._active_cancels: set[threading.Event] = set()
        self._lock = threading.Lock()
        self._disposed = False
        # Bumped on every registry change; a fetch that spans one is not cached
        self._generation = 0

        self.registry.add_listener(self._on_registry_change)

    @classmethod
    def with_default_providers(
        cls, config: Optional[TimelineConfig] = None, **kwargs: Any
    ) -> "TimelineOrchestrator":
        """Orchestrator with the local git provider registered from ``config``."""
        config = config or TimelineConfig()
        orchestrator = cls(config=config, **kwargs)
        orchestrator.register_provider(
            create_provider("git-local"),
            ProviderConfig(
                enabled=True,
                settings={
                    "max_commits": config.git_max_commits,
                    "include_all_branches": config.include_all_branches,
                    "timeout_seconds": config.git_timeout_seconds,
                    "memo_ttl_seconds": config.memo_ttl_seconds,
                    "session_ttl_seconds": config.session_cache_ttl_seconds,
                },
            ),
        )
        return orchestrator

    # -- events -----------------------------------------------------------

    def get_events(self, repo_path: str, force_refresh: bool = False) -> list[NormalizedEvent]:
        """Merged, deduplicated, chronologically sorted events of all healthy providers.

        Raises:
            NoHealthyProvidersError: no provider is enabled and healthy
            AllProvidersFailedError: every consulted provider failed
        """
        return list(self._get_entry(repo_path, force_refresh).events)

    def get_filtered_events(
        self, repo_path: str, criteria: CriteriaLike = None
    ) -> list[NormalizedEvent]:
        """Events of ``repo_path`` matching ``criteria``; the cache is not modified."""
        events = self._get_entry(repo_path, False).events
        return apply_filters(events, _as_criteria(criteria))

    def get_events_with_filters(
        self, repo_path: str, criteria: CriteriaLike = None, force_refresh: bool = False
    ) -> TimelineView:
        """All events, filtered events and option universe in one call.

        Without ``criteria`` the repository's persisted filter state is
        applied; without persisted state nothing is filtered.
        """
        entry = self._get_entry(repo_path, force_refresh)
        if criteria is None:
            applied = self.filter_store.get_filter_state(repo_path).criteria()
        else:
            applied = _as_criteria(criteria)
        return TimelineView(
            all_events=list(entry.events),
            filtered_events=apply_filters(entry.events, applied),
            filter_options=entry.filter_options,
            applied_filters=applied,
        )

    def get_filter_options(self, repo_path: str) -> FilterOptions:
        """Option universe computed from the unfiltered events."""
        return self._get_entry(repo_path, False).filter_options

    def invalidate_cache(self, repo_path: Optional[str] = None) -> None:
        key = None if repo_path is None else _cache_key(repo_path)
        dropped = self._cache.invalidate(key)
        logger.debug(f"Invalidated {dropped} cache entr{'y' if dropped == 1 else 'ies'}")

    def last_fetch_report(self, repo_path: str) -> Optional[FetchReport]:
        with self._lock:
            return self._reports.get(_cache_key(repo_path))

    # -- providers --------------------------------------------------------

    def register_provider(
        self, provider: TimelineProvider, config: Optional[ProviderConfig] = None
    ) -> None:
        self.registry.register(provider, config)

    def set_provider_enabled(self, provider_id: str, enabled: bool) -> None:
        """Cache entries affected by the change are invalidated."""
        self.registry.set_enabled(provider_id, enabled)

    def is_provider_enabled(self, provider_id: str) -> bool:
        return self.registry.is_enabled(provider_id)

    def enabled_provider_ids(self) -> list[str]:
        return [p.id for p in self.registry.enabled_providers()]

    def _on_registry_change(self, change: str, provider_id: str) -> None:
        with self._lock:
            self._generation += 1
            if change in ("disabled", "unregistered"):
                self._cache.invalidate_provider(provider_id)
            else:
                # A newly available provider adds events to every repository
                self._cache.invalidate()

    # -- filter state -----------------------------------------------------

    def get_filter_state(self, repo_path: str) -> FilterState:
        return self.filter_store.get_filter_state(repo_path)

    def update_filter_state(self, repo_path: str, partial: Mapping[str, Any]) -> FilterState:
        self.filter_store.update_filter_state(repo_path, partial)
        return self.filter_store.get_filter_state(repo_path)

    def reset_filter_state(self, repo_path: str) -> None:
        self.filter_store.reset_filter_state(repo_path)

    # -- lifecycle --------------------------------------------------------

    def dispose(self) -> None:
        """Cancel in-flight fetches, drop the cache and dispose every provider."""
        if self._disposed:
            return
        self._disposed = True
        with self._lock:
            for cancel in self._active_cancels:
                cancel.set()
        self.registry.remove_listener(self._on_registry_change)
        for provider in self.registry.providers():
            self.registry.unregister(provider.id)
        self._cache.invalidate()
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Orchestrator disposed")

    def __enter__(self) -> "TimelineOrchestrator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.dispose()

    # -- internals --------------------------------------------------------

    def _get_entry(self, repo_path: str, force_refresh: bool) -> CacheEntry:
        if self._disposed:
            raise RuntimeError("TimelineOrchestrator has been disposed")

        key = _cache_key(repo_path)
        if not force_refresh:
            entry = self._cache.get(key)
            if entry is not None:
                logger.debug(f"Cache hit for {key}")
                return entry
            logger.debug(f"Cache miss for {key}")

        return self._flight.do(key, lambda: self._fetch(key, repo_path, force_refresh))

    def _fetch(self, key: str, repo_path: str, force_refresh: bool) -> CacheEntry:
        if not force_refresh:
            # Another flight may have filled the cache since our miss
            entry = self._cache.get(key)
            if entry is not None:
                return entry

        with self._lock:
            generation = self._generation
        providers = self.registry.healthy_providers()
        if not providers:
            logger.error(f"No enabled and healthy providers for {repo_path}")
            raise NoHealthyProvidersError(repo_path)

        start = time.perf_counter()
        report = FetchReport(repo_path=repo_path)
        results: dict[str, list[NormalizedEvent]] = {}
        futures = {}
        cancels: dict[str, threading.Event] = {}

        for provider in providers:
            cancel = threading.Event()
            cancels[provider.id] = cancel
            context = ProviderContext(
                repo_path=repo_path, force_refresh=force_refresh, cancel_event=cancel
            )
            futures[self._executor.submit(provider.fetch_events, context)] = provider.id
        with self._lock:
            self._active_cancels.update(cancels.values())

        try:
            for future in as_completed(futures, timeout=self.provider_timeout):
                provider_id = futures[future]
                try:
                    results[provider_id] = list(future.result())
                except RepoTimelineError as e:
                    report.failures[provider_id] = e
                except Exception as e:
                    report.failures[provider_id] = ProviderFetchError(provider_id, e)
        except FuturesTimeoutError:
            for future, provider_id in futures.items():
                if provider_id in results or provider_id in report.failures:
                    continue
                cancels[provider_id].set()
                future.cancel()
                report.failures[provider_id] = ProviderTimeoutError(provider_id, self.provider_timeout)
        finally:
            with self._lock:
                self._active_cancels.difference_update(cancels.values())

        for provider_id, error in report.failures.items():
            logger.warning(f"Provider {provider_id} failed for {repo_path}: {error}")

        # Providers disabled or removed while the fetch was running
        withdrawn = [pid for pid in results if not self.registry.is_enabled(pid)]
        for provider_id in withdrawn:
            logger.debug(f"Dropping events of {provider_id}: disabled during fetch")
            del results[provider_id]

        if not results:
            with self._lock:
                self._reports[key] = report
            if not report.failures:
                logger.error(f"Every provider for {repo_path} was disabled during the fetch")
                raise NoHealthyProvidersError(repo_path)
            logger.error(f"All providers failed for {repo_path}")
            raise AllProvidersFailedError(repo_path, report.failures)

        # Registry order, so the merge is deterministic before sorting
        merged: list[NormalizedEvent] = []
        for provider in providers:
            merged.extend(results.get(provider.id, ()))
        events = sort_events(self._matcher.deduplicate(merged).events)

        report.succeeded = [p.id for p in providers if p.id in results]
        report.event_count = len(events)
        report.duration_seconds = time.perf_counter() - start
        filter_options = derive_filter_options(events)

        with self._lock:
            self._reports[key] = report
            if self._generation == generation:
                entry = self._cache.put(
                    key,
                    events,
                    provider_ids=tuple(report.succeeded),
                    filter_options=filter_options,
                    report=report,
                )
            else:
                logger.debug(f"Providers changed while fetching {repo_path}; result not cached")
                entry = CacheEntry(
                    events=events,
                    fetched_at=time.monotonic(),
                    ttl=0.0,
                    provider_ids=tuple(report.succeeded),
                    filter_options=filter_options,
                    report=report,
                )

        logger.info(
            f"Fetched {len(events)} events for {repo_path} from "
            f"{', '.join(report.succeeded)} in {report.duration_seconds:.2f}s"
            + (f" ({len(report.failures)} provider(s) failed)" if report.failures else "")
        )
        return entry


def _cache_key(repo_path: str) -> str:
    # A blank path means the working directory, as it does for git
    return normalize_repo_path(repo_path) or normalize_repo_path(".")


def _as_criteria(criteria: CriteriaLike) -> FilterCriteria:
    if criteria is None:
        return FilterCriteria()
    if isinstance(criteria, FilterState):
        return criteria.criteria()
    if isinstance(criteria, FilterCriteria):
        return criteria
    return FilterCriteria.from_dict(criteria)
