"""Local git repository provider."""

from __future__ import annotations

from typing import Any, Optional

from ..events.matching import derive_filter_options
from ..events.models import EventType, FilterOptions, NormalizedEvent
from ..exceptions import ProviderInitializationError
from ..logging_config import get_logger
from ..temporal import ExtractionConfig, GitEventExtractor, git_available
from ..temporal.models import ExtractionMetadata
from .base import ProviderCapabilities, ProviderConfig, ProviderContext, TimelineProvider

logger = get_logger(__name__)

_EXTRACTION_KEYS = ("max_commits", "include_all_branches", "timeout_seconds")


class GitLocalProvider(TimelineProvider):
    """Adapter from the provider contract onto GitEventExtractor.

    Extraction bounds come from ``ProviderConfig.settings`` at initialize
    time and may be overridden per call through ``ProviderContext.settings``.
    """

    id = "git-local"
    name = "Local Git"
    version = "2.0.0"
    capabilities = ProviderCapabilities(
        supported_event_types=frozenset(
            {
                EventType.COMMIT,
                EventType.MERGE,
                EventType.BRANCH_CREATED,
                EventType.TAG,
                EventType.RELEASE,
            }
        ),
        supports_historical_data=True,
        supports_filtering=True,
        supports_search=True,
    )

    def __init__(self, extractor: Optional[GitEventExtractor] = None):
        self._extractor = extractor
        self._defaults = ExtractionConfig()
        self._initialized = False
        self.last_metadata: Optional[ExtractionMetadata] = None

    def initialize(self, config: ProviderConfig) -> None:
        settings = config.settings
        try:
            self._defaults = _extraction_config(settings, ExtractionConfig())
        except (TypeError, ValueError) as e:
            raise ProviderInitializationError(self.id, f"invalid settings: {e}") from e

        if self._extractor is None:
            self._extractor = GitEventExtractor(
                provider_id=self.id,
                memo_ttl_seconds=float(settings.get("memo_ttl_seconds", 300.0)),
                session_ttl_seconds=float(settings.get("session_ttl_seconds", 60.0)),
            )
        self._initialized = True
        logger.debug(f"{self.id} initialized with {self._defaults}")

    def fetch_events(self, context: ProviderContext) -> list[NormalizedEvent]:
        extractor = self._require_extractor()
        config = _extraction_config(context.settings, self._defaults)
        result = extractor.extract_git_events(
            context.repo_path,
            config,
            cancel_event=context.cancel_event,
            force_refresh=context.force_refresh,
        )
        self.last_metadata = result.metadata
        return list(result.events)

    def get_filter_options(self, context: ProviderContext) -> FilterOptions:
        return derive_filter_options(self.fetch_events(context))

    def is_healthy(self) -> bool:
        return self._initialized and git_available()

    def dispose(self) -> None:
        if self._extractor is not None:
            self._extractor.clear_cache()
        self._initialized = False

    def clear_cache(self) -> None:
        if self._extractor is not None:
            self._extractor.clear_cache()

    def _require_extractor(self) -> GitEventExtractor:
        if not self._initialized or self._extractor is None:
            raise ProviderInitializationError(self.id, "provider used before initialize()")
        return self._extractor


def _extraction_config(settings: dict[str, Any], base: ExtractionConfig) -> ExtractionConfig:
    values = {
        "max_commits": base.max_commits,
        "include_all_branches": base.include_all_branches,
        "timeout_seconds": base.timeout_seconds,
    }
    for key in _EXTRACTION_KEYS:
        if settings.get(key) is not None:
            values[key] = settings[key]
    return ExtractionConfig(
        max_commits=int(values["max_commits"]),
        include_all_branches=bool(values["include_all_branches"]),
        timeout_seconds=float(values["timeout_seconds"]),
    )
