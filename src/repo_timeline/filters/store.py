"""Per-repository filter state.

Every repository path has its own FilterState, created lazily as empty
("show everything"). The store never raises: missing paths and malformed
input are logged and degrade to empty state.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..events.models import FilterCriteria, FilterState
from ..logging_config import get_logger
from ..paths import normalize_repo_path

logger = get_logger(__name__)


class FilterStateStore:
    """In-memory mapping of repository path -> FilterState."""

    def __init__(self) -> None:
        self._states: dict[str, FilterState] = {}
        self.current_repo_path: Optional[str] = None

    def get_filter_state(self, repo_path: Optional[str]) -> FilterState:
        """Copy of the state for ``repo_path``; created empty on first access."""
        key = _key(repo_path)
        if key is None:
            logger.debug("get_filter_state called without a repository path")
            return FilterState()
        state = self._states.get(key)
        if state is None:
            logger.debug(f"Initializing filter state for {key}")
            state = FilterState()
            self._states[key] = state
        self.current_repo_path = key
        return state.copy()

    def set_filter_state(
        self, repo_path: Optional[str], state: "FilterCriteria | Mapping[str, Any] | None"
    ) -> None:
        """Replace the whole state for ``repo_path``."""
        key = _key(repo_path)
        if key is None:
            logger.warning("Ignoring filter state for an empty repository path")
            return
        parsed = _to_state(state)
        if parsed is None:
            logger.warning(f"Ignoring malformed filter state for {key}")
            return
        self._states[key] = parsed
        self.current_repo_path = key

    def update_filter_state(self, repo_path: Optional[str], partial: Optional[Mapping[str, Any]]) -> None:
        """Shallow merge: only the keys present in ``partial`` change.

        A key mapped to ``None`` clears that field back to "all values".
        """
        key = _key(repo_path)
        if key is None:
            logger.warning("Ignoring filter update for an empty repository path")
            return
        if not isinstance(partial, Mapping):
            logger.warning(f"Ignoring malformed filter update for {key}: {partial!r}")
            return
        current = self._states.get(key) or FilterState()
        try:
            self._states[key] = current.merged_with(partial)
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring malformed filter update for {key}: {e}")
            return
        self.current_repo_path = key

    def reset_filter_state(self, repo_path: Optional[str]) -> None:
        key = _key(repo_path)
        if key is None:
            return
        logger.debug(f"Resetting filter state for {key}")
        self._states[key] = FilterState()

    def has_active_filters(self, repo_path: Optional[str]) -> bool:
        """True if any filter field is set. An empty list counts, an empty search does not."""
        key = _key(repo_path)
        state = self._states.get(key) if key is not None else None
        if state is None:
            return False
        for name in FilterCriteria.filter_field_names():
            value = getattr(state, name)
            if name == "search_query":
                if value:
                    return True
            elif value is not None:
                return True
        return False

    def tracked_repositories(self) -> list[str]:
        return list(self._states)

    def clear_all(self) -> None:
        logger.debug(f"Clearing {len(self._states)} filter state(s)")
        self._states.clear()
        self.current_repo_path = None

    def export_states(self) -> dict[str, dict[str, Any]]:
        """Serializable snapshot, suitable for ``import_states``."""
        return {path: state.to_dict() for path, state in self._states.items()}

    def import_states(self, blob: Optional[Mapping[str, Any]]) -> int:
        """Replace the store with the well-formed entries of ``blob``.

        Returns:
            Number of imported entries. Malformed entries are skipped one by
            one; a blob that is not a mapping leaves the store untouched.
        """
        if not isinstance(blob, Mapping):
            logger.debug(f"Nothing to import from {type(blob).__name__}")
            return 0

        imported: dict[str, FilterState] = {}
        for path, raw in blob.items():
            key = _key(path) if isinstance(path, str) else None
            state = _to_state(raw) if key is not None else None
            if state is None:
                logger.warning(f"Skipping malformed filter state entry {path!r}")
                continue
            imported[key] = state

        self._states = imported
        if self.current_repo_path not in imported:
            self.current_repo_path = None
        logger.debug(f"Imported {len(imported)} of {len(blob)} filter state(s)")
        return len(imported)


def _key(repo_path: Optional[str]) -> Optional[str]:
    return normalize_repo_path(repo_path)


def _to_state(value: Any) -> Optional[FilterState]:
    if value is None:
        return FilterState()
    if isinstance(value, FilterState):
        return value.copy()
    if isinstance(value, FilterCriteria):
        return FilterState.from_dict(value.to_dict())
    if isinstance(value, Mapping):
        try:
            return FilterState.from_dict(value)
        except (TypeError, ValueError):
            return None
    return None
