"""In-memory memo for extraction results.

Two layers, both instance state:
    - results: (repository root, fingerprint) -> ExtractionResult, where the
      fingerprint is the config fingerprint plus a snapshot of HEAD and refs
    - session: input path -> RepositoryInfo (resolved root and git
      directories), shorter lived so a moved repository is noticed quickly

Expired entries are pruned on every write, and a new result replaces any
older one for the same root and config.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Generic, Hashable, Optional, TypeVar

from .models import ExtractionResult, RepositoryInfo

T = TypeVar("T")


class _TTLStore(Generic[T]):
    def __init__(self, ttl: float, clock: Callable[[], float]):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, T]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at > self.ttl:
                del self._entries[key]
                return None
            return value

    def put(
        self,
        key: Hashable,
        value: T,
        supersedes: Optional[Callable[[Hashable], bool]] = None,
    ) -> None:
        with self._lock:
            now = self._clock()
            stale = [
                k
                for k, (stored_at, _) in self._entries.items()
                if now - stored_at > self.ttl or (supersedes is not None and supersedes(k))
            ]
            for k in stale:
                del self._entries[k]
            self._entries[key] = (now, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ExtractionMemo:
    """Memoizes extraction results and resolved repository info."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        session_ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._results: _TTLStore[ExtractionResult] = _TTLStore(ttl_seconds, clock)
        self._session: _TTLStore[RepositoryInfo] = _TTLStore(session_ttl_seconds, clock)

    def get_result(self, root: str, fingerprint: tuple) -> Optional[ExtractionResult]:
        return self._results.get((root, fingerprint))

    def put_result(self, root: str, fingerprint: tuple, result: ExtractionResult) -> None:
        # The last fingerprint element is the ref snapshot; the rest is config
        config_part = fingerprint[:-1]

        def supersedes(key) -> bool:
            other_root, other_fingerprint = key
            return other_root == root and other_fingerprint[:-1] == config_part

        self._results.put((root, fingerprint), result, supersedes)

    def get_repository(self, path: str) -> Optional[RepositoryInfo]:
        return self._session.get(path)

    def put_repository(self, path: str, info: RepositoryInfo) -> None:
        self._session.put(path, info)

    def clear(self) -> None:
        self._results.clear()
        self._session.clear()

    def clear_session(self) -> None:
        self._session.clear()

    @property
    def result_count(self) -> int:
        return len(self._results)

    @property
    def session_count(self) -> int:
        return len(self._session)
