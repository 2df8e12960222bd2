"""Per-repository filter state."""

from .store import FilterStateStore

__all__ = ["FilterStateStore"]
