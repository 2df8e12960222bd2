"""Repository path normalization shared by the cache and the filter store."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional


def normalize_repo_path(repo_path: Optional[str]) -> Optional[str]:
    """Absolute, symlink-resolved form of ``repo_path``; None when blank.

    ``"repo"``, ``"./repo/"`` and ``"~/repo"`` (from the home directory) all
    map to the same key. Paths that cannot be resolved fall back to
    ``os.path.abspath``.
    """
    if repo_path is None:
        return None
    text = str(repo_path).strip()
    if not text:
        return None
    try:
        return str(Path(text).expanduser().resolve())
    except (OSError, RuntimeError):
        return os.path.abspath(os.path.expanduser(text))
