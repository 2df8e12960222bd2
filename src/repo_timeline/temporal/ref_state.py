"""Snapshot of HEAD and the refs, read from the git directory without running git.

Every history change a timeline can show (new commit, branch switch, new
branch or tag, fetch, gc packing refs) rewrites HEAD or a ref, so the
snapshot changes with it. That makes it a memo key that can be checked in
well under a millisecond.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from ..logging_config import get_logger

logger = get_logger(__name__)

# Files whose content is large or binary; their stat is enough
_STAT_ONLY = ("packed-refs",)
_STAT_ONLY_DIRS = ("reftable",)


def read_ref_state(git_dir: str, common_dir: str) -> Optional[tuple]:
    """Sorted (name, value) pairs for HEAD and every ref store entry.

    Loose refs contribute their content (the target), packed refs and
    reftable files their mtime and size. Returns None when the git
    directory cannot be read; callers must then not trust any memo.
    """
    common = Path(common_dir)
    try:
        entries = [("HEAD", Path(git_dir, "HEAD").read_text(errors="replace").strip())]

        for name in _STAT_ONLY:
            path = common / name
            if path.is_file():
                entries.append((name, _stat_token(path)))

        refs_root = common / "refs"
        if refs_root.is_dir():
            for dirpath, _dirnames, filenames in os.walk(refs_root):
                for filename in filenames:
                    path = Path(dirpath, filename)
                    value = path.read_text(errors="replace").strip()
                    entries.append((path.relative_to(common).as_posix(), value))

        for dirname in _STAT_ONLY_DIRS:
            table_root = common / dirname
            if table_root.is_dir():
                for path in table_root.iterdir():
                    entries.append((f"{dirname}/{path.name}", _stat_token(path)))
    except OSError as e:
        logger.debug(f"Cannot snapshot refs under {common_dir}: {e}")
        return None

    return tuple(sorted(entries))


def _stat_token(path: Path) -> str:
    st = path.stat()
    return f"{st.st_mtime_ns}:{st.st_size}"
