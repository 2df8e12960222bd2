"""Branch membership by graph reachability over the commit DAG.

A commit belongs to a branch when it is reachable from the branch tip by
following parent edges. Only commits present in the extracted window are
traversed; parents outside it are the elided boundary.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Mapping, Optional

from .models import RawCommit

DEFAULT_BRANCH_CANDIDATES = ("main", "master", "trunk", "develop")

# Branch label used when a commit is reachable from no named branch
# (detached HEAD, orphaned history)
DETACHED_LABEL = "HEAD"


@dataclass(frozen=True)
class Membership:
    branches: tuple[str, ...]  # primary first
    primary: str


def reachability(
    commits: Mapping[str, RawCommit], tips: Mapping[str, str]
) -> dict[str, dict[str, int]]:
    """BFS from each tip over parent edges.

    Returns:
        branch -> {commit hash: distance from the branch tip}
    """
    result: dict[str, dict[str, int]] = {}
    for branch, tip in tips.items():
        distances: dict[str, int] = {}
        if tip in commits:
            distances[tip] = 0
            queue = deque([tip])
            while queue:
                current = queue.popleft()
                next_distance = distances[current] + 1
                for parent in commits[current].parents:
                    if parent in commits and parent not in distances:
                        distances[parent] = next_distance
                        queue.append(parent)
        result[branch] = distances
    return result


def compute_membership(
    commits: Mapping[str, RawCommit], reach: Mapping[str, Mapping[str, int]]
) -> dict[str, Membership]:
    """Assign branches and a primary branch to every commit.

    The primary branch is the one whose tip is closest; ties go to the
    lexically smallest name. A merge commit additionally belongs to every
    branch that contains one of its merged-in (non-first) parents.
    """
    # Invert once: commit -> [(distance, branch)]
    by_commit: dict[str, list[tuple[int, str]]] = {h: [] for h in commits}
    for branch, distances in reach.items():
        for commit_hash, distance in distances.items():
            by_commit[commit_hash].append((distance, branch))

    memberships: dict[str, Membership] = {}
    for commit_hash, commit in commits.items():
        own = sorted(by_commit[commit_hash])
        if not own:
            memberships[commit_hash] = Membership(branches=(DETACHED_LABEL,), primary=DETACHED_LABEL)
            continue

        names = [branch for _, branch in own]
        if commit.is_merge:
            seen = set(names)
            extra: set[str] = set()
            for parent in commit.parents[1:]:
                for _, branch in by_commit.get(parent, ()):
                    if branch not in seen:
                        extra.add(branch)
            names.extend(sorted(extra))

        memberships[commit_hash] = Membership(branches=tuple(names), primary=own[0][1])
    return memberships


def first_parent_chain(commits: Mapping[str, RawCommit], start: Optional[str]) -> list[str]:
    """Follow first parents from ``start`` while they are inside the window."""
    chain: list[str] = []
    seen: set[str] = set()
    current = start
    while current is not None and current in commits and current not in seen:
        chain.append(current)
        seen.add(current)
        parents = commits[current].parents
        current = parents[0] if parents else None
    return chain


def choose_default_branch(branch_names: list[str], head_branch: Optional[str]) -> Optional[str]:
    """HEAD's branch, else a conventional trunk name, else the first name."""
    if head_branch and head_branch in branch_names:
        return head_branch
    for candidate in DEFAULT_BRANCH_CANDIDATES:
        if candidate in branch_names:
            return candidate
    return min(branch_names) if branch_names else None


def branch_first_commit(
    commits: Mapping[str, RawCommit], tip: str, trunk: set[str]
) -> Optional[str]:
    """Earliest commit on the branch's first-parent chain that is off the trunk.

    Returns None when the branch has no commit of its own, or when its
    off-trunk history runs past the extraction window (the creation point
    is not visible).
    """
    first: Optional[str] = None
    current: Optional[str] = tip
    seen: set[str] = set()
    while current is not None and current not in seen:
        if current not in commits:
            # Crossed the window boundary without meeting the trunk
            return None
        if current in trunk:
            return first
        seen.add(current)
        first = current
        parents = commits[current].parents
        current = parents[0] if parents else None
    # Root commit reached: an orphan branch starts at its root
    return first
