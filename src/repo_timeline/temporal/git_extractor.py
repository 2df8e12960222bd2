"""Extract normalized timeline events from a local git repository."""

from __future__ import annotations

import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from ..events.models import Author, NormalizedEvent, sort_events
from ..exceptions import (
    ExtractionCancelledError,
    NotAVersionControlRepositoryError,
    RepositoryNotFoundError,
)
from ..logging_config import get_logger
from . import graph
from .git_runner import GitRunner
from .memo import ExtractionMemo
from .models import (
    ExtractionConfig,
    ExtractionMetadata,
    ExtractionResult,
    RawCommit,
    RawRef,
    RepositoryInfo,
)
from .normalize import branch_created_event, commit_event, tag_event
from .parser import LOG_FORMAT, REF_FORMAT, parse_log, parse_refs
from .ref_state import read_ref_state

logger = get_logger(__name__)

ProgressCallback = Callable[[str, float], None]

GIT_PROVIDER_ID = "git-local"


class GitEventExtractor:
    """Turns ``git`` output into an ExtractionResult.

    Results are memoized per (repository root, config fingerprint, ref
    snapshot) in an instance-owned ExtractionMemo. The snapshot is read from
    the git directory, so a repeated call with unchanged refs runs no
    subprocess, and any new commit, branch or tag misses the memo.

    Usage:
        extractor = GitEventExtractor()
        result = extractor.extract_git_events("/path/to/repo")
        for event in result.events:
            print(event.timestamp, event.title)
    """

    def __init__(
        self,
        provider_id: str = GIT_PROVIDER_ID,
        runner: Optional[GitRunner] = None,
        memo: Optional[ExtractionMemo] = None,
        memo_ttl_seconds: float = 300.0,
        session_ttl_seconds: float = 60.0,
    ):
        self.provider_id = provider_id
        self.runner = runner or GitRunner()
        self.memo = memo or ExtractionMemo(memo_ttl_seconds, session_ttl_seconds)

    def extract_git_events(
        self,
        repo_path: str,
        config: Optional[ExtractionConfig] = None,
        *,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
        force_refresh: bool = False,
    ) -> ExtractionResult:
        """Extract the event history of the repository containing ``repo_path``.

        Args:
            repo_path: Repository root or any directory inside its work tree
            config: Extraction bounds; defaults to ExtractionConfig()
            progress: Optional ``progress(phase, fraction)`` observer
            cancel_event: When set, running git is killed and extraction stops
            force_refresh: Bypass the memo (the fresh result is memoized)

        Raises:
            RepositoryNotFoundError: path does not exist
            NotAVersionControlRepositoryError: path is not inside a git work tree
            GitUnavailableError: git cannot be executed
            GitCommandError / ExtractionTimeoutError / ExtractionCancelledError
            ParseError: git log produced records but none could be parsed
        """
        config = config or ExtractionConfig()
        report = progress or _no_progress
        start = time.perf_counter()

        report("resolve", 0.0)
        info = self._resolve(repo_path, config, cancel_event, force_refresh)
        ref_state = read_ref_state(info.git_dir, info.common_dir)
        fingerprint = config.fingerprint() + (ref_state,)

        if not force_refresh and ref_state is not None:
            cached = self.memo.get_result(info.root, fingerprint)
            if cached is not None:
                logger.debug(f"Extraction memo hit for {info.root}")
                report("done", 1.0)
                return cached

        self._check_cancelled(cancel_event, info.root)
        info = self._read_head(info, config, cancel_event)
        report("refs", 0.1)
        refs = self._read_refs(info.root, config, cancel_event)

        if info.head_commit is None and not any(r.kind != "tag" for r in refs):
            logger.info(f"Repository {info.root} has no commits")
            result = self._empty_result(info)
            self._remember(info, fingerprint, result)
            report("done", 1.0)
            return result

        self._check_cancelled(cancel_event, info.root)
        report("log", 0.2)
        raw_log = self._read_log(info, refs, config, cancel_event)

        report("parse", 0.6)
        raw_commits, skipped = parse_log(raw_log)
        commits: dict[str, RawCommit] = {c.hash: c for c in raw_commits}

        self._check_cancelled(cancel_event, info.root)
        report("graph", 0.75)
        result = self._build_result(info, refs, commits, skipped, config.include_all_branches)

        self._remember(info, fingerprint, result)
        report("done", 1.0)

        elapsed = time.perf_counter() - start
        logger.info(
            f"Extracted {result.metadata.total_events} events "
            f"({len(commits)} commits, {len(result.branches)} branches) "
            f"from {info.root} in {elapsed:.2f}s"
        )
        return result

    def clear_cache(self) -> None:
        """Drop every memoized result and resolved repository."""
        self.memo.clear()

    def clear_session_cache(self) -> None:
        """Drop resolved repository locations only (root, git directories)."""
        self.memo.clear_session()

    def _remember(self, info: RepositoryInfo, fingerprint: tuple, result: ExtractionResult) -> None:
        snapshot = fingerprint[-1]
        if snapshot is None:
            return
        # Refs moved while git was running; the key no longer describes the result
        if read_ref_state(info.git_dir, info.common_dir) != snapshot:
            logger.debug(f"Refs of {info.root} changed during extraction; not memoized")
            return
        self.memo.put_result(info.root, fingerprint, result)

    # -- resolution -------------------------------------------------------

    def _resolve(
        self,
        repo_path: str,
        config: ExtractionConfig,
        cancel_event: Optional[threading.Event],
        force_refresh: bool,
    ) -> RepositoryInfo:
        path = Path(repo_path).expanduser()
        if not path.exists():
            raise RepositoryNotFoundError(repo_path)
        if not path.is_dir():
            raise NotAVersionControlRepositoryError(repo_path, "not a directory")

        key = str(path.resolve())
        if not force_refresh:
            cached = self.memo.get_repository(key)
            if cached is not None:
                return cached

        code, out, err = self._git(
            ["rev-parse", "--show-toplevel", "--absolute-git-dir", "--git-common-dir"],
            key,
            config,
            cancel_event,
            check=False,
        )
        lines = out.splitlines()
        if code != 0 or len(lines) < 3:
            raise NotAVersionControlRepositoryError(repo_path, err.strip())

        # --git-common-dir may be relative to the directory git ran in
        info = RepositoryInfo(
            root=str(Path(lines[0].strip()).resolve()),
            git_dir=str(Path(lines[1].strip()).resolve()),
            common_dir=str(Path(key, lines[2].strip()).resolve()),
        )
        self.memo.put_repository(key, info)
        return info

    def _read_head(
        self,
        info: RepositoryInfo,
        config: ExtractionConfig,
        cancel_event: Optional[threading.Event],
    ) -> RepositoryInfo:
        code, out, _ = self._git(
            ["symbolic-ref", "-q", "--short", "HEAD"], info.root, config, cancel_event, check=False
        )
        head_branch = out.strip() if code == 0 and out.strip() else None

        code, out, _ = self._git(
            ["rev-parse", "-q", "--verify", "HEAD^{commit}"],
            info.root,
            config,
            cancel_event,
            check=False,
        )
        head_commit = out.strip() if code == 0 and out.strip() else None

        if head_branch is None and head_commit is not None:
            logger.debug(f"{info.root}: HEAD is detached at {head_commit[:12]}")
        return replace(info, head_branch=head_branch, head_commit=head_commit)

    # -- git reads --------------------------------------------------------

    def _read_refs(
        self, root: str, config: ExtractionConfig, cancel_event: Optional[threading.Event]
    ) -> list[RawRef]:
        patterns = ["refs/heads", "refs/tags"]
        if config.include_all_branches:
            patterns.append("refs/remotes")
        _, out, _ = self._git(
            ["for-each-ref", f"--format={REF_FORMAT}", *patterns], root, config, cancel_event
        )
        return parse_refs(out)

    def _read_log(
        self,
        info: RepositoryInfo,
        refs: list[RawRef],
        config: ExtractionConfig,
        cancel_event: Optional[threading.Event],
    ) -> str:
        if config.include_all_branches:
            revisions = sorted({r.target for r in refs if r.kind != "tag"})
            if info.head_commit and info.head_commit not in revisions:
                revisions.append(info.head_commit)
        else:
            revisions = [info.head_commit] if info.head_commit else []

        if not revisions:
            return ""

        args = [
            "log",
            "--date-order",
            "--numstat",
            "--no-color",
            "--no-renames",
            f"--format={LOG_FORMAT}",
            f"--max-count={config.max_commits}",
            *revisions,
            "--",
        ]
        _, out, _ = self._git(args, info.root, config, cancel_event)
        return out

    def _git(
        self,
        args: list[str],
        cwd: str,
        config: ExtractionConfig,
        cancel_event: Optional[threading.Event],
        check: bool = True,
    ) -> tuple[int, str, str]:
        return self.runner.run(
            args, cwd=cwd, timeout=config.timeout_seconds, cancel_event=cancel_event, check=check
        )

    # -- assembly ---------------------------------------------------------

    def _build_result(
        self,
        info: RepositoryInfo,
        refs: list[RawRef],
        commits: dict[str, RawCommit],
        skipped: int,
        include_all_branches: bool = True,
    ) -> ExtractionResult:
        if include_all_branches:
            tips = {r.name: r.target for r in refs if r.kind in ("branch", "remote")}
        elif info.head_branch and info.head_commit:
            tips = {info.head_branch: info.head_commit}
        else:
            tips = {}
        reach = graph.reachability(commits, tips)
        membership = graph.compute_membership(commits, reach)

        children: dict[str, list[str]] = {h: [] for h in commits}
        for commit in commits.values():
            for parent in commit.parents:
                if parent in children:
                    children[parent].append(commit.hash)

        tags_by_target: dict[str, list[RawRef]] = {}
        for ref in refs:
            if ref.kind == "tag":
                tags_by_target.setdefault(ref.target, []).append(ref)

        events: list[NormalizedEvent] = []
        for commit in commits.values():
            tag_refs = tags_by_target.get(commit.hash, [])
            events.append(
                commit_event(
                    commit,
                    membership[commit.hash],
                    self.provider_id,
                    commits,
                    children[commit.hash],
                    sorted(r.name for r in tag_refs),
                )
            )
            for ref in tag_refs:
                events.append(tag_event(ref, commit, membership[commit.hash], self.provider_id))

        dropped_tags = sum(
            len(refs_) for target, refs_ in tags_by_target.items() if target not in commits
        )
        if dropped_tags:
            logger.debug(f"{dropped_tags} tag(s) point outside the extracted window")

        events.extend(self._branch_created_events(info, refs, tips, commits))
        events = sort_events(events)

        elided = sorted({p for e in events for p in e.elided_parent_ids})
        relationships = [
            (parent, event.id)
            for event in events
            for parent in event.parent_ids
            if parent not in event.elided_parent_ids
        ]

        authors: dict[str, Author] = {}
        for event in events:
            authors.setdefault(event.author.id, event.author)
        branches = {b for e in events for b in e.branches}
        date_range = (events[0].timestamp, events[-1].timestamp) if events else None

        metadata = ExtractionMetadata(
            total_events=len(events),
            unique_authors=len(authors),
            total_branches=len(branches),
            extracted_at=datetime.now(timezone.utc),
            repository_root=info.root,
            head_branch=info.head_branch,
            truncated=bool(elided),
            elided_references=elided,
            skipped_records=skipped,
        )
        return ExtractionResult(
            events=events,
            relationships=relationships,
            branches=branches,
            authors=set(authors.values()),
            date_range=date_range,
            metadata=metadata,
        )

    def _branch_created_events(
        self,
        info: RepositoryInfo,
        refs: list[RawRef],
        tips: dict[str, str],
        commits: dict[str, RawCommit],
    ) -> list[NormalizedEvent]:
        local_names = sorted(r.name for r in refs if r.kind == "branch")
        default = graph.choose_default_branch(local_names, info.head_branch)
        trunk_tip = tips.get(default) if default else info.head_commit
        trunk = set(graph.first_parent_chain(commits, trunk_tip))

        events = []
        for branch in sorted(tips):
            if branch == default:
                continue
            first_hash = graph.branch_first_commit(commits, tips[branch], trunk)
            if first_hash is None:
                continue
            events.append(
                branch_created_event(branch, commits[first_hash], commits, self.provider_id)
            )
        return events

    def _empty_result(self, info: RepositoryInfo) -> ExtractionResult:
        return ExtractionResult(
            events=[],
            relationships=[],
            branches=set(),
            authors=set(),
            date_range=None,
            metadata=ExtractionMetadata(
                extracted_at=datetime.now(timezone.utc),
                repository_root=info.root,
                head_branch=info.head_branch,
            ),
        )

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], root: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelledError(root)


def _no_progress(phase: str, fraction: float) -> None:
    pass
