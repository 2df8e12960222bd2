"""Shared test fixtures for repo-timeline tests."""

import os
import shutil
import subprocess
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from repo_timeline.events.matching import derive_filter_options
from repo_timeline.events.models import Author, EventType, NormalizedEvent, make_canonical_id
from repo_timeline.providers.base import ProviderCapabilities, TimelineProvider

# 2024-01-01T00:00:00Z; fixture commits are one hour apart from here
BASE_TIMESTAMP = 1704067200


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


class GitRepo:
    """Throwaway git repository with deterministic commit dates."""

    def __init__(self, path: Path, home: Path):
        self.path = path
        self.tick = 0
        self.env = dict(os.environ)
        self.env.update(
            {
                "HOME": str(home),
                "GIT_CONFIG_NOSYSTEM": "1",
                "GIT_AUTHOR_NAME": "Alice",
                "GIT_AUTHOR_EMAIL": "alice@example.com",
                "GIT_COMMITTER_NAME": "Alice",
                "GIT_COMMITTER_EMAIL": "alice@example.com",
            }
        )
        self.env.pop("GIT_DIR", None)
        self.env.pop("GIT_WORK_TREE", None)

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", "-C", str(self.path), *args],
            capture_output=True,
            text=True,
            env=self.env,
            check=True,
        )
        return result.stdout.strip()

    def init(self) -> "GitRepo":
        self.path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.name", "Alice")
        self.git("config", "user.email", "alice@example.com")
        self.git("config", "commit.gpgsign", "false")
        self.git("config", "tag.gpgsign", "false")
        return self

    def _advance_clock(self) -> int:
        self.tick += 1
        timestamp = BASE_TIMESTAMP + self.tick * 3600
        self.env["GIT_AUTHOR_DATE"] = f"{timestamp} +0000"
        self.env["GIT_COMMITTER_DATE"] = f"{timestamp} +0000"
        return timestamp

    def commit(self, message: str, files=None, author=None) -> str:
        """Write ``files`` (name -> content), commit them and return the hash."""
        self._advance_clock()
        files = files or {f"file{self.tick}.txt": f"content {self.tick}\n"}
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        self.git("add", "-A")
        args = ["commit", "-q", "-m", message]
        if author is not None:
            args.append(f"--author={author[0]} <{author[1]}>")
        self.git(*args)
        return self.head()

    def branch(self, name: str, checkout: bool = True) -> None:
        if checkout:
            self.git("checkout", "-q", "-b", name)
        else:
            self.git("branch", name)

    def checkout(self, name: str) -> None:
        self.git("checkout", "-q", name)

    def merge(self, name: str, message: str) -> str:
        self._advance_clock()
        self.git("merge", "-q", "--no-ff", "-m", message, name)
        return self.head()

    def tag(self, name: str, message=None, rev: str = "HEAD") -> None:
        if message is None:
            self.git("tag", name, rev)
        else:
            self._advance_clock()
            self.git("tag", "-a", name, "-m", message, rev)

    def head(self) -> str:
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path):
    """An empty, initialized repository on branch ``main``."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    home = tmp_path / "home"
    home.mkdir()
    return GitRepo(tmp_path / "repo", home).init()


@pytest.fixture
def linear_repo(git_repo):
    """Five linear commits on ``main``."""
    for i in range(1, 6):
        git_repo.commit(f"Commit {i}")
    return git_repo


@pytest.fixture
def merged_repo(git_repo):
    """``feature`` branched off ``main`` and merged back with --no-ff."""
    git_repo.commit("Initial commit")
    git_repo.commit("Second commit on main")
    git_repo.branch("feature")
    git_repo.commit("Feature work 1", {"feature.txt": "one\n"})
    git_repo.commit("Feature work 2", {"feature.txt": "two\n"})
    git_repo.checkout("main")
    git_repo.commit("Main moves on", {"main.txt": "main\n"})
    git_repo.merge("feature", "Merge branch 'feature'")
    return git_repo


@pytest.fixture
def make_event():
    """Factory for NormalizedEvent with sensible defaults."""

    def _make(
        event_id="e1",
        provider_id="fake",
        type=EventType.COMMIT,
        hours=0,
        author="Alice",
        title=None,
        branches=("main",),
        **kwargs,
    ):
        branches = list(branches)
        return NormalizedEvent(
            id=event_id,
            canonical_id=make_canonical_id(provider_id, event_id),
            provider_id=provider_id,
            type=type,
            timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(hours=hours),
            author=Author(id=author.lower(), name=author),
            title=title if title is not None else f"Event {event_id}",
            branches=branches,
            primary_branch=kwargs.pop("primary_branch", branches[0] if branches else ""),
            **kwargs,
        )

    return _make


class FakeProvider(TimelineProvider):
    """In-memory provider with scriptable health, latency and failures."""

    name = "Fake"
    version = "0.0.1"
    capabilities = ProviderCapabilities(supported_event_types=frozenset(EventType))

    def __init__(self, provider_id="fake", events=None, healthy=True, error=None, delay=0.0, init_error=None):
        self.id = provider_id
        self.events = list(events or [])
        self.healthy = healthy
        self.error = error
        self.delay = delay
        self.init_error = init_error
        self.initialized_with = None
        self.fetch_count = 0
        self.disposed = False
        self._lock = threading.Lock()

    def initialize(self, config):
        if self.init_error is not None:
            raise self.init_error
        self.initialized_with = config

    def fetch_events(self, context):
        with self._lock:
            self.fetch_count += 1
        if self.delay:
            cancel = context.cancel_event
            if cancel is not None:
                cancel.wait(self.delay)
            else:
                time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.events)

    def get_filter_options(self, context):
        return derive_filter_options(self.events)

    def is_healthy(self):
        return self.healthy

    def dispose(self):
        self.disposed = True


@pytest.fixture
def fake_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider
