"""Tests for per-repository filter state."""

from repo_timeline.events.models import FilterCriteria, FilterState
from repo_timeline.filters import FilterStateStore


class TestFilterStateStore:
    """Lazy creation, isolation between repositories and merge semantics."""

    def test_lazy_empty_state(self):
        """First access creates an empty state and tracks the repository."""
        store = FilterStateStore()
        state = store.get_filter_state("/repo")
        assert state == FilterState()
        assert store.tracked_repositories() == ["/repo"]
        assert store.current_repo_path == "/repo"

    def test_returned_state_is_a_copy(self):
        """Mutating the returned state does not change the store."""
        store = FilterStateStore()
        store.set_filter_state("/repo", {"branches": ["main"]})
        store.get_filter_state("/repo").branches.append("dev")
        assert store.get_filter_state("/repo").branches == ["main"]

    def test_repositories_are_isolated(self):
        store = FilterStateStore()
        store.update_filter_state("/a", {"authors": ["Alice"]})
        assert store.get_filter_state("/b").authors is None
        assert store.get_filter_state("/a").authors == ["Alice"]

    def test_update_is_shallow_merge(self):
        """Only the given keys change; None clears a field."""
        store = FilterStateStore()
        store.update_filter_state("/repo", {"selectedBranches": ["main"], "searchQuery": "fix"})
        store.update_filter_state("/repo", {"authors": ["Bob"], "searchQuery": None})
        state = store.get_filter_state("/repo")
        assert state.branches == ["main"]
        assert state.authors == ["Bob"]
        assert state.search_query is None

    def test_ui_fields_do_not_filter(self):
        """color_mode and friends are kept but excluded from criteria()."""
        store = FilterStateStore()
        store.update_filter_state("/repo", {"colorMode": "author", "showConnections": True})
        state = store.get_filter_state("/repo")
        assert state.color_mode == "author"
        assert state.criteria().is_empty()
        assert not store.has_active_filters("/repo")

    def test_malformed_update_ignored(self):
        """Bad input is logged and leaves the state as it was."""
        store = FilterStateStore()
        store.update_filter_state("/repo", {"branches": ["main"]})
        store.update_filter_state("/repo", {"branches": "main"})
        store.update_filter_state("/repo", ["not", "a", "mapping"])
        assert store.get_filter_state("/repo").branches == ["main"]

    def test_empty_path_never_raises(self):
        store = FilterStateStore()
        assert store.get_filter_state("") == FilterState()
        assert store.get_filter_state(None) == FilterState()
        store.update_filter_state(None, {"branches": ["main"]})
        store.set_filter_state("  ", {"branches": ["main"]})
        assert store.tracked_repositories() == []

    def test_reset(self):
        store = FilterStateStore()
        store.update_filter_state("/repo", {"tags": ["v1"]})
        store.reset_filter_state("/repo")
        assert store.get_filter_state("/repo") == FilterState()

    def test_has_active_filters(self):
        """An empty list is an active filter; an empty search is not."""
        store = FilterStateStore()
        assert not store.has_active_filters("/repo")
        store.update_filter_state("/repo", {"search_query": ""})
        assert not store.has_active_filters("/repo")
        store.update_filter_state("/repo", {"event_types": []})
        assert store.has_active_filters("/repo")

    def test_set_from_criteria(self):
        store = FilterStateStore()
        store.set_filter_state("/repo", FilterCriteria(providers=["git-local"]))
        assert store.get_filter_state("/repo").providers == ["git-local"]

    def test_clear_all(self):
        store = FilterStateStore()
        store.get_filter_state("/a")
        store.clear_all()
        assert store.tracked_repositories() == []
        assert store.current_repo_path is None


class TestExportImport:
    """Snapshot and restore."""

    def test_export_then_import(self):
        store = FilterStateStore()
        store.update_filter_state("/a", {"branches": ["main"], "dateRange": {"start": "2024-01-01T00:00:00Z"}})
        store.update_filter_state("/b", {"event_types": []})

        restored = FilterStateStore()
        assert restored.import_states(store.export_states()) == 2
        assert restored.get_filter_state("/a") == store.get_filter_state("/a")
        assert restored.get_filter_state("/b").event_types == []

    def test_malformed_entries_skipped(self):
        """Good entries are imported, bad ones are skipped."""
        store = FilterStateStore()
        count = store.import_states({"/good": {"authors": ["Alice"]}, "/bad": {"authors": 5}, "/worse": "nope"})
        assert count == 1
        assert store.tracked_repositories() == ["/good"]

    def test_non_mapping_blob_leaves_store_untouched(self):
        store = FilterStateStore()
        store.update_filter_state("/a", {"branches": ["main"]})
        assert store.import_states(["garbage"]) == 0
        assert store.import_states(None) == 0
        assert store.get_filter_state("/a").branches == ["main"]

    def test_out_of_range_timestamp_skipped(self):
        """An epoch too large for a datetime is a malformed entry, not an error."""
        store = FilterStateStore()
        count = store.import_states({"/good": {"authors": ["Alice"]}, "/bad": {"date_range": {"start": 10**20}}})
        assert count == 1
        assert store.tracked_repositories() == ["/good"]


class TestMalformedDates:
    """Dates that cannot be represented never escape the store."""

    def test_update_with_huge_timestamp_ignored(self):
        store = FilterStateStore()
        store.update_filter_state("/repo", {"branches": ["main"]})
        store.update_filter_state("/repo", {"dateRange": {"start": 1e300}})
        state = store.get_filter_state("/repo")
        assert state.branches == ["main"]
        assert state.date_range is None

    def test_set_with_huge_timestamp_ignored(self):
        store = FilterStateStore()
        store.set_filter_state("/repo", {"date_range": {"end": -(10**20)}})
        assert store.tracked_repositories() == []


class TestPathNormalization:
    """Equivalent spellings of a repository path share one state."""

    def test_trailing_slash_and_relative_path(self, tmp_path, monkeypatch):
        repo = tmp_path / "repo"
        repo.mkdir()
        monkeypatch.chdir(tmp_path)
        store = FilterStateStore()
        store.update_filter_state("repo", {"branches": ["main"]})
        assert store.get_filter_state(str(repo) + "/").branches == ["main"]
        assert store.get_filter_state("./repo").branches == ["main"]
        assert store.tracked_repositories() == [str(repo.resolve())]

    def test_symlink_resolves_to_target(self, tmp_path):
        repo = tmp_path / "repo"
        repo.mkdir()
        link = tmp_path / "link"
        link.symlink_to(repo)
        store = FilterStateStore()
        store.update_filter_state(str(link), {"authors": ["Bob"]})
        assert store.get_filter_state(str(repo)).authors == ["Bob"]
