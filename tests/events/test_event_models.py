"""Tests for the normalized event model and filter criteria."""

from datetime import datetime, timezone

import pytest

from repo_timeline.events.models import (
    DateRange,
    EventType,
    FilterCriteria,
    FilterState,
    event_to_dict,
    sort_events,
)


class TestNormalizedEvent:
    """Construction invariants of NormalizedEvent."""

    def test_canonical_id_is_provider_namespaced(self, make_event):
        """canonical_id combines provider id and event id."""
        event = make_event("abc", provider_id="git-local")
        assert event.canonical_id == "git-local:abc"

    def test_empty_branches_rejected(self, make_event):
        """Every event belongs to at least one branch."""
        with pytest.raises(ValueError):
            make_event(branches=())

    def test_primary_branch_must_be_member(self, make_event):
        """primary_branch must be one of branches."""
        with pytest.raises(ValueError):
            make_event(branches=("main",), primary_branch="feature")

    def test_naive_timestamp_becomes_utc(self, make_event):
        """Naive datetimes are interpreted as UTC."""
        event = make_event()
        event.timestamp = datetime(2024, 1, 1)
        event.__post_init__()
        assert event.timestamp.tzinfo is timezone.utc

    def test_is_merge(self, make_event):
        """More than one parent makes a merge."""
        assert make_event(parent_ids=["a", "b"]).is_merge
        assert not make_event(parent_ids=["a"]).is_merge

    def test_event_to_dict_is_json_friendly(self, make_event):
        """The dict form carries string type and ISO timestamp."""
        data = event_to_dict(make_event("x", type=EventType.RELEASE))
        assert data["type"] == "release"
        assert data["timestamp"].startswith("2024-01-01T00:00:00")
        assert data["canonical_id"] == "fake:x"


class TestSortEvents:
    """Deterministic chronological order."""

    def test_sorted_by_timestamp(self, make_event):
        """Earlier events come first."""
        events = [make_event("b", hours=2), make_event("a", hours=1), make_event("c", hours=3)]
        assert [e.id for e in sort_events(events)] == ["a", "b", "c"]

    def test_ties_broken_by_hash(self, make_event):
        """Same timestamp: hash decides."""
        events = [make_event("1", hash="ffff"), make_event("2", hash="0000")]
        assert [e.id for e in sort_events(events)] == ["2", "1"]

    def test_commit_sorts_before_its_tag(self, make_event):
        """Same timestamp and hash: a commit precedes the tag on it."""
        tag = make_event("t", type=EventType.TAG, hash="abcd")
        commit = make_event("c", type=EventType.COMMIT, hash="abcd")
        assert [e.id for e in sort_events([tag, commit])] == ["c", "t"]


class TestDateRange:
    """Inclusive bounds."""

    def test_bounds_are_inclusive(self):
        """Both endpoints are contained."""
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        end = datetime(2024, 1, 2, tzinfo=timezone.utc)
        window = DateRange(start, end)
        assert window.contains(start)
        assert window.contains(end)
        assert not window.contains(datetime(2024, 1, 3, tzinfo=timezone.utc))

    def test_open_ended(self):
        """A missing bound is unbounded."""
        window = DateRange(start=datetime(2024, 1, 1, tzinfo=timezone.utc))
        assert window.contains(datetime(2099, 1, 1, tzinfo=timezone.utc))

    def test_from_mapping_with_iso_strings(self):
        """Mappings with ISO strings (trailing Z allowed) are parsed."""
        window = DateRange.from_value({"start": "2024-01-01T00:00:00Z", "end": None})
        assert window.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert window.end is None

    def test_from_garbage_raises(self):
        """Unrecognized shapes raise ValueError."""
        with pytest.raises(ValueError):
            DateRange.from_value(42)

    def test_out_of_range_epoch_is_value_error(self):
        """Epoch numbers beyond datetime's range are rejected as bad values."""
        with pytest.raises(ValueError):
            DateRange.from_value({"start": 10**20})
        with pytest.raises(ValueError):
            DateRange.from_value([0, 1e300])


class TestFilterCriteria:
    """None versus empty list, aliases and serialization."""

    def test_default_is_empty(self):
        """No dimension set means no filtering."""
        assert FilterCriteria().is_empty()

    def test_empty_list_is_not_empty_criteria(self):
        """An empty list is a real selection."""
        assert not FilterCriteria(event_types=[]).is_empty()

    def test_to_dict_omits_none_but_keeps_empty_lists(self):
        """Serialization keeps the None/[] distinction."""
        data = FilterCriteria(event_types=[], branches=None).to_dict()
        assert data == {"event_types": []}

    def test_from_dict_accepts_camel_case(self):
        """Persisted camelCase keys map onto fields."""
        criteria = FilterCriteria.from_dict(
            {"selectedEventTypes": ["merge"], "selectedBranches": ["main"], "searchQuery": "fix"}
        )
        assert criteria.event_types == ["merge"]
        assert criteria.branches == ["main"]
        assert criteria.search_query == "fix"

    def test_from_dict_ignores_unknown_keys(self):
        """Unknown keys are dropped silently."""
        assert FilterCriteria.from_dict({"bogus": 1}).is_empty()

    def test_enum_members_are_accepted(self):
        """EventType members are stored as their string values."""
        criteria = FilterCriteria(event_types=[EventType.MERGE])
        assert criteria.event_types == ["merge"]

    def test_string_instead_of_list_rejected(self):
        """A bare string is not a list of strings."""
        with pytest.raises(ValueError):
            FilterCriteria(branches="main")

    def test_merged_with_replaces_only_given_keys(self):
        """Shallow merge; None clears a field."""
        base = FilterCriteria(branches=["main"], authors=["Alice"])
        merged = base.merged_with({"authors": None, "tags": ["v1"]})
        assert merged.branches == ["main"]
        assert merged.authors is None
        assert merged.tags == ["v1"]


class TestFilterState:
    """UI fields never leak into filtering."""

    def test_criteria_drops_ui_fields(self):
        """criteria() keeps only filter dimensions."""
        state = FilterState(branches=["main"], color_mode="author", show_connections=True)
        criteria = state.criteria()
        assert type(criteria) is FilterCriteria
        assert criteria.branches == ["main"]

    def test_ui_fields_do_not_make_state_active(self):
        """A state with only UI settings filters nothing."""
        assert FilterState(color_mode="branch").is_empty()

    def test_round_trip_keeps_ui_fields(self):
        """to_dict/from_dict preserve UI settings."""
        state = FilterState(color_mode="branch", time_window={"days": 7})
        restored = FilterState.from_dict(state.to_dict())
        assert restored.color_mode == "branch"
        assert restored.time_window == {"days": 7}
