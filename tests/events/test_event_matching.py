"""Tests for AND-semantics filtering and filter-option derivation."""

from datetime import datetime, timezone

from repo_timeline.events.matching import apply_filters, derive_filter_options, matches
from repo_timeline.events.models import Author, DateRange, EventType, FilterCriteria


class TestMatches:
    """Per-dimension matching."""

    def test_no_criteria_matches_everything(self, make_event):
        """None criteria lets every event pass."""
        assert matches(make_event(), None)
        assert matches(make_event(), FilterCriteria())

    def test_empty_event_types_matches_nothing(self, make_event):
        """An empty selection excludes every event."""
        assert not matches(make_event(), FilterCriteria(event_types=[]))

    def test_event_type_selection(self, make_event):
        """Only the listed types pass."""
        merge = make_event(type=EventType.MERGE)
        commit = make_event(type=EventType.COMMIT)
        criteria = FilterCriteria(event_types=["merge"])
        assert matches(merge, criteria)
        assert not matches(commit, criteria)

    def test_excluded_event_types(self, make_event):
        """Excluded types are hidden; an empty exclusion hides nothing."""
        tag = make_event(type=EventType.TAG)
        assert not matches(tag, FilterCriteria(excluded_event_types=["tag"]))
        assert matches(tag, FilterCriteria(excluded_event_types=[]))

    def test_branch_intersection(self, make_event):
        """Any shared branch is enough."""
        event = make_event(branches=("main", "feature"))
        assert matches(event, FilterCriteria(branches=["feature", "other"]))
        assert not matches(event, FilterCriteria(branches=["other"]))

    def test_author_matches_co_authors(self, make_event):
        """Co-authors count as authors."""
        event = make_event(author="Alice", co_authors=[Author(id="bob", name="Bob")])
        assert matches(event, FilterCriteria(authors=["Bob"]))
        assert not matches(event, FilterCriteria(authors=["Carol"]))

    def test_provider_selection(self, make_event):
        """Provider ids are matched exactly."""
        event = make_event(provider_id="git-local")
        assert matches(event, FilterCriteria(providers=["git-local"]))
        assert not matches(event, FilterCriteria(providers=["github"]))

    def test_tags_and_labels(self, make_event):
        """Tags and labels use intersection semantics."""
        event = make_event(tags=["v1.0.0"], labels=["bug"])
        assert matches(event, FilterCriteria(tags=["v1.0.0"], labels=["bug", "ui"]))
        assert not matches(event, FilterCriteria(tags=[]))

    def test_search_is_case_insensitive_over_title_description_hash(self, make_event):
        """Search looks at title, description and hash."""
        event = make_event(title="Fix parser", description="Handles CRLF", hash="deadbeef")
        assert matches(event, FilterCriteria(search_query="PARSER"))
        assert matches(event, FilterCriteria(search_query="crlf"))
        assert matches(event, FilterCriteria(search_query="DEADB"))
        assert not matches(event, FilterCriteria(search_query="lexer"))

    def test_blank_search_is_ignored(self, make_event):
        """Whitespace-only search does not filter."""
        assert matches(make_event(), FilterCriteria(search_query="   "))

    def test_date_range(self, make_event):
        """Inclusive date range on the event timestamp."""
        event = make_event(hours=0)
        inside = DateRange(start=datetime(2024, 1, 1, tzinfo=timezone.utc))
        outside = DateRange(start=datetime(2024, 1, 2, tzinfo=timezone.utc))
        assert matches(event, FilterCriteria(date_range=inside))
        assert not matches(event, FilterCriteria(date_range=outside))

    def test_dimensions_combine_with_and(self, make_event):
        """Every specified dimension must pass."""
        event = make_event(type=EventType.MERGE, branches=("main",), author="Alice")
        assert matches(event, FilterCriteria(event_types=["merge"], authors=["Alice"]))
        assert not matches(event, FilterCriteria(event_types=["merge"], authors=["Bob"]))


class TestApplyFilters:
    """Order-preserving filtering of lists."""

    def test_empty_selection_differs_from_unset(self, make_event):
        """event_types=[] yields nothing, event_types=None yields everything."""
        events = [make_event(str(i), hours=i) for i in range(5)]
        assert apply_filters(events, FilterCriteria(event_types=[])) == []
        assert apply_filters(events, FilterCriteria(event_types=None)) == events

    def test_order_preserved(self, make_event):
        """Filtering keeps the input order."""
        events = [make_event("a", hours=1), make_event("b", hours=2, author="Bob"), make_event("c", hours=3)]
        result = apply_filters(events, FilterCriteria(authors=["Alice"]))
        assert [e.id for e in result] == ["a", "c"]

    def test_result_is_a_new_list(self, make_event):
        """The input list is never returned as-is."""
        events = [make_event()]
        assert apply_filters(events, None) is not events


class TestDeriveFilterOptions:
    """Option universe is computed from the unfiltered set."""

    def test_sorted_unique_values(self, make_event):
        """Branches, authors, types and tags are sorted and unique."""
        events = [
            make_event("1", branches=("main",), author="Zed", tags=["v2"]),
            make_event("2", branches=("feature", "main"), author="Amy", type=EventType.MERGE),
            make_event("3", branches=("main",), author="Zed", tags=["v1"], labels=["ci"]),
        ]
        options = derive_filter_options(events)
        assert options.branches == ("feature", "main")
        assert options.authors == ("Amy", "Zed")
        assert options.event_types == ("commit", "merge")
        assert options.tags == ("v1", "v2")
        assert options.labels == ("ci",)
        assert options.providers == ("fake",)

    def test_date_range(self, make_event):
        """date_range spans min to max timestamp."""
        events = [make_event("a", hours=5), make_event("b", hours=1)]
        low, high = derive_filter_options(events).date_range
        assert low == events[1].timestamp
        assert high == events[0].timestamp

    def test_empty_input(self):
        """No events: empty options and no date range."""
        options = derive_filter_options([])
        assert options.branches == ()
        assert options.date_range is None

    def test_options_unchanged_by_filtering(self, make_event):
        """Filtering never narrows the option universe of the source events."""
        events = [make_event("a", branches=("main",)), make_event("b", branches=("dev",))]
        before = derive_filter_options(events)
        apply_filters(events, FilterCriteria(branches=["main"]))
        assert derive_filter_options(events) == before
