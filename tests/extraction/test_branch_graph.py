"""Tests for reachability-based branch membership."""

from repo_timeline.temporal import graph
from repo_timeline.temporal.models import RawCommit


def raw(commit_hash, *parents):
    return RawCommit(
        hash=commit_hash,
        parents=list(parents),
        author_name="Alice",
        author_email="alice@example.com",
        author_time=0,
        commit_time=0,
        subject=commit_hash,
    )


def dag(*commits):
    return {c.hash: c for c in commits}


# a <- b <- c (main)
#       \
#        d <- e (feature)
FORKED = dag(raw("a"), raw("b", "a"), raw("c", "b"), raw("d", "b"), raw("e", "d"))

# a <- b <- m (main, merge of b and d)
#  \       /
#   c <- d   (feature)
MERGED = dag(raw("a"), raw("b", "a"), raw("c", "a"), raw("d", "c"), raw("m", "b", "d"))


class TestReachability:
    def test_distances_from_tip(self):
        """BFS distance counts parent hops from the tip."""
        reach = graph.reachability(FORKED, {"main": "c"})
        assert reach["main"] == {"c": 0, "b": 1, "a": 2}

    def test_tip_outside_window(self):
        """A tip not among the commits reaches nothing."""
        assert graph.reachability(FORKED, {"gone": "zzz"}) == {"gone": {}}

    def test_parents_outside_window_not_followed(self):
        """Elided parents stop the walk."""
        commits = dag(raw("b", "a"), raw("c", "b"))
        assert graph.reachability(commits, {"main": "c"})["main"] == {"c": 0, "b": 1}


class TestMembership:
    def test_shared_history_belongs_to_both(self):
        """Commits before the fork are on both branches."""
        reach = graph.reachability(FORKED, {"main": "c", "feature": "e"})
        membership = graph.compute_membership(FORKED, reach)
        assert set(membership["b"].branches) == {"main", "feature"}
        assert membership["e"].branches == ("feature",)
        assert membership["c"].branches == ("main",)

    def test_primary_is_closest_tip(self):
        """The nearer tip wins the primary branch."""
        reach = graph.reachability(FORKED, {"main": "c", "feature": "e"})
        membership = graph.compute_membership(FORKED, reach)
        # b is 1 hop from main and 2 from feature
        assert membership["b"].primary == "main"
        assert membership["b"].branches[0] == "main"

    def test_primary_tie_broken_lexically(self):
        """Equal distance: lexically smallest name."""
        reach = graph.reachability(FORKED, {"zeta": "c", "alpha": "c"})
        membership = graph.compute_membership(FORKED, reach)
        assert membership["c"].primary == "alpha"

    def test_merge_includes_merged_in_branch(self):
        """A merge commit also belongs to branches of its merged-in parent."""
        reach = graph.reachability(MERGED, {"main": "m", "feature": "d"})
        membership = graph.compute_membership(MERGED, reach)
        assert membership["m"].branches == ("main", "feature")
        assert membership["m"].primary == "main"

    def test_unreachable_commit_gets_head_label(self):
        """Commits reachable from no branch are labelled HEAD."""
        membership = graph.compute_membership(FORKED, graph.reachability(FORKED, {"main": "c"}))
        assert membership["e"].branches == (graph.DETACHED_LABEL,)


class TestFirstParentChain:
    def test_follows_first_parents(self):
        """The merged-in side is not part of the chain."""
        assert graph.first_parent_chain(MERGED, "m") == ["m", "b", "a"]

    def test_missing_start(self):
        """An unknown start yields an empty chain."""
        assert graph.first_parent_chain(MERGED, None) == []


class TestBranchFirstCommit:
    def test_first_commit_off_trunk(self):
        """The earliest commit not on the trunk's first-parent chain."""
        trunk = set(graph.first_parent_chain(FORKED, "c"))
        assert graph.branch_first_commit(FORKED, "e", trunk) == "d"

    def test_branch_without_own_commits(self):
        """A branch pointing into the trunk was not really created yet."""
        trunk = set(graph.first_parent_chain(FORKED, "c"))
        assert graph.branch_first_commit(FORKED, "b", trunk) is None

    def test_creation_beyond_window(self):
        """If the off-trunk history leaves the window the creation point is unknown."""
        commits = dag(raw("x", "gone"), raw("y", "x"))
        assert graph.branch_first_commit(commits, "y", set()) is None


class TestChooseDefaultBranch:
    def test_head_branch_preferred(self):
        assert graph.choose_default_branch(["dev", "main"], "dev") == "dev"

    def test_conventional_names(self):
        assert graph.choose_default_branch(["feature", "master"], None) == "master"

    def test_fallback_lexical(self):
        assert graph.choose_default_branch(["zeta", "beta"], None) == "beta"

    def test_no_branches(self):
        assert graph.choose_default_branch([], None) is None
