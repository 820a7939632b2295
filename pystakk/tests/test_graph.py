"""Tests for change graph construction and stack extraction."""

import pytest

from pystakk.graph import build_change_graph
from pystakk.graph.stacks import collect_stack_choices, topological_sort
from pystakk.graph.types import ChangeGraph
from pystakk.jj import PAGE_SIZE
from pystakk.typing import GraphError, VcsError
from pystakk.tests.fakes import FakeJj


def assert_graph_invariants(graph: ChangeGraph) -> None:
    for child, parent in graph.adjacency.items():
        assert child not in graph.tainted
        assert parent not in graph.tainted
        assert child in graph.segments
        assert parent in graph.segments
    for stack in graph.stacks:
        for segment in stack.segments:
            assert segment.change_id not in graph.tainted
    assert len(graph.stacks) == len(graph.stack_leaves)


class TestLinearStack:
    """A <- B <- C chained on trunk."""

    def test_single_stack_of_three(self, abc_graph: ChangeGraph) -> None:
        assert len(abc_graph.stacks) == 1
        stack = abc_graph.stacks[0]
        assert stack.bookmark_names == ["A", "B", "C"]
        assert [len(s.commits) for s in stack.segments] == [1, 2, 1]
        assert_graph_invariants(abc_graph)

    def test_segment_commits_are_newest_first(self, abc_graph: ChangeGraph) -> None:
        b = abc_graph.segment_for_bookmark("B")
        assert b is not None
        assert [c.change_id for c in b.commits] == ["bbb2", "bbb1"]
        assert b.head.change_id == "bbb2"

    def test_adjacency_points_toward_trunk(self, abc_graph: ChangeGraph) -> None:
        assert abc_graph.adjacency == {"bbb2": "aaaa", "cccc": "bbb2"}
        assert abc_graph.stack_leaves == frozenset({"cccc"})
        assert abc_graph.stack_roots == frozenset({"aaaa"})

    def test_topological_order_is_leaves_first(self, abc_graph: ChangeGraph) -> None:
        assert topological_sort(abc_graph) == ["cccc", "bbb2", "aaaa"]

    def test_each_change_is_walked_once(self, abc_jj: FakeJj) -> None:
        build_change_graph(abc_jj)
        # A, B and C each need exactly one page; later walks stop at known changes
        assert len(abc_jj.page_requests) == 3

    def test_result_does_not_depend_on_walk_order(self, jj: FakeJj) -> None:
        # The leaf sorts first, so its walk discovers the whole chain
        jj.chain([("aaaa", ["z-bottom"]), ("bbbb", ["m-middle"]), ("cccc", ["a-top"])])
        graph = build_change_graph(jj)
        assert graph.stacks[0].bookmark_names == ["z-bottom", "m-middle", "a-top"]
        assert len(jj.page_requests) == 1
        assert_graph_invariants(graph)


class TestMultipleBookmarks:
    def test_names_on_one_commit_fold_into_one_segment(self, jj: FakeJj) -> None:
        jj.add("xxxx", bookmarks=["y", "x"])
        graph = build_change_graph(jj)
        assert len(graph.segments) == 1
        segment = graph.segments["xxxx"]
        assert segment.bookmark_names == ("x", "y")
        assert segment.primary_name == "x"
        assert graph.segment_for_bookmark("y") is segment

    def test_folded_segment_inside_stack(self, jj: FakeJj) -> None:
        jj.chain([("aaaa", ["A", "A2"]), ("bbbb", ["B"])])
        graph = build_change_graph(jj)
        assert len(graph.stacks) == 1
        assert graph.stacks[0].bookmark_names == ["A", "B"]
        assert graph.stacks[0].segments[0].bookmark_names == ("A", "A2")


class TestBranching:
    def test_shared_parent_is_duplicated_across_stacks(self, jj: FakeJj) -> None:
        jj.add("base", bookmarks=["base"])
        jj.add("left", ["base"], bookmarks=["left"])
        jj.add("rght", ["base"], bookmarks=["right"])
        graph = build_change_graph(jj)

        assert graph.stack_leaves == frozenset({"left", "rght"})
        assert graph.stack_roots == frozenset({"base"})
        # Leaves are ordered by earliest commit
        assert [s.bookmark_names for s in graph.stacks] == [["base", "left"], ["base", "right"]]
        assert_graph_invariants(graph)

    def test_topological_sort_waits_for_all_children(self, jj: FakeJj) -> None:
        jj.add("base", bookmarks=["base"])
        jj.add("left", ["base"], bookmarks=["left"])
        jj.add("rght", ["base"], bookmarks=["right"])
        graph = build_change_graph(jj)
        assert topological_sort(graph) == ["left", "rght", "base"]

    def test_stack_choices_report_shared_segments(self, jj: FakeJj) -> None:
        jj.add("base", bookmarks=["base"])
        jj.add("left", ["base"], bookmarks=["left"])
        jj.add("rght", ["base"], bookmarks=["right"])
        choices = collect_stack_choices(build_change_graph(jj))
        assert len(choices) == 2
        assert choices[0].shared_with == [("base", ["right"])]
        assert str(choices[0]).startswith("○ ← base ← left  (2 PRs)")

    def test_independent_stacks(self, jj: FakeJj) -> None:
        jj.add("one1", bookmarks=["one"])
        jj.add("two1", bookmarks=["two"])
        graph = build_change_graph(jj)
        assert len(graph.stacks) == 2
        assert graph.adjacency == {}
        assert str(collect_stack_choices(graph)[0]) == "○ ← one  (1 PR: Change one1)"


class TestMergeTainting:
    def test_merge_descendant_is_excluded(self, jj: FakeJj) -> None:
        jj.add("side")
        jj.add("merg", ["trunk", "side"])
        jj.add("desc", ["merg"], bookmarks=["D"])
        graph = build_change_graph(jj)

        assert {"merg", "desc"} <= graph.tainted
        assert graph.segment_for_bookmark("D") is None
        assert graph.excluded_bookmarks == {"D"}
        assert graph.excluded_bookmark_count == 1
        assert graph.stacks == []
        assert_graph_invariants(graph)

    def test_bookmark_below_merge_survives(self, jj: FakeJj) -> None:
        jj.add("ebot", bookmarks=["E"])
        jj.add("merg", ["ebot", "trunk"], bookmarks=["M"])
        jj.add("desc", ["merg"], bookmarks=["D"])
        graph = build_change_graph(jj)

        assert graph.excluded_bookmarks == {"D", "M"}
        assert [s.bookmark_names for s in graph.stacks] == [["E"]]
        assert "ebot" not in graph.tainted
        assert_graph_invariants(graph)

    def test_walk_into_tainted_change_is_excluded(self, jj: FakeJj) -> None:
        jj.add("merg", ["trunk", "other"], bookmarks=["A"])
        jj.add("one1", ["merg"], bookmarks=["B"])
        jj.add("two1", ["merg"], bookmarks=["C"])
        graph = build_change_graph(jj)
        assert graph.excluded_bookmarks == {"A", "B", "C"}
        assert graph.segments == {}
        assert_graph_invariants(graph)


class TestPagination:
    def test_long_chain_spans_pages(self, jj: FakeJj) -> None:
        links = [(f"c{i:04d}", []) for i in range(PAGE_SIZE + 20)]
        links[0] = ("c0000", ["bottom"])
        links[-1] = (links[-1][0], ["top"])
        jj.chain(links)
        graph = build_change_graph(jj)

        assert [s.bookmark_names for s in graph.stacks] == [["bottom", "top"]]
        top = graph.segment_for_bookmark("top")
        assert top is not None
        assert len(top.commits) == PAGE_SIZE + 19
        # "bottom" walked with one page, "top" needed two
        assert len(jj.page_requests) == 3
        assert jj.page_requests[-1][1] is not None

    def test_page_failure_is_fatal(self, abc_jj: FakeJj) -> None:
        abc_jj.failing_revisions["c_aaaa"] = "Error: revision not found"
        with pytest.raises(VcsError) as exc_info:
            build_change_graph(abc_jj)
        assert "revision not found" in str(exc_info.value)


class TestUnresolved:
    def test_conflicted_bookmark_is_reported(self, abc_jj: FakeJj) -> None:
        abc_jj.conflict("broken")
        graph = build_change_graph(abc_jj)
        assert graph.unresolved_bookmarks == {"broken"}
        assert graph.stacks[0].bookmark_names == ["A", "B", "C"]

    def test_bookmark_on_trunk_resolves_to_nothing(self, jj: FakeJj) -> None:
        jj.bookmarks["old"] = "c_not_above_trunk"
        graph = build_change_graph(jj)
        assert graph.unresolved_bookmarks == {"old"}

    def test_unbookmarked_tip_is_an_error(self) -> None:
        class OrphanJj(FakeJj):
            def get_branch_changes_paginated(self, trunk, to_commit, after_commit=None):  # type: ignore[no-untyped-def]
                entries = super().get_branch_changes_paginated(trunk, to_commit, after_commit)
                return entries[1:]

        jj = OrphanJj()
        jj.chain([("aaaa", []), ("bbbb", ["B"])])
        with pytest.raises(GraphError):
            build_change_graph(jj)
