"""Change graph construction.

Builds the ChangeGraph from jj bookmark and ancestry data to determine the
stacking order of bookmarks for PR submission.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..jj import PAGE_SIZE
from ..typing import Bookmark, ChangeID, Commit, GraphError, JjInterface
from .stacks import compute_leaves, compute_roots, group_segments_into_stacks
from .types import BookmarkSegment, BranchStack, ChangeGraph

# Get module logger
logger = logging.getLogger(__name__)

__all__ = ['build_change_graph', 'BookmarkSegment', 'BranchStack', 'ChangeGraph']


@dataclass
class _OpenSegment:
    names: List[str]
    change_id: ChangeID
    commits: List[Commit] = field(default_factory=list)

    def close(self) -> BookmarkSegment:
        return BookmarkSegment(tuple(sorted(self.names)), self.change_id, tuple(self.commits))


@dataclass
class TraversalResult:
    """Result of walking from one bookmark toward trunk."""
    # Ordered newest-first (leaf toward trunk)
    segments: List[BookmarkSegment] = field(default_factory=list)
    # Set when the walk stopped at a change collected by an earlier walk
    already_seen_change_id: Optional[ChangeID] = None
    # Owned names met on a walk that hit merge lineage
    excluded_names: Set[str] = field(default_factory=set)

    @property
    def excluded(self) -> bool:
        return bool(self.excluded_names)


def traverse_and_discover_segments(bookmark: Bookmark, jj: JjInterface, trunk: str,
                                   known: Dict[ChangeID, BookmarkSegment],
                                   tainted: Set[ChangeID],
                                   owned_names: Set[str]) -> TraversalResult:
    """Walk from a bookmark toward trunk in pages, cutting segments at owned bookmarks.

    Stops at a change already known from a previous walk, at trunk, or at a
    merge commit. Hitting a merge (or an already tainted change) taints every
    change seen on this walk and discards its segments.
    """
    result = TraversalResult()
    current: Optional[_OpenSegment] = None
    seen_ids: List[ChangeID] = []
    seen_names: Set[str] = {bookmark.name}
    after: Optional[str] = None
    to_commit = str(bookmark.commit_id)

    while True:
        page = jj.get_branch_changes_paginated(trunk, to_commit, after)
        if not page:
            break

        for entry in page:
            if entry.change_id in known:
                if current is not None:
                    result.segments.append(current.close())
                    current = None
                result.already_seen_change_id = entry.change_id
                return result

            seen_ids.append(entry.change_id)
            names = [n for n in entry.bookmark_names if n in owned_names]
            seen_names.update(names)

            if len(entry.parent_ids) > 1 or entry.change_id in tainted:
                logger.debug(f"Merge lineage at {entry.change_id} while walking {bookmark.name}; "
                             f"tainting {len(seen_ids)} change(s)")
                tainted.update(seen_ids)
                return TraversalResult(excluded_names=seen_names)

            if names:
                if current is not None:
                    result.segments.append(current.close())
                current = _OpenSegment(names=names, change_id=entry.change_id)
            elif current is None:
                raise GraphError(f"encountered change {entry.change_id} before any bookmark "
                                 f"while traversing from bookmark '{bookmark.name}'")
            current.commits.append(entry.commit)

        if len(page) < PAGE_SIZE:
            break
        after = str(page[-1].commit_id)

    if current is not None:
        result.segments.append(current.close())
    return result


def build_change_graph(jj: JjInterface, trunk: str = "trunk()") -> ChangeGraph:
    """Build the complete change graph from the current jj repo state.

    Discovers the user's bookmarks, walks each toward trunk, links segments
    child to parent, taints merge lineage, and groups the result into stacks.
    """
    bookmarks = jj.get_my_bookmarks()
    owned_names = {b.name for b in bookmarks}
    logger.debug(f"Found {len(bookmarks)} bookmark(s): {sorted(owned_names)}")

    graph = ChangeGraph()
    collected: Set[str] = set()

    for bookmark in bookmarks:
        if bookmark.name in collected or bookmark.name in graph.excluded_bookmarks:
            continue
        if not bookmark.commit_id:
            logger.warning(f"Bookmark '{bookmark.name}' is conflicted and has no single target")
            graph.unresolved_bookmarks.add(bookmark.name)
            continue

        result = traverse_and_discover_segments(
            bookmark, jj, trunk, graph.segments, graph.tainted, owned_names)

        if result.excluded:
            logger.info(f"Excluding bookmark(s) {sorted(result.excluded_names)}: "
                        "merge commit in history")
            graph.excluded_bookmarks.update(result.excluded_names)
            continue

        if not result.segments and result.already_seen_change_id is None:
            logger.warning(f"Bookmark '{bookmark.name}' resolved to no commits")
            graph.unresolved_bookmarks.add(bookmark.name)
            continue

        for segment in result.segments:
            collected.update(segment.bookmark_names)
            graph.segments[segment.change_id] = segment

        # Consecutive segments are child -> parent
        for child, parent in zip(result.segments, result.segments[1:]):
            graph.adjacency[child.change_id] = parent.change_id

        if result.already_seen_change_id is not None and result.segments:
            graph.adjacency[result.segments[-1].change_id] = result.already_seen_change_id

    graph.stack_leaves = compute_leaves(graph.adjacency, graph.segments)
    graph.stack_roots = compute_roots(graph.adjacency, graph.segments)
    graph.stacks = group_segments_into_stacks(graph.stack_leaves, graph.adjacency, graph.segments)

    logger.debug(f"Change graph: {len(graph.segments)} segment(s), {len(graph.stacks)} stack(s), "
                 f"{len(graph.tainted)} tainted change(s)")
    return graph
