"""Stack extraction: leaves, roots, topological order and per-leaf stacks."""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, FrozenSet, List, Mapping, Tuple

from ..typing import ChangeID
from .types import BookmarkSegment, BranchStack, ChangeGraph


def compute_leaves(adjacency: Mapping[ChangeID, ChangeID],
                   segments: Mapping[ChangeID, BookmarkSegment]) -> FrozenSet[ChangeID]:
    """Change ids that are nobody's parent."""
    parents = set(adjacency.values())
    return frozenset(cid for cid in segments if cid not in parents)


def compute_roots(adjacency: Mapping[ChangeID, ChangeID],
                  segments: Mapping[ChangeID, BookmarkSegment]) -> FrozenSet[ChangeID]:
    """Change ids with no parent edge; their effective parent is trunk."""
    return frozenset(cid for cid in segments if cid not in adjacency)


def segment_sort_key(segment: BookmarkSegment) -> Tuple[float, str]:
    """Earliest commit first, change id as the final tie-break."""
    ts = segment.earliest_timestamp
    return (ts.timestamp() if ts is not None else float('inf'), segment.change_id)


def _ordered(ids: FrozenSet[ChangeID], segments: Mapping[ChangeID, BookmarkSegment]) -> List[ChangeID]:
    return sorted(ids, key=lambda cid: segment_sort_key(segments[cid]))


def topological_sort(graph: ChangeGraph) -> List[ChangeID]:
    """Order change ids leaves-first, roots-last (Kahn's algorithm).

    The in-degree of a segment is the number of bookmarked children pointing
    at it. Leaves seed the queue, earliest commit first.
    """
    in_degrees: Dict[ChangeID, int] = {}
    for parent_id in graph.adjacency.values():
        in_degrees[parent_id] = in_degrees.get(parent_id, 0) + 1

    leaves = compute_leaves(graph.adjacency, graph.segments)
    queue: Deque[ChangeID] = deque(_ordered(leaves, graph.segments))
    result: List[ChangeID] = []

    while queue:
        change_id = queue.popleft()
        result.append(change_id)
        parent_id = graph.adjacency.get(change_id)
        if parent_id is None:
            continue
        in_degrees[parent_id] -= 1
        if in_degrees[parent_id] == 0:
            queue.append(parent_id)

    return result


def group_segments_into_stacks(leaves: FrozenSet[ChangeID],
                               adjacency: Mapping[ChangeID, ChangeID],
                               segments: Mapping[ChangeID, BookmarkSegment]) -> List[BranchStack]:
    """Walk from each leaf to its root, producing one trunk-to-leaf stack per leaf.

    A segment with several bookmarked children appears in each of their stacks.
    """
    stacks: List[BranchStack] = []
    for leaf_id in _ordered(leaves, segments):
        path = [leaf_id]
        current = leaf_id
        while current in adjacency:
            current = adjacency[current]
            path.append(current)
        path.reverse()
        stacks.append(BranchStack(segments=tuple(segments[cid] for cid in path)))
    return stacks


@dataclass
class StackChoice:
    """One stack summarized on a single line."""
    stack_index: int
    bookmark_names: List[str]
    commit_count: int
    leaf_summary: str
    # (bookmark name, leaf names of the other stacks sharing it)
    shared_with: List[Tuple[str, List[str]]] = field(default_factory=list)

    def __str__(self) -> str:
        chain = " ← ".join(self.bookmark_names)
        pr_count = len(self.bookmark_names)
        if pr_count == 1:
            text = f"○ ← {chain}  (1 PR: {self.leaf_summary})"
        else:
            text = f"○ ← {chain}  ({pr_count} PRs)"
        for name, others in self.shared_with:
            text += f"  [{name} also in {', '.join(others)}]"
        return text


def collect_stack_choices(graph: ChangeGraph) -> List[StackChoice]:
    """Summarize every stack, noting segments shared with other stacks."""
    change_to_stacks: Dict[ChangeID, List[int]] = {}
    for index, stack in enumerate(graph.stacks):
        for segment in stack.segments:
            change_to_stacks.setdefault(segment.change_id, []).append(index)

    leaf_names = [stack.leaf.primary_name for stack in graph.stacks]

    choices: List[StackChoice] = []
    for index, stack in enumerate(graph.stacks):
        shared: List[Tuple[str, List[str]]] = []
        for segment in stack.segments:
            others = [leaf_names[i] for i in change_to_stacks[segment.change_id] if i != index]
            if others:
                shared.append((segment.primary_name, others))
        choices.append(StackChoice(
            stack_index=index,
            bookmark_names=stack.bookmark_names,
            commit_count=sum(len(seg.commits) for seg in stack.segments),
            leaf_summary=stack.leaf.head.subject,
            shared_with=shared,
        ))
    return choices
