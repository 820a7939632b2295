"""Data types for change graph construction."""

import datetime
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from ..typing import ChangeID, Commit


@dataclass(frozen=True)
class BookmarkSegment:
    """A run of commits owned by one or more bookmarks on the same change.

    ``commits`` are ordered newest-first: the first commit is the bookmarked
    change, the chain ends just above the next bookmarked ancestor.
    ``bookmark_names`` is sorted, so the first name is the stable primary.
    """
    bookmark_names: Tuple[str, ...]
    change_id: ChangeID
    commits: Tuple[Commit, ...]

    @property
    def primary_name(self) -> str:
        return self.bookmark_names[0]

    @property
    def head(self) -> Commit:
        return self.commits[0]

    @property
    def earliest_timestamp(self) -> Optional[datetime.datetime]:
        stamps = [c.timestamp for c in self.commits if c.timestamp is not None]
        return min(stamps) if stamps else None


@dataclass(frozen=True)
class BranchStack:
    """A path from trunk to one leaf bookmark, ordered trunk-to-leaf."""
    segments: Tuple[BookmarkSegment, ...]

    @property
    def leaf(self) -> BookmarkSegment:
        return self.segments[-1]

    @property
    def bookmark_names(self) -> List[str]:
        return [seg.primary_name for seg in self.segments]


@dataclass
class ChangeGraph:
    """All bookmarked segments, their parent edges and the resulting stacks.

    ``adjacency`` maps a child change_id to its parent change_id (toward
    trunk); each node has at most one outgoing edge.
    """
    adjacency: Dict[ChangeID, ChangeID] = field(default_factory=dict)
    segments: Dict[ChangeID, BookmarkSegment] = field(default_factory=dict)
    tainted: Set[ChangeID] = field(default_factory=set)
    stack_leaves: FrozenSet[ChangeID] = frozenset()
    stack_roots: FrozenSet[ChangeID] = frozenset()
    stacks: List[BranchStack] = field(default_factory=list)
    # Owned bookmark names dropped because of a merge in their history
    excluded_bookmarks: Set[str] = field(default_factory=set)
    # Owned bookmark names whose walk resolved to nothing
    unresolved_bookmarks: Set[str] = field(default_factory=set)

    @property
    def excluded_bookmark_count(self) -> int:
        return len(self.excluded_bookmarks)

    def segment_for_bookmark(self, name: str) -> Optional[BookmarkSegment]:
        """Find the segment carrying ``name``, if any."""
        for segment in self.segments.values():
            if name in segment.bookmark_names:
                return segment
        return None
