"""Phase 1: find the segments a submission touches."""

import logging
from typing import List

from ..graph.types import BookmarkSegment, ChangeGraph
from ..typing import (
    BookmarkNotFoundError, GraphError, TaintedBookmarkError, UnresolvedBookmarkError,
)
from .types import SubmissionAnalysis

logger = logging.getLogger(__name__)


def analyze_submission(target_bookmark: str, graph: ChangeGraph) -> SubmissionAnalysis:
    """Map a target bookmark to its trunk-to-target path of segments.

    Pure: reads only the graph, so repeated calls give identical results.
    """
    if target_bookmark in graph.excluded_bookmarks:
        raise TaintedBookmarkError(target_bookmark)
    if target_bookmark in graph.unresolved_bookmarks:
        raise UnresolvedBookmarkError(target_bookmark)

    segment = graph.segment_for_bookmark(target_bookmark)
    if segment is None:
        raise BookmarkNotFoundError(target_bookmark)

    path: List[BookmarkSegment] = [segment]
    visited = {segment.change_id}
    current = segment.change_id
    while current in graph.adjacency:
        current = graph.adjacency[current]
        if current in visited:
            raise GraphError(f"cycle in change graph at {current}")
        visited.add(current)
        path.append(graph.segments[current])
    path.reverse()

    logger.debug(f"Submission path for {target_bookmark}: "
                 f"{' <- '.join(s.primary_name for s in path)}")
    return SubmissionAnalysis(target_bookmark=target_bookmark, relevant_segments=tuple(path))
