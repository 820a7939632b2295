"""Phase 2: diff the submission path against the forge."""

import logging
from typing import List, Optional, Set, Tuple

from ..forge import Forge, PullRequest, RemotePrState
from ..graph.types import BookmarkSegment
from ..typing import ForgeNotFoundError
from ..util import run_concurrently
from .types import SegmentPlan, SubmissionAnalysis, SubmissionPlan

logger = logging.getLogger(__name__)

COMMIT_SEPARATOR = "\n\n---\n\n"


def pr_title(segment: BookmarkSegment) -> str:
    """First line of the segment's topmost commit, or the bookmark name."""
    subject = segment.head.subject
    return subject or segment.primary_name


def pr_body(segment: BookmarkSegment) -> Optional[str]:
    """PR body used at creation time.

    A single commit contributes everything after its first line. Several
    commits contribute their full descriptions, oldest first, separated by
    a horizontal rule.
    """
    if len(segment.commits) == 1:
        parts = segment.head.description.strip().split('\n', 1)
        body = parts[1].strip() if len(parts) > 1 else ""
        return body or None
    descriptions = [c.description.strip() for c in reversed(segment.commits)]
    descriptions = [d for d in descriptions if d]
    if not descriptions:
        return None
    return COMMIT_SEPARATOR.join(descriptions)


def find_existing_pr(forge: Forge, segment: BookmarkSegment) -> Optional[PullRequest]:
    """Look for a PR headed at any of the segment's bookmark names.

    An open PR wins; otherwise the first closed or merged one found.
    """
    fallback: Optional[PullRequest] = None
    for name in segment.bookmark_names:
        try:
            pr = forge.find_pr_by_head(name)
        except ForgeNotFoundError:
            pr = None
        if pr is None:
            continue
        if pr.is_open:
            return pr
        if fallback is None:
            fallback = pr
    return fallback


def create_submission_plan(analysis: SubmissionAnalysis, forge: Forge,
                           default_branch: Optional[str] = None, remote: str = "origin",
                           draft: bool = False, concurrency: int = 4) -> SubmissionPlan:
    """Query the forge for each segment and decide what phase 3 must do.

    Performs no mutation. Query errors other than not-found propagate.
    """
    if default_branch is None:
        default_branch = forge.get_default_branch()

    segments = list(analysis.relevant_segments)
    found = run_concurrently(lambda seg: find_existing_pr(forge, seg), segments, concurrency)
    for _, error in found:
        if error is not None:
            raise error

    segment_plans: List[SegmentPlan] = []
    pushes: Set[str] = set()
    creations: List[Tuple[BookmarkSegment, str]] = []
    base_updates: Set[Tuple[int, str]] = set()

    # Base of the next segment: the segment below it, unless that one was merged
    base = default_branch
    for segment, (pr, _) in zip(segments, found):
        state = RemotePrState.from_pull_request(pr)
        finished = state.exists and (state.is_merged or state.is_closed)
        needs_create = not state.exists
        needs_base_update = (state.exists and not finished and state.base_ref != base)

        if finished:
            logger.info(f"PR #{state.number} for {segment.primary_name} is "
                        f"{'merged' if state.is_merged else 'closed'}; leaving it alone")
        else:
            pushes.update(segment.bookmark_names)
            if needs_create:
                creations.append((segment, base))
            if needs_base_update and state.number is not None:
                base_updates.add((state.number, base))

        segment_plans.append(SegmentPlan(
            segment=segment,
            base=base,
            title=pr_title(segment),
            body=pr_body(segment),
            remote=state,
            needs_push=not finished,
            needs_create=needs_create,
            needs_base_update=needs_base_update,
        ))
        if not state.is_merged:
            base = segment.primary_name

    logger.debug(f"Plan: {len(pushes)} push(es), {len(creations)} creation(s), "
                 f"{len(base_updates)} base update(s)")
    return SubmissionPlan(
        segment_plans=tuple(segment_plans),
        pushes=frozenset(pushes),
        creations=tuple(creations),
        base_updates=frozenset(base_updates),
        draft=draft,
        remote=remote,
        default_branch=default_branch,
    )
