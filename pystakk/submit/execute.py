"""Phase 3: apply a submission plan.

Steps run in a fixed order: pushes, base updates, PR creation (root to
leaf, one at a time), then stack comments. Within a step a failing action
is recorded and its siblings carry on. An authentication failure stops the
remaining steps.
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from ..forge import CreatePrParams, Forge, PullRequest
from ..forge.comment import StackCommentData, StackEntry, find_stack_comment, format_stack_comment
from ..typing import ForgeAuthError, JjInterface
from ..util import run_concurrently
from .types import (
    ActionKind, ActionOutcome, OutcomeStatus, SegmentPlan, SubmissionPlan, SubmissionResult,
)

logger = logging.getLogger(__name__)


def _record(result: SubmissionResult, kind: ActionKind, target: str,
            error: Optional[Exception], detail: str = "") -> ActionOutcome:
    if error is None:
        outcome = ActionOutcome(kind, target, OutcomeStatus.SUCCESS, detail)
    else:
        logger.error(f"{kind.value} failed for {target}: {error}")
        outcome = ActionOutcome(kind, target, OutcomeStatus.FAILURE, str(error), error)
        if isinstance(error, ForgeAuthError) and result.halted_by is None:
            result.halted_by = error
    result.outcomes.append(outcome)
    return outcome


def _skip(result: SubmissionResult, kind: ActionKind, target: str, detail: str) -> None:
    logger.warning(f"Skipping {kind.value} for {target}: {detail}")
    result.outcomes.append(ActionOutcome(kind, target, OutcomeStatus.SKIPPED, detail))


def _push_step(plan: SubmissionPlan, jj: JjInterface, result: SubmissionResult,
               concurrency: int) -> Set[str]:
    names = plan.ordered_pushes
    if not names:
        return set()
    logger.info(f"Pushing {len(names)} bookmark(s) to {plan.remote}")

    def push(name: str) -> None:
        jj.push_bookmark(name, plan.remote)

    failed: Set[str] = set()
    for name, (_, error) in zip(names, run_concurrently(push, names, concurrency)):
        _record(result, ActionKind.PUSH, name, error, f"pushed to {plan.remote}")
        if error is not None:
            failed.add(name)
    return failed


def _base_update_step(plan: SubmissionPlan, forge: Forge, result: SubmissionResult,
                      concurrency: int) -> None:
    updates = plan.ordered_base_updates
    if not updates:
        return
    logger.info(f"Updating base of {len(updates)} PR(s)")

    def update(item: Tuple[int, str]) -> None:
        forge.update_pr_base(item[0], item[1])

    for (number, base), (_, error) in zip(updates, run_concurrently(update, updates, concurrency)):
        _record(result, ActionKind.UPDATE_BASE, f"#{number}", error, f"base -> {base}")


def _creation_step(plan: SubmissionPlan, forge: Forge, result: SubmissionResult,
                   failed_pushes: Set[str]) -> Dict[str, PullRequest]:
    created: Dict[str, PullRequest] = {}
    for segment, base in plan.creations:
        name = segment.primary_name
        if result.halted_by is not None:
            break
        if name in failed_pushes:
            _skip(result, ActionKind.CREATE_PR, name, "bookmark was not pushed")
            continue
        if base in failed_pushes:
            _skip(result, ActionKind.CREATE_PR, name, f"base bookmark {base} was not pushed")
            continue
        sp = plan.plan_for(segment.change_id)
        params = CreatePrParams(
            title=sp.title if sp else segment.head.subject,
            head=name,
            base=base,
            body=sp.body if sp else None,
            draft=plan.draft,
        )
        try:
            pr = forge.create_pr(params)
        except Exception as e:
            _record(result, ActionKind.CREATE_PR, name, e)
            continue
        logger.info(f"Created PR #{pr.number} for {name}: {pr.url}")
        created[name] = pr
        _record(result, ActionKind.CREATE_PR, name, None, f"#{pr.number} {pr.url}")
    return created


def build_stack_entries(plan: SubmissionPlan,
                        created: Dict[str, PullRequest]) -> List[Tuple[SegmentPlan, StackEntry]]:
    """One entry per segment that has a PR after this run, trunk to leaf."""
    entries: List[Tuple[SegmentPlan, StackEntry]] = []
    for sp in plan.segment_plans:
        pr = created.get(sp.bookmark_name)
        if pr is not None:
            entries.append((sp, StackEntry(bookmark_name=sp.bookmark_name, pr_url=pr.url,
                                           pr_number=pr.number)))
        elif sp.remote.exists and sp.remote.number is not None:
            entries.append((sp, StackEntry(bookmark_name=sp.bookmark_name, pr_url=sp.remote.url,
                                           pr_number=sp.remote.number,
                                           merged=sp.remote.is_merged,
                                           closed=sp.remote.is_closed)))
    return entries


def upsert_stack_comment(forge: Forge, pr_number: int, body: str) -> str:
    """Edit this tool's comment on a PR, creating it only if none exists."""
    existing = find_stack_comment(forge.list_comments(pr_number))
    if existing is not None:
        if existing.body == body:
            return "unchanged"
        forge.update_comment(existing.id, body)
        return "updated"
    forge.create_comment(pr_number, body)
    return "created"


def _comment_step(forge: Forge, entries: List[Tuple[SegmentPlan, StackEntry]],
                  result: SubmissionResult, concurrency: int) -> None:
    data = StackCommentData(stack=[entry for _, entry in entries])
    targets: List[Tuple[int, str]] = []
    for index, (sp, entry) in enumerate(entries):
        if sp.is_finished:
            continue
        targets.append((entry.pr_number, format_stack_comment(data, index)))
    if not targets:
        return
    logger.info(f"Updating stack comments on {len(targets)} PR(s)")

    def upsert(item: Tuple[int, str]) -> str:
        return upsert_stack_comment(forge, item[0], item[1])

    for (number, _), (action, error) in zip(targets, run_concurrently(upsert, targets, concurrency)):
        _record(result, ActionKind.COMMENT, f"#{number}", error, action or "")


def execute_submission_plan(plan: SubmissionPlan, jj: JjInterface, forge: Forge,
                            concurrency: int = 4) -> SubmissionResult:
    """Run phase 3 and report one outcome per action.

    Never raises for an individual action; check ``result.status`` and
    ``result.halted_by``.
    """
    result = SubmissionResult()

    failed_pushes = _push_step(plan, jj, result, concurrency)
    if result.halted_by is None:
        _base_update_step(plan, forge, result, concurrency)
    created: Dict[str, PullRequest] = {}
    if result.halted_by is None:
        created = _creation_step(plan, forge, result, failed_pushes)

    entries = build_stack_entries(plan, created)
    result.stack_entries = [entry for _, entry in entries]
    result.pr_numbers = {entry.bookmark_name: entry.pr_number for entry in result.stack_entries}

    if result.halted_by is None:
        _comment_step(forge, entries, result, concurrency)

    if result.halted_by is not None:
        logger.error(f"Authentication failed, remaining steps were not run: {result.halted_by}")
    return result
