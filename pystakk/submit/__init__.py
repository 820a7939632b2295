"""Three-phase submission of a bookmark stack as pull requests.

analyze (pure) -> plan (forge reads only) -> execute (pushes and forge
mutations). Dry runs stop after planning.
"""

from .analyze import analyze_submission
from .execute import execute_submission_plan, upsert_stack_comment
from .plan import create_submission_plan, pr_body, pr_title
from .types import (
    ActionKind, ActionOutcome, OutcomeStatus, SegmentPlan, SubmissionAnalysis, SubmissionPlan,
    SubmissionResult,
)

__all__ = [
    'analyze_submission', 'create_submission_plan', 'execute_submission_plan',
    'upsert_stack_comment', 'pr_body', 'pr_title',
    'ActionKind', 'ActionOutcome', 'OutcomeStatus', 'SegmentPlan', 'SubmissionAnalysis',
    'SubmissionPlan', 'SubmissionResult',
]
