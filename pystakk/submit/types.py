"""Data types passed between the analyze, plan and execute phases."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from ..forge import RemotePrState
from ..forge.comment import StackEntry
from ..graph.types import BookmarkSegment
from ..typing import ChangeID, ForgeAuthError


@dataclass(frozen=True)
class SubmissionAnalysis:
    """Phase 1 output.

    ``relevant_segments`` runs from the segment nearest trunk up to and
    including the target bookmark's segment.
    """
    target_bookmark: str
    relevant_segments: Tuple[BookmarkSegment, ...]

    @property
    def target_segment(self) -> BookmarkSegment:
        return self.relevant_segments[-1]


@dataclass(frozen=True)
class SegmentPlan:
    """Everything the planner decided about one segment."""
    segment: BookmarkSegment
    base: str
    title: str
    body: Optional[str]
    remote: RemotePrState
    needs_push: bool
    needs_create: bool
    needs_base_update: bool

    @property
    def bookmark_name(self) -> str:
        return self.segment.primary_name

    @property
    def is_finished(self) -> bool:
        """The PR was merged or closed; nothing will be done to it."""
        return self.remote.exists and (self.remote.is_merged or self.remote.is_closed)


@dataclass(frozen=True)
class SubmissionPlan:
    """Phase 2 output: the remote mutations phase 3 will perform.

    ``pushes``, ``creations`` and ``base_updates`` are the authoritative
    action sets. ``segment_plans`` keeps the per-segment reasoning in
    trunk-to-leaf order for rendering and for the stack comments.
    """
    segment_plans: Tuple[SegmentPlan, ...]
    pushes: FrozenSet[str]
    # Root to leaf; each pair is (segment, base branch name)
    creations: Tuple[Tuple[BookmarkSegment, str], ...]
    base_updates: FrozenSet[Tuple[int, str]]
    draft: bool = False
    remote: str = "origin"
    default_branch: str = "main"

    @property
    def ordered_pushes(self) -> List[str]:
        """Push names in stack order so logs and outcomes are stable."""
        names: List[str] = []
        for sp in self.segment_plans:
            names.extend(n for n in sp.segment.bookmark_names if n in self.pushes)
        return names

    @property
    def ordered_base_updates(self) -> List[Tuple[int, str]]:
        order = {sp.remote.number: i for i, sp in enumerate(self.segment_plans)}
        return sorted(self.base_updates, key=lambda u: (order.get(u[0], len(order)), u[0]))

    @property
    def has_mutations(self) -> bool:
        return bool(self.pushes or self.creations or self.base_updates)

    def plan_for(self, change_id: ChangeID) -> Optional[SegmentPlan]:
        for sp in self.segment_plans:
            if sp.segment.change_id == change_id:
                return sp
        return None


class ActionKind(Enum):
    PUSH = "push"
    UPDATE_BASE = "update base"
    CREATE_PR = "create PR"
    COMMENT = "stack comment"


class OutcomeStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILURE = "failure"


@dataclass
class ActionOutcome:
    """Result of one phase 3 action."""
    kind: ActionKind
    target: str
    status: OutcomeStatus
    detail: str = ""
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.status == OutcomeStatus.FAILURE


@dataclass
class SubmissionResult:
    """Phase 3 output: one outcome per attempted action."""
    outcomes: List[ActionOutcome] = field(default_factory=list)
    stack_entries: List[StackEntry] = field(default_factory=list)
    # Set when authentication failed and the remaining steps were not run
    halted_by: Optional[ForgeAuthError] = None
    # PR number per bookmark name for every segment that has one after the run
    pr_numbers: Dict[str, int] = field(default_factory=dict)

    @property
    def failures(self) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def status(self) -> OutcomeStatus:
        """The worst outcome of the run. Skips do not count against it."""
        if self.halted_by is not None or self.failures:
            return OutcomeStatus.FAILURE
        return OutcomeStatus.SUCCESS

    def outcomes_of(self, kind: ActionKind) -> List[ActionOutcome]:
        return [o for o in self.outcomes if o.kind == kind]
