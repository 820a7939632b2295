"""Forge interfaces.

All forge interaction goes through the Forge protocol. The submission
pipeline never imports forge-specific types directly.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, runtime_checkable


class PrState(Enum):
    """State of a pull request."""
    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"


@dataclass
class PullRequest:
    """Pull request info, forge-agnostic."""
    number: int
    url: str
    title: str
    head_ref: str
    base_ref: str
    state: PrState = PrState.OPEN

    @property
    def is_merged(self) -> bool:
        return self.state == PrState.MERGED

    @property
    def is_open(self) -> bool:
        return self.state == PrState.OPEN

    def __str__(self) -> str:
        return f"PR #{self.number} - {self.title}"


@dataclass(frozen=True)
class RemotePrState:
    """What the planner knows about a segment's remote pull request."""
    exists: bool
    number: Optional[int] = None
    head_ref: Optional[str] = None
    base_ref: Optional[str] = None
    is_merged: bool = False
    is_closed: bool = False
    url: str = ""

    @classmethod
    def missing(cls) -> 'RemotePrState':
        return cls(exists=False)

    @classmethod
    def from_pull_request(cls, pr: Optional[PullRequest]) -> 'RemotePrState':
        if pr is None:
            return cls.missing()
        return cls(exists=True, number=pr.number, head_ref=pr.head_ref, base_ref=pr.base_ref,
                   is_merged=pr.is_merged, is_closed=pr.state == PrState.CLOSED, url=pr.url)


@dataclass(frozen=True)
class Comment:
    """A comment on a pull request."""
    id: int
    body: str


@dataclass(frozen=True)
class CreatePrParams:
    """Parameters for creating a pull request."""
    title: str
    head: str
    base: str
    body: Optional[str] = None
    draft: bool = False


@runtime_checkable
class Forge(Protocol):
    """Pull request and comment capabilities of a code forge.

    Implementations translate to and from a concrete platform API and raise
    ForgeError subclasses on failure.
    """

    def get_authenticated_identity(self) -> str:
        """Get the login of the authenticated user."""
        ...

    def find_pr_by_head(self, head: str) -> Optional[PullRequest]:
        """Find the pull request whose head branch is ``head``.

        Open pull requests win over closed or merged ones. Returns None
        when there is none.
        """
        ...

    def create_pr(self, params: CreatePrParams) -> PullRequest:
        """Create a new pull request."""
        ...

    def update_pr_base(self, number: int, base: str) -> None:
        """Repoint an existing pull request at a new base branch."""
        ...

    def list_comments(self, number: int) -> List[Comment]:
        """List all issue comments on a pull request."""
        ...

    def create_comment(self, number: int, body: str) -> Comment:
        """Add a comment to a pull request."""
        ...

    def update_comment(self, comment_id: int, body: str) -> None:
        """Replace the body of an existing comment."""
        ...

    def get_default_branch(self) -> str:
        """Get the repository's default branch name."""
        ...
