"""Common types used across the codebase."""

import datetime
from dataclasses import dataclass
from typing import List, NewType, Optional, Protocol, Tuple

# Create NewTypes for commit identifiers
ChangeID = NewType('ChangeID', str)
CommitHash = NewType('CommitHash', str)


@dataclass(frozen=True)
class Commit:
    """A single commit as reported by jj.

    ``change_id`` is stable across amendments, ``commit_id`` is not.
    """
    commit_id: CommitHash
    change_id: ChangeID
    description: str
    author: str
    timestamp: Optional[datetime.datetime] = None
    parent_ids: Tuple[CommitHash, ...] = ()

    @property
    def subject(self) -> str:
        """First line of the description."""
        return self.description.strip().split('\n', 1)[0].strip()


@dataclass(frozen=True)
class LogEntry:
    """One row of an ancestry page: a commit plus the local bookmarks on it."""
    commit: Commit
    bookmark_names: Tuple[str, ...] = ()

    @property
    def change_id(self) -> ChangeID:
        return self.commit.change_id

    @property
    def commit_id(self) -> CommitHash:
        return self.commit.commit_id

    @property
    def parent_ids(self) -> Tuple[CommitHash, ...]:
        return self.commit.parent_ids


@dataclass(frozen=True)
class Bookmark:
    """A local bookmark owned by the current user.

    ``commit_id`` is None when the bookmark is conflicted.
    """
    name: str
    commit_id: Optional[CommitHash] = None
    change_id: Optional[ChangeID] = None
    synced: bool = False


@dataclass(frozen=True)
class GitRemote:
    """A git remote as listed by ``jj git remote list``."""
    name: str
    url: str


class JjInterface(Protocol):
    """What the graph builder and executor need from the VCS."""

    def get_my_bookmarks(self) -> List[Bookmark]:
        ...

    def get_branch_changes_paginated(self, trunk: str, to_commit: str,
                                     after_commit: Optional[str] = None) -> List[LogEntry]:
        ...

    def push_bookmark(self, name: str, remote: str) -> None:
        ...

    def get_default_branch(self) -> str:
        ...

    def get_git_remote_list(self) -> List[GitRemote]:
        ...


class StakkError(Exception):
    """Base class for all pystakk errors."""


class VcsError(StakkError):
    """A jj invocation failed to launch or exited non-zero."""

    def __init__(self, command: str, stderr: str = ""):
        self.command = command
        self.stderr = stderr.strip()
        message = f"jj command failed: {command}"
        if self.stderr:
            message += f"\n{self.stderr}"
        super().__init__(message)


class VcsParseError(VcsError):
    """jj produced output we could not parse."""

    def __init__(self, command: str, detail: str):
        self.command = command
        self.stderr = ""
        self.detail = detail
        StakkError.__init__(self, f"could not parse output of jj command: {command}: {detail}")


class GraphError(StakkError):
    """The change graph cannot answer a request."""


class BookmarkNotFoundError(GraphError):
    """No segment carries the requested bookmark."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"bookmark '{name}' not found in any stack "
                         "(it may not exist or may belong to someone else)")


class TaintedBookmarkError(GraphError):
    """The bookmark sits on or above a merge commit and was excluded."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"bookmark '{name}' has a merge commit in its history "
                         "and cannot be submitted as a stack")


class UnresolvedBookmarkError(GraphError):
    """The bookmark exists but resolved to no commits (e.g. conflicted)."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"bookmark '{name}' did not resolve to any commits; "
                         "it may be conflicted or already part of trunk")


class ForgeError(StakkError):
    """A forge (GitHub) operation failed."""


class ForgeAuthError(ForgeError):
    """Authentication against the forge failed. Fatal to the run."""


class ForgeRateLimitError(ForgeError):
    """The forge rejected the request due to rate limiting."""

    def __init__(self, message: str, retry_after_seconds: Optional[int] = None):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(message)


class ForgeNotFoundError(ForgeError):
    """The forge object does not exist."""


class ForgeConflictError(ForgeError):
    """The forge refused a mutation (validation failure or conflict)."""


class AuthResolutionError(StakkError):
    """No credential source produced a token."""

    def __init__(self, tried: Optional[List[str]] = None):
        self.tried: List[str] = list(tried or [])
        message = ("No GitHub token found. Try one of:\n"
                   "1. Log in with 'gh auth login'\n"
                   "2. Set GITHUB_TOKEN env var\n"
                   "3. Set GH_TOKEN env var")
        super().__init__(message)


class RemoteError(StakkError):
    """The configured remote is missing or does not point at GitHub."""

