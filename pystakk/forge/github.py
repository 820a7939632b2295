"""GitHub implementation of the Forge protocol using PyGithub."""

import functools
import logging
from typing import Any, Callable, Dict, List, Optional, TypeVar, cast

from github import Auth, Github
from github.GithubException import (
    BadCredentialsException, GithubException, RateLimitExceededException,
    UnknownObjectException,
)
from github.GithubObject import NotSet

from ..typing import (
    ForgeAuthError, ForgeConflictError, ForgeError, ForgeNotFoundError, ForgeRateLimitError,
)
from . import Comment, CreatePrParams, Forge, PrState, PullRequest

# Get module logger
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

PR_ALREADY_EXISTS = "A pull request already exists"


def _github_message(e: GithubException) -> str:
    data = e.data
    if isinstance(data, dict):
        message = str(data.get("message", ""))
        errors = data.get("errors")
        if isinstance(errors, list):
            details = [str(err.get("message", err)) if isinstance(err, dict) else str(err)
                       for err in errors]
            message = "; ".join([message] + details) if message else "; ".join(details)
        if message:
            return message
    return str(e)


def map_github_error(e: GithubException) -> ForgeError:
    """Translate a PyGithub exception into the forge error taxonomy."""
    message = _github_message(e)
    status = e.status
    if isinstance(e, BadCredentialsException) or status == 401:
        return ForgeAuthError(f"authentication failed: {message}")
    if isinstance(e, RateLimitExceededException) or (status == 403 and "rate limit" in message.lower()):
        retry_after: Optional[int] = None
        headers = e.headers or {}
        if headers.get("retry-after", "").isdigit():
            retry_after = int(headers["retry-after"])
        return ForgeRateLimitError(f"rate limited: {message}", retry_after)
    if status == 403:
        return ForgeAuthError(f"permission denied: {message}")
    if isinstance(e, UnknownObjectException) or status == 404:
        return ForgeNotFoundError(f"not found: {message}")
    if status in (409, 422):
        return ForgeConflictError(message)
    return ForgeError(f"GitHub API error ({status}): {message}")


def translate_errors(func: F) -> F:
    """Re-raise PyGithub exceptions as ForgeError."""
    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except GithubException as e:
            raise map_github_error(e) from e
    return cast(F, wrapper)


def _pr_state(pr: Any) -> PrState:
    # merged_at is part of the list payload; reading .merged would cost a request per PR
    if pr.merged_at is not None:
        return PrState.MERGED
    if pr.state == "closed":
        return PrState.CLOSED
    return PrState.OPEN


def to_pull_request(pr: Any) -> PullRequest:
    """Convert a PyGithub pull request to the forge-agnostic shape."""
    return PullRequest(
        number=pr.number,
        url=pr.html_url or "",
        title=pr.title or "",
        head_ref=pr.head.ref,
        base_ref=pr.base.ref,
        state=_pr_state(pr),
    )


class GitHubForge(Forge):
    """GitHub forge backed by a PyGithub client."""

    def __init__(self, client: Github, owner: str, repo: str):
        """Initialize with a PyGithub client (real or fake) and the target repository."""
        self.client = client
        self.owner = owner
        self.repo_name = repo
        self._repo: Optional[Any] = None
        # Comments seen by list/create, so update can edit them in place
        self._comments: Dict[int, Any] = {}

    @classmethod
    def from_token(cls, token: str, owner: str, repo: str) -> 'GitHubForge':
        return cls(Github(auth=Auth.Token(token)), owner, repo)

    @property
    def repo(self) -> Any:
        """Get GitHub repository."""
        if self._repo is None:
            self._repo = self.client.get_repo(f"{self.owner}/{self.repo_name}")
        return self._repo

    @translate_errors
    def get_authenticated_identity(self) -> str:
        logger.info("> github get authenticated user")
        return self.client.get_user().login

    @translate_errors
    def find_pr_by_head(self, head: str) -> Optional[PullRequest]:
        logger.info(f"> github find pr for head {head}")
        head_filter = f"{self.owner}:{head}"
        candidates = [pr for pr in self.repo.get_pulls(state="all", head=head_filter)
                      if pr.head.ref == head]
        logger.debug(f"GitHub returned {len(candidates)} PR(s) for head filter {head_filter}")
        if not candidates:
            return None
        for pr in candidates:
            if pr.state == "open":
                return to_pull_request(pr)
        return to_pull_request(candidates[0])

    def create_pr(self, params: CreatePrParams) -> PullRequest:
        logger.info(f"> github create pr {params.head} -> {params.base} : {params.title}")
        try:
            pr = self.repo.create_pull(
                title=params.title,
                body=params.body if params.body is not None else NotSet,
                base=params.base,
                head=params.head,
                draft=params.draft,
            )
        except GithubException as e:
            error = map_github_error(e)
            if isinstance(error, ForgeConflictError) and PR_ALREADY_EXISTS in str(error):
                logger.warning(f"PR already exists for branch {params.head}, attempting to find it")
                existing = self.find_pr_by_head(params.head)
                if existing is not None:
                    return existing
            raise error from e
        return to_pull_request(pr)

    @translate_errors
    def update_pr_base(self, number: int, base: str) -> None:
        logger.info(f"> github update base #{number} -> {base}")
        self.repo.get_pull(number).edit(base=base)

    @translate_errors
    def list_comments(self, number: int) -> List[Comment]:
        logger.info(f"> github list comments #{number}")
        comments: List[Comment] = []
        for c in self.repo.get_issue(number).get_comments():
            self._comments[c.id] = c
            comments.append(Comment(id=c.id, body=c.body or ""))
        return comments

    @translate_errors
    def create_comment(self, number: int, body: str) -> Comment:
        logger.info(f"> github add comment #{number}")
        c = self.repo.get_issue(number).create_comment(body)
        self._comments[c.id] = c
        return Comment(id=c.id, body=c.body or "")

    @translate_errors
    def update_comment(self, comment_id: int, body: str) -> None:
        logger.info(f"> github update comment {comment_id}")
        cached = self._comments.get(comment_id)
        if cached is not None:
            cached.edit(body)
            return
        # Not seen in this run; PATCH it directly
        requester = getattr(self.client, '_Github__requester')
        requester.requestJsonAndCheck(
            "PATCH",
            f"/repos/{self.owner}/{self.repo_name}/issues/comments/{comment_id}",
            input={"body": body},
        )

    @translate_errors
    def get_default_branch(self) -> str:
        logger.info("> github get default branch")
        branch = self.repo.default_branch
        if not branch:
            raise ForgeError("repository has no default branch")
        return branch
