"""GitHub remote URL parsing."""

from dataclasses import dataclass
import logging
from typing import List, Optional, Tuple

from ..typing import GitRemote, RemoteError

logger = logging.getLogger(__name__)

SSH_PREFIX = "git@github.com:"
HTTPS_PREFIXES = ("https://github.com/", "http://github.com/")


@dataclass(frozen=True)
class GitHubRepo:
    """A parsed GitHub repository reference."""
    owner: str
    repo: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_github_url(url: str) -> Optional[GitHubRepo]:
    """Parse a GitHub owner/repo from a remote URL.

    Supports ``https://github.com/owner/repo.git`` and
    ``git@github.com:owner/repo.git``, with or without the ``.git`` suffix.
    Returns None for anything else.
    """
    url = url.strip()
    if url.startswith(SSH_PREFIX):
        return _parse_owner_repo(url[len(SSH_PREFIX):])
    for prefix in HTTPS_PREFIXES:
        if url.startswith(prefix):
            return _parse_owner_repo(url[len(prefix):])
    return None


def _parse_owner_repo(path: str) -> Optional[GitHubRepo]:
    if path.endswith(".git"):
        path = path[:-len(".git")]
    if path.endswith("/"):
        path = path[:-1]

    parts = path.split("/")
    # Extra path segments are not a repository URL
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return GitHubRepo(owner=parts[0], repo=parts[1])


def resolve_github_remote(remotes: List[GitRemote],
                          preferred: Optional[str] = None) -> Tuple[str, GitHubRepo]:
    """Pick the remote to submit to.

    With ``preferred``, that remote must exist and point at GitHub. Otherwise the
    first remote with a GitHub URL wins.
    """
    if preferred:
        for remote in remotes:
            if remote.name == preferred:
                repo = parse_github_url(remote.url)
                if repo is None:
                    raise RemoteError(f"remote '{preferred}' is not a GitHub URL: {remote.url}")
                return remote.name, repo
        names = ", ".join(r.name for r in remotes) or "none"
        raise RemoteError(f"remote '{preferred}' not found. Available remotes: {names}")

    for remote in remotes:
        repo = parse_github_url(remote.url)
        if repo is not None:
            return remote.name, repo
    raise RemoteError("no remote points at GitHub")
