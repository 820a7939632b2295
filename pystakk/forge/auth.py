"""GitHub token discovery."""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Mapping, Optional, Tuple

from ..typing import AuthResolutionError

logger = logging.getLogger(__name__)

TOKEN_SOURCE_GH_CLI = "gh auth token"
TOKEN_SOURCE_GITHUB_TOKEN = "GITHUB_TOKEN"
TOKEN_SOURCE_GH_TOKEN = "GH_TOKEN"


@dataclass(frozen=True)
class AuthToken:
    """A resolved token and where it came from."""
    token: str
    source: str

    def __repr__(self) -> str:
        # Never leak the secret in logs or tracebacks
        return f"AuthToken(source={self.source!r})"


def token_from_gh_cli() -> Optional[str]:
    """Ask the gh CLI for its token. Returns None if gh is missing or not logged in."""
    try:
        result = subprocess.run(["gh", "auth", "token"], capture_output=True, text=True, check=False)
    except OSError as e:
        logger.debug(f"gh CLI not available: {e}")
        return None
    if result.returncode != 0:
        logger.debug(f"gh auth token failed: {result.stderr.strip()}")
        return None
    token = result.stdout.strip()
    return token or None


def resolve_token(env: Optional[Mapping[str, str]] = None,
                  gh_cli: Optional[Callable[[], Optional[str]]] = None) -> AuthToken:
    """Find a GitHub token: gh CLI first, then GITHUB_TOKEN, then GH_TOKEN."""
    if env is None:
        env = os.environ
    if gh_cli is None:
        gh_cli = token_from_gh_cli
    sources: List[Tuple[str, Callable[[], Optional[str]]]] = [
        (TOKEN_SOURCE_GH_CLI, gh_cli),
        (TOKEN_SOURCE_GITHUB_TOKEN, lambda: env.get(TOKEN_SOURCE_GITHUB_TOKEN)),
        (TOKEN_SOURCE_GH_TOKEN, lambda: env.get(TOKEN_SOURCE_GH_TOKEN)),
    ]
    for source, lookup in sources:
        token = lookup()
        if token and token.strip():
            logger.debug(f"Using GitHub token from {source}")
            return AuthToken(token.strip(), source)
    raise AuthResolutionError([source for source, _ in sources])
