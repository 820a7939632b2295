"""Stack comment formatting and parsing.

Each stack comment starts with an HTML comment holding base64-encoded JSON
metadata, so later runs can find and edit the same comment instead of
posting a new one.
"""

import base64
import binascii
import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, ValidationError

from . import Comment

logger = logging.getLogger(__name__)

COMMENT_DATA_PREFIX = "<!--- STAKK_STACK: "
COMMENT_DATA_POSTFIX = " --->"
COMMENT_VERSION = 0
STACK_COMMENT_THIS_PR = "← this PR"
STACK_COMMENT_FOOTER = "*Created with stakk*"


class StackEntry(BaseModel):
    """One member of a stack as recorded in the comment metadata."""
    bookmark_name: str
    pr_url: str
    pr_number: int
    merged: bool = False
    closed: bool = False

    @property
    def suffix(self) -> str:
        """Annotation for a member that will not land through this stack."""
        if self.merged:
            return " (merged)"
        if self.closed:
            return " (closed)"
        return ""


class StackCommentData(BaseModel):
    """Metadata embedded in stack comments."""
    version: int = COMMENT_VERSION
    stack: List[StackEntry]

    @property
    def pr_numbers(self) -> List[int]:
        return [entry.pr_number for entry in self.stack]


def encode_token(data: StackCommentData) -> str:
    """Encode metadata as the identity token line."""
    encoded = base64.b64encode(data.model_dump_json().encode("utf-8")).decode("ascii")
    return f"{COMMENT_DATA_PREFIX}{encoded}{COMMENT_DATA_POSTFIX}"


def format_stack_comment(data: StackCommentData, current_index: int) -> str:
    """Format the stack comment body for the PR at ``current_index`` of ``data.stack``."""
    count = len(data.stack)
    plural = "" if count == 1 else "s"
    lines = [
        encode_token(data),
        f"This PR is part of a stack of {count} bookmark{plural}:",
        "",
        "1. `trunk()`",
    ]
    for i, entry in enumerate(data.stack):
        if i == current_index:
            lines.append(f"1. **{entry.pr_url} {STACK_COMMENT_THIS_PR}**{entry.suffix}")
        else:
            lines.append(f"1. {entry.pr_url}{entry.suffix}")
    lines.extend(["", "---", STACK_COMMENT_FOOTER])
    return "\n".join(lines)


def parse_stack_comment(body: str) -> Optional[StackCommentData]:
    """Parse the metadata from a comment body.

    Returns None if the first line carries no valid token.
    """
    lines = body.splitlines()
    if not lines:
        return None
    first_line = lines[0]
    start = first_line.find(COMMENT_DATA_PREFIX)
    if start < 0:
        return None
    start += len(COMMENT_DATA_PREFIX)
    end = first_line.find(COMMENT_DATA_POSTFIX, start)
    if end < 0:
        return None
    try:
        decoded = base64.b64decode(first_line[start:end], validate=True)
        return StackCommentData.model_validate_json(decoded)
    except (binascii.Error, ValueError, ValidationError) as e:
        logger.debug(f"Ignoring malformed stack comment token: {e}")
        return None


def find_stack_comment(comments: Sequence[Comment]) -> Optional[Comment]:
    """Find the comment managed by this tool among all comments on a PR."""
    for comment in comments:
        if parse_stack_comment(comment.body) is not None:
            return comment
    return None
