"""jj interfaces and implementation.

All VCS operations shell out to the ``jj`` CLI with the pager disabled.
"""

import datetime
import json
import logging
import shlex
import subprocess
from typing import Any, Dict, List, Optional

from ..config.models import StakkConfig
from ..typing import (
    Bookmark, ChangeID, Commit, CommitHash, GitRemote, JjInterface, LogEntry,
    VcsError, VcsParseError,
)

# Get module logger
logger = logging.getLogger(__name__)

# Number of changes fetched per page when walking toward trunk
PAGE_SIZE = 100

DEFAULT_BRANCH_FALLBACK = "main"

# One JSON object per non-remote bookmark; conflicted bookmarks have a null target
BOOKMARK_TEMPLATE = (
    'if(!remote, "{\\"name\\":" ++ json(name) ++ ",\\"synced\\":" ++ json(synced)'
    ' ++ ",\\"target\\":" ++ if(normal_target, json(normal_target), "null") ++ "}\\n")'
)

LOG_TEMPLATE = (
    '"{\\"commit\\":" ++ json(self) ++ ",\\"local_bookmarks\\":" ++ json(local_bookmarks)'
    ' ++ "}\\n"'
)

TRUNK_BOOKMARKS_TEMPLATE = 'remote_bookmarks.map(|b| b.name()).join("\\n") ++ "\\n"'

# Bookmarks authored by the current user that are not already part of trunk
MY_BOOKMARKS_REVSET = "mine() ~ ::trunk()"


def parse_timestamp(value: str) -> Optional[datetime.datetime]:
    """Parse a jj signature timestamp. Returns None for an empty value."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.datetime.fromisoformat(value)


def parse_commit(data: Dict[str, Any]) -> Commit:
    """Convert jj's ``json(commit)`` object to a Commit."""
    author = data.get("author") or {}
    return Commit(
        commit_id=CommitHash(data["commit_id"]),
        change_id=ChangeID(data["change_id"]),
        description=data.get("description", ""),
        author=author.get("name", ""),
        timestamp=parse_timestamp(author.get("timestamp", "")),
        parent_ids=tuple(CommitHash(p) for p in data.get("parents", [])),
    )


def _json_lines(command: str, output: str) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            row = json.loads(line)
        except json.JSONDecodeError as e:
            raise VcsParseError(command, f"invalid JSON line {line!r}: {e}")
        if not isinstance(row, dict):
            raise VcsParseError(command, f"expected a JSON object, got {line!r}")
        rows.append(row)
    return rows


def parse_bookmark_list(command: str, output: str) -> List[Bookmark]:
    """Parse ``jj bookmark list`` output produced with BOOKMARK_TEMPLATE."""
    bookmarks: List[Bookmark] = []
    for row in _json_lines(command, output):
        try:
            target = row.get("target")
            if target is None:
                bookmarks.append(Bookmark(name=row["name"], synced=bool(row.get("synced"))))
                continue
            bookmarks.append(Bookmark(
                name=row["name"],
                commit_id=CommitHash(target["commit_id"]),
                change_id=ChangeID(target["change_id"]),
                synced=bool(row.get("synced")),
            ))
        except (KeyError, TypeError) as e:
            raise VcsParseError(command, f"malformed bookmark entry {row!r}: {e}")
    return bookmarks


def parse_log_entries(command: str, output: str) -> List[LogEntry]:
    """Parse ``jj log`` output produced with LOG_TEMPLATE."""
    entries: List[LogEntry] = []
    for row in _json_lines(command, output):
        try:
            commit = parse_commit(row["commit"])
            names = tuple(ref["name"] for ref in row.get("local_bookmarks", [])
                          if not ref.get("remote"))
        except (KeyError, TypeError, ValueError) as e:
            raise VcsParseError(command, f"malformed log entry {row!r}: {e}")
        entries.append(LogEntry(commit=commit, bookmark_names=names))
    return entries


def parse_remote_list(output: str) -> List[GitRemote]:
    """Parse ``jj git remote list`` output: one ``name url`` pair per line."""
    remotes: List[GitRemote] = []
    for line in output.splitlines():
        parts = line.split(None, 1)
        if len(parts) == 2:
            remotes.append(GitRemote(name=parts[0], url=parts[1].strip()))
    return remotes


class RealJj(JjInterface):
    """Real jj implementation."""
    def __init__(self, config: StakkConfig, cwd: Optional[str] = None):
        """Initialize with config."""
        self.config = config
        self.cwd = cwd

    def run_cmd(self, args: List[str]) -> str:
        """Run a jj command and return its stdout."""
        cmd_str = " ".join(shlex.quote(a) for a in args)
        logger.info(f"> jj {cmd_str}")
        full = ["jj", "--config", "ui.paginate=never", "--color", "never"] + args
        try:
            result = subprocess.run(full, cwd=self.cwd, capture_output=True, text=True)
        except OSError as e:
            raise VcsError(cmd_str, f"failed to launch jj: {e}")
        if result.returncode != 0:
            raise VcsError(cmd_str, result.stderr)
        return result.stdout

    def get_my_bookmarks(self) -> List[Bookmark]:
        args = ["bookmark", "list", "--revisions", MY_BOOKMARKS_REVSET,
                "--template", BOOKMARK_TEMPLATE]
        output = self.run_cmd(args)
        return parse_bookmark_list(" ".join(args[:2]), output)

    def get_branch_changes_paginated(self, trunk: str, to_commit: str,
                                     after_commit: Optional[str] = None) -> List[LogEntry]:
        """Fetch one page of changes from ``to_commit`` toward ``trunk``.

        The first page starts at ``to_commit``; later pages continue below
        ``after_commit``, the last commit of the previous page.
        """
        if after_commit:
            revset = f"{trunk}..{after_commit}-"
        else:
            revset = f"{trunk}..{to_commit}"
        args = ["log", "--no-graph", "--revisions", revset, "--limit", str(PAGE_SIZE),
                "--template", LOG_TEMPLATE]
        output = self.run_cmd(args)
        return parse_log_entries(f"log -r {revset}", output)

    def push_bookmark(self, name: str, remote: str) -> None:
        if self.config.tool.pretend:
            logger.info(f"[PRETEND] Would push bookmark {name} to {remote}")
            return
        self.run_cmd(["git", "push", "--remote", remote, "--bookmark", name, "--allow-new"])

    def get_default_branch(self) -> str:
        revset = self.config.repo.trunk_revset
        output = self.run_cmd(["log", "--no-graph", "--limit", "1", "--revisions", revset,
                               "--template", TRUNK_BOOKMARKS_TEMPLATE])
        names = [n.strip() for n in output.splitlines() if n.strip()]
        if not names:
            logger.debug(f"No bookmark on {revset}, falling back to {DEFAULT_BRANCH_FALLBACK}")
            return DEFAULT_BRANCH_FALLBACK
        return sorted(set(names))[0]

    def get_git_remote_list(self) -> List[GitRemote]:
        return parse_remote_list(self.run_cmd(["git", "remote", "list"]))

    def workspace_root(self) -> str:
        """Absolute path of the current jj workspace; fails outside a repo."""
        return self.run_cmd(["workspace", "root"]).strip()

