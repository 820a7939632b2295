"""Pretty formatting utilities for CLI output."""

import shutil
import sys
from typing import IO, List, Optional

from ..graph.stacks import collect_stack_choices
from ..graph.types import ChangeGraph
from ..submit.types import OutcomeStatus, SubmissionPlan, SubmissionResult

STATUS_MARKS = {
    OutcomeStatus.SUCCESS: "✓",
    OutcomeStatus.SKIPPED: "-",
    OutcomeStatus.FAILURE: "✗",
}


def get_term_width() -> int:
    """Get terminal width, default to 80 if can't detect."""
    try:
        return shutil.get_terminal_size().columns
    except (OSError, ValueError):
        return 80


def header(text: str, use_emoji: bool = True) -> str:
    """Create a boxed header with optional emoji."""
    width = max(get_term_width(), len(text) + 8)
    h_line = "─" * (width - 2)
    v_line = "│"
    emoji = "🥞 " if use_emoji else ""
    padding = width - len(text) - len(emoji) - 3

    result = [
        f"┌{h_line}┐",
        f"{v_line} {emoji}{text}{' ' * padding}{v_line}",
        f"└{h_line}┘",
    ]
    return "\n".join(result)


def print_header(text: str, use_emoji: bool = True, file: Optional[IO[str]] = None) -> None:
    """Print a header to file (default stdout)."""
    if file is None:
        file = sys.stdout
    print(header(text, use_emoji), file=file)


def format_plan(plan: SubmissionPlan) -> str:
    """Describe what executing the plan would do, one block per segment."""
    lines = [f"Submission plan ({len(plan.segment_plans)} bookmark(s), remote: {plan.remote}):"]
    for sp in plan.segment_plans:
        names = ", ".join(sp.segment.bookmark_names)
        lines.append(f"  {names} (base: {sp.base})")
        if sp.is_finished:
            state = "merged" if sp.remote.is_merged else "closed"
            lines.append(f"    - PR #{sp.remote.number} is {state}, nothing to do")
            continue
        if sp.needs_push:
            lines.append(f"    - push bookmark to {plan.remote}")
        if sp.needs_create:
            draft = " (draft)" if plan.draft else ""
            lines.append(f"    - create PR{draft}: \"{sp.title}\"")
        if sp.needs_base_update:
            lines.append(f"    - update PR #{sp.remote.number} base: {sp.remote.base_ref} -> {sp.base}")
        if not sp.needs_create and not sp.needs_base_update:
            lines.append(f"    - PR #{sp.remote.number} up to date")
    return "\n".join(lines)


def format_outcomes(result: SubmissionResult) -> str:
    """One line per action, then the stack and the overall status."""
    lines: List[str] = []
    for outcome in result.outcomes:
        mark = STATUS_MARKS[outcome.status]
        line = f"  {mark} {outcome.kind.value} {outcome.target}"
        if outcome.detail:
            line += f": {outcome.detail}"
        lines.append(line)
    if result.stack_entries:
        lines.append("")
        lines.append("Stack:")
        for entry in result.stack_entries:
            lines.append(f"  {entry.bookmark_name}: {entry.pr_url}{entry.suffix}")
    if result.halted_by is not None:
        lines.append("")
        lines.append(f"Stopped early: {result.halted_by}")
    lines.append("")
    if result.status == OutcomeStatus.SUCCESS:
        lines.append("Submission complete.")
    else:
        lines.append(f"Submission finished with {len(result.failures)} failed action(s).")
    return "\n".join(lines)


def format_stacks(graph: ChangeGraph) -> str:
    """List every stack in the graph, plus what was left out of it."""
    choices = collect_stack_choices(graph)
    lines: List[str] = []
    if not choices:
        lines.append("No stacks found.")
    for choice in choices:
        lines.append(f"  {choice}")
    if graph.excluded_bookmarks:
        lines.append("")
        lines.append(f"Excluded (merge commit in history): {', '.join(sorted(graph.excluded_bookmarks))}")
    if graph.unresolved_bookmarks:
        lines.append(f"Unresolved: {', '.join(sorted(graph.unresolved_bookmarks))}")
    return "\n".join(lines)
