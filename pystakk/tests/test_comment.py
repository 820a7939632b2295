"""Tests for the stack comment format."""

import base64

from pystakk.forge import Comment
from pystakk.forge.comment import (
    COMMENT_DATA_POSTFIX, COMMENT_DATA_PREFIX, STACK_COMMENT_FOOTER, STACK_COMMENT_THIS_PR,
    StackCommentData, StackEntry, find_stack_comment, format_stack_comment, parse_stack_comment,
)


def sample_data() -> StackCommentData:
    return StackCommentData(stack=[
        StackEntry(bookmark_name="A", pr_url="https://github.com/o/r/pull/1", pr_number=1, merged=True),
        StackEntry(bookmark_name="B", pr_url="https://github.com/o/r/pull/2", pr_number=2),
        StackEntry(bookmark_name="C", pr_url="https://github.com/o/r/pull/3", pr_number=3),
    ])


class TestFormat:
    def test_layout(self) -> None:
        lines = format_stack_comment(sample_data(), 1).split("\n")
        assert lines[0].startswith(COMMENT_DATA_PREFIX)
        assert lines[0].endswith(COMMENT_DATA_POSTFIX)
        assert lines[1] == "This PR is part of a stack of 3 bookmarks:"
        assert lines[3] == "1. `trunk()`"
        assert lines[4] == "1. https://github.com/o/r/pull/1 (merged)"
        assert lines[5] == f"1. **https://github.com/o/r/pull/2 {STACK_COMMENT_THIS_PR}**"
        assert lines[6] == "1. https://github.com/o/r/pull/3"
        assert lines[-1] == STACK_COMMENT_FOOTER

    def test_singular_heading(self) -> None:
        data = StackCommentData(stack=[sample_data().stack[1]])
        assert "a stack of 1 bookmark:" in format_stack_comment(data, 0)

    def test_closed_member_is_annotated(self) -> None:
        data = sample_data()
        data.stack[2].closed = True
        lines = format_stack_comment(data, 1).split("\n")
        assert lines[6] == "1. https://github.com/o/r/pull/3 (closed)"
        assert parse_stack_comment("\n".join(lines)) == data


class TestParse:
    def test_token_identifies_same_prs(self) -> None:
        data = sample_data()
        parsed = parse_stack_comment(format_stack_comment(data, 2))
        assert parsed == data
        assert parsed is not None and parsed.pr_numbers == [1, 2, 3]

    def test_plain_comment(self) -> None:
        assert parse_stack_comment("Looks good to me") is None
        assert parse_stack_comment("") is None

    def test_token_must_be_on_first_line(self) -> None:
        body = format_stack_comment(sample_data(), 0)
        assert parse_stack_comment("Quoting:\n" + body) is None

    def test_malformed_tokens(self) -> None:
        assert parse_stack_comment(f"{COMMENT_DATA_PREFIX}not base64!{COMMENT_DATA_POSTFIX}") is None
        junk = base64.b64encode(b'{"stack": "nope"}').decode()
        assert parse_stack_comment(f"{COMMENT_DATA_PREFIX}{junk}{COMMENT_DATA_POSTFIX}") is None
        assert parse_stack_comment(f"{COMMENT_DATA_PREFIX}abc") is None


class TestFind:
    def test_picks_managed_comment_among_others(self) -> None:
        managed = Comment(id=7, body=format_stack_comment(sample_data(), 0))
        comments = [Comment(id=5, body="first!"), managed, Comment(id=9, body="nit: typo")]
        assert find_stack_comment(comments) == managed

    def test_first_valid_token_wins(self) -> None:
        body = format_stack_comment(sample_data(), 0)
        broken = Comment(id=1, body=f"{COMMENT_DATA_PREFIX}???{COMMENT_DATA_POSTFIX}")
        comments = [broken, Comment(id=2, body=body), Comment(id=3, body=body)]
        found = find_stack_comment(comments)
        assert found is not None and found.id == 2

    def test_none_when_absent(self) -> None:
        assert find_stack_comment([Comment(id=1, body="hi")]) is None
        assert find_stack_comment([]) is None
