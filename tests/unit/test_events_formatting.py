"""Unit tests for Telegram message rendering."""

from __future__ import annotations

from ghrelay.events import (
    CommitSummary,
    IssuePayload,
    NormalizedEvent,
    PullRequestPayload,
    PushPayload,
    ReleasePayload,
    UserRef,
)
from ghrelay.events.formatting import (
    escape_markdown,
    format_event_message,
    truncate,
)


def _event(payload: object) -> NormalizedEvent:
    return NormalizedEvent(repo_owner="acme", repo_name="widgets", payload=payload)  # type: ignore[arg-type]


def test_escape_markdown_escapes_specials() -> None:
    """Markdown control characters are backslash-escaped."""
    assert escape_markdown("fix_bug *now*") == "fix\\_bug \\*now\\*"


def test_escape_markdown_leaves_punctuation_alone() -> None:
    """Only legacy Markdown control characters are escaped."""
    assert escape_markdown("Fix bug (again)! v1.2-rc.") == "Fix bug (again)! v1.2-rc."
    assert escape_markdown("see `code` [link]") == "see \\`code\\` \\[link]"


def test_truncate_adds_ellipsis() -> None:
    """Long text is cut to the limit including the ellipsis."""
    assert truncate("abcdefghij", 8) == "abcde..."
    assert truncate("short", 8) == "short"


class TestPushMessage:
    """Push rendering."""

    def test_header_and_summary(self) -> None:
        """The message names the repository, pusher and branch."""
        message = format_event_message(
            _event(
                PushPayload(
                    after="abc",
                    ref="refs/heads/main",
                    pusher=UserRef(login="octocat"),
                    commits=(CommitSummary(sha="abcdef123456", message="Fix it"),),
                )
            )
        )
        lines = message.splitlines()
        assert lines[0] == "\N{BELL} *acme/widgets*"
        assert "*octocat* pushed 1 commit to `main`" in message
        assert "`abcdef1` Fix it" in message

    def test_lists_at_most_five_commits(self) -> None:
        """Extra commits are summarised by count."""
        commits = tuple(
            CommitSummary(sha=f"{index:040d}", message=f"Commit {index}")
            for index in range(7)
        )
        message = format_event_message(_event(PushPayload(after="x", commits=commits)))
        assert message.count("\N{BULLET}") == 5
        assert "_...and 2 more commits_" in message
        assert "to `default branch`" in message

    def test_commit_message_first_line_truncated(self) -> None:
        """Only the first line of a commit message is shown, capped at 50."""
        long_line = "x" * 80
        message = format_event_message(
            _event(
                PushPayload(
                    after="x",
                    commits=(CommitSummary(sha="1" * 40, message=f"{long_line}\nbody"),),
                )
            )
        )
        assert f"{'x' * 47}..." in message
        assert "body" not in message


def test_release_message_truncates_body() -> None:
    """Release bodies are capped at 300 characters."""
    message = format_event_message(
        _event(
            ReleasePayload(
                tag_name="v1.0.0",
                body="y" * 400,
                prerelease=True,
                html_url="https://example.com/r",
            )
        )
    )
    assert "\N{TEST TUBE} *New Release:* v1.0.0" in message
    assert f"{'y' * 297}..." in message
    assert "[View Release](https://example.com/r)" in message


def test_release_name_and_body_are_escaped() -> None:
    """Release text cannot open unmatched Markdown entities."""
    message = format_event_message(
        _event(
            ReleasePayload(
                tag_name="v2.0.0",
                name="snake_case *rc*",
                body="Renamed parse_args. See [docs",
                author=UserRef(login="build_bot"),
            )
        )
    )
    assert "*New Release:* snake\\_case \\*rc\\*" in message
    assert "Renamed parse\\_args. See \\[docs" in message
    assert "Author: build\\_bot" in message


def test_issue_message_lists_labels() -> None:
    """Issue messages include the escaped title and labels."""
    message = format_event_message(
        _event(
            IssuePayload(
                action="closed",
                number=42,
                title="Crash in parse_args",
                labels=("bug", "p1"),
            )
        )
    )
    assert "\N{WHITE HEAVY CHECK MARK} *Issue #42 closed*" in message
    assert "parse\\_args" in message
    assert "Labels: bug, p1" in message
    assert "By: unknown" in message


def test_closed_merged_pull_request_renders_as_merged() -> None:
    """A closed pull request with merged set is reported as merged."""
    message = format_event_message(
        _event(
            PullRequestPayload(
                action="closed",
                number=43,
                title="Add sprockets",
                merged=True,
                base_ref="main",
                head_ref="feature",
                commits=3,
                additions=10,
                deletions=2,
            )
        )
    )
    assert "\N{CONFETTI BALL} *PR #43 merged*" in message
    assert "feature \N{RIGHTWARDS ARROW} main" in message
    assert "3 commits, +10/-2 lines" in message
