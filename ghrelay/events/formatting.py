"""Telegram Markdown rendering for normalised events."""

from __future__ import annotations

import typing as typ

from .models import (
    IssuePayload,
    NormalizedEvent,
    PullRequestPayload,
    PushPayload,
    ReleasePayload,
    UserRef,
)

MAX_LISTED_COMMITS = 5
COMMIT_MESSAGE_LIMIT = 50
RELEASE_BODY_LIMIT = 300

_MARKDOWN_SPECIALS = "_*`["
_ESCAPE_TABLE = str.maketrans({char: f"\\{char}" for char in _MARKDOWN_SPECIALS})

_ISSUE_EMOJI: dict[str, str] = {
    "opened": "\N{MEMO}",
    "closed": "\N{WHITE HEAVY CHECK MARK}",
    "reopened": "\N{ANTICLOCKWISE DOWNWARDS AND UPWARDS OPEN CIRCLE ARROWS}",
}
_PULL_REQUEST_EMOJI: dict[str, str] = {
    "opened": "\N{TWISTED RIGHTWARDS ARROWS}",
    "closed": "\N{CROSS MARK}",
    "merged": "\N{CONFETTI BALL}",
    "reopened": "\N{ANTICLOCKWISE DOWNWARDS AND UPWARDS OPEN CIRCLE ARROWS}",
}


def escape_markdown(text: str) -> str:
    """Backslash-escape the characters legacy Telegram Markdown reserves."""
    return text.translate(_ESCAPE_TABLE)


def truncate(text: str, limit: int) -> str:
    """Shorten ``text`` to ``limit`` characters, ending with an ellipsis."""
    if len(text) <= limit:
        return text
    return f"{text[: limit - 3]}..."


def _login(user: UserRef | None) -> str:
    return user.login if user is not None else "unknown"


def _push_body(payload: PushPayload) -> str:
    count = len(payload.commits)
    noun = "commit" if count == 1 else "commits"
    branch = payload.branch or "default branch"
    lines = [
        f"\N{HAMMER} *{_login(payload.pusher)}* pushed {count} {noun} to `{branch}`",
        "",
    ]
    for commit in payload.commits[:MAX_LISTED_COMMITS]:
        first_line = commit.message.splitlines()[0] if commit.message else ""
        summary = escape_markdown(truncate(first_line, COMMIT_MESSAGE_LIMIT))
        if commit.url:
            lines.append(f"\N{BULLET} [`{commit.short_sha}`]({commit.url}) {summary}")
        else:
            lines.append(f"\N{BULLET} `{commit.short_sha}` {summary}")
    if count > MAX_LISTED_COMMITS:
        lines.extend(["", f"_...and {count - MAX_LISTED_COMMITS} more commits_"])
    if payload.compare_url:
        lines.extend(["", f"[Compare changes]({payload.compare_url})"])
    return "\n".join(lines)


def _release_body(payload: ReleasePayload) -> str:
    emoji = "\N{TEST TUBE}" if payload.prerelease else "\N{PARTY POPPER}"
    lines = [
        f"{emoji} *New Release:* {escape_markdown(payload.name or payload.tag_name)}",
        "",
        f"\N{PACKAGE} Tag: `{payload.tag_name}`",
        f"\N{BUST IN SILHOUETTE} Author: {escape_markdown(_login(payload.author))}",
    ]
    if payload.body:
        lines.extend(["", escape_markdown(truncate(payload.body, RELEASE_BODY_LIMIT))])
    if payload.html_url:
        lines.extend(["", f"[View Release]({payload.html_url})"])
    return "\n".join(lines)


def _issue_body(payload: IssuePayload) -> str:
    emoji = _ISSUE_EMOJI.get(payload.action, "\N{CLIPBOARD}")
    lines = [
        f"{emoji} *Issue #{payload.number} {payload.action}*",
        "",
        f"\N{PUSHPIN} {escape_markdown(payload.title)}",
        f"\N{BUST IN SILHOUETTE} By: {escape_markdown(_login(payload.user))}",
    ]
    if payload.labels:
        labels = ", ".join(escape_markdown(label) for label in payload.labels)
        lines.append(f"\N{LABEL}\N{VARIATION SELECTOR-16} Labels: {labels}")
    if payload.html_url:
        lines.extend(["", f"[View Issue]({payload.html_url})"])
    return "\n".join(lines)


def _pull_request_body(payload: PullRequestPayload) -> str:
    action = payload.action
    if action == "closed" and payload.merged:
        action = "merged"
    emoji = _PULL_REQUEST_EMOJI.get(action, "\N{TWISTED RIGHTWARDS ARROWS}")
    lines = [
        f"{emoji} *PR #{payload.number} {action}*",
        "",
        f"\N{PUSHPIN} {escape_markdown(payload.title)}",
        f"\N{BUST IN SILHOUETTE} By: {escape_markdown(_login(payload.user))}",
    ]
    if payload.head_ref and payload.base_ref:
        lines.append(
            f"\N{TWISTED RIGHTWARDS ARROWS} {escape_markdown(payload.head_ref)}"
            f" \N{RIGHTWARDS ARROW} {escape_markdown(payload.base_ref)}"
        )
    if payload.commits > 0:
        lines.append(
            f"\N{BAR CHART} {payload.commits} commits, "
            f"+{payload.additions}/-{payload.deletions} lines"
        )
    if payload.html_url:
        lines.extend(["", f"[View PR]({payload.html_url})"])
    return "\n".join(lines)


def format_event_message(event: NormalizedEvent) -> str:
    """Render ``event`` as a Telegram Markdown notification."""
    header = f"\N{BELL} *{event.slug}*"
    payload = event.payload
    match payload:
        case PushPayload():
            body = _push_body(payload)
        case ReleasePayload():
            body = _release_body(payload)
        case IssuePayload():
            body = _issue_body(payload)
        case PullRequestPayload():
            body = _pull_request_body(payload)
        case _:
            typ.assert_never(payload)
    return f"{header}\n\n{body}"


__all__ = ["escape_markdown", "format_event_message", "truncate"]
