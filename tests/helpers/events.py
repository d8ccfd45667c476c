"""Normalised event and webhook body builders."""

from __future__ import annotations

import typing as typ

import msgspec

from ghrelay.events import (
    CommitSummary,
    IssuePayload,
    NormalizedEvent,
    PullRequestPayload,
    PushPayload,
    ReleasePayload,
    UserRef,
)

OWNER = "acme"
NAME = "widgets"


def push_event(after: str = "abc1234def", *, commits: int = 1) -> NormalizedEvent:
    """Return a push event with ``commits`` numbered commits."""
    return NormalizedEvent(
        repo_owner=OWNER,
        repo_name=NAME,
        payload=PushPayload(
            after=after,
            ref="refs/heads/main",
            pusher=UserRef(login="octocat"),
            commits=tuple(
                CommitSummary(sha=f"{index:07d}aaaa", message=f"Commit {index}")
                for index in range(commits)
            ),
        ),
    )


def release_event(tag_name: str = "v1.0.0") -> NormalizedEvent:
    """Return a published release event."""
    return NormalizedEvent(
        repo_owner=OWNER,
        repo_name=NAME,
        payload=ReleasePayload(tag_name=tag_name, author=UserRef(login="octocat")),
    )


def issue_event(number: int = 42, action: str = "opened") -> NormalizedEvent:
    """Return an issue event for ``action``."""
    return NormalizedEvent(
        repo_owner=OWNER,
        repo_name=NAME,
        payload=IssuePayload(
            action=action,
            number=number,
            title="Widget is broken",
            user=UserRef(login="octocat"),
        ),
    )


def pull_request_event(
    number: int = 43, action: str = "opened", *, merged: bool = False
) -> NormalizedEvent:
    """Return a pull request event for ``action``."""
    return NormalizedEvent(
        repo_owner=OWNER,
        repo_name=NAME,
        payload=PullRequestPayload(
            action=action,
            number=number,
            title="Add sprockets",
            user=UserRef(login="octocat"),
            merged=merged,
        ),
    )


def _repository() -> dict[str, typ.Any]:
    return {
        "name": NAME,
        "full_name": f"{OWNER}/{NAME}",
        "owner": {"login": OWNER},
    }


def issue_delivery(number: int = 42, action: str = "opened") -> bytes:
    """Return an ``issues`` webhook body."""
    return msgspec.json.encode(
        {
            "action": action,
            "repository": _repository(),
            "issue": {
                "number": number,
                "title": "Widget is broken",
                "state": "closed" if action == "closed" else "open",
                "html_url": f"https://github.com/{OWNER}/{NAME}/issues/{number}",
                "user": {"login": "octocat"},
                "labels": [{"name": "bug"}],
            },
        }
    )


def pull_request_delivery(
    number: int = 43, action: str = "opened", *, merged: bool = False
) -> bytes:
    """Return a ``pull_request`` webhook body."""
    return msgspec.json.encode(
        {
            "action": action,
            "repository": _repository(),
            "pull_request": {
                "number": number,
                "title": "Add sprockets",
                "state": "closed" if action == "closed" else "open",
                "merged": merged,
                "user": {"login": "octocat"},
                "base": {"ref": "main"},
                "head": {"ref": "feature"},
                "additions": 10,
                "deletions": 2,
                "commits": 3,
            },
        }
    )


def push_delivery(
    after: str = "abc1234def", *, commits: typ.Sequence[str] | None = None
) -> bytes:
    """Return a ``push`` webhook body.

    ``commits`` lists the pushed SHAs oldest first; by default the push
    carries ``after`` alone.
    """
    shas = list(commits) if commits is not None else [after]
    return msgspec.json.encode(
        {
            "ref": "refs/heads/main",
            "before": "0000000",
            "after": after,
            "compare": f"https://github.com/{OWNER}/{NAME}/compare/0000000...{after}",
            "repository": _repository(),
            "pusher": {"name": "octocat"},
            "commits": [
                {
                    "id": sha,
                    "message": "Fix widget\n\nLonger description",
                    "url": f"https://github.com/{OWNER}/{NAME}/commit/{sha}",
                    "author": {"name": "The Octocat"},
                }
                for sha in shas
            ],
        }
    )


def release_delivery(tag_name: str = "v1.0.0", action: str = "published") -> bytes:
    """Return a ``release`` webhook body."""
    return msgspec.json.encode(
        {
            "action": action,
            "repository": _repository(),
            "release": {
                "tag_name": tag_name,
                "name": f"Release {tag_name}",
                "body": "Notes",
                "prerelease": False,
                "author": {"login": "octocat"},
            },
        }
    )
