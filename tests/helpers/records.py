"""Builders for GitHub REST records used by poller tests.

Examples
--------
>>> import datetime as dt
>>> issue = issue_record(42, created_at=dt.datetime(2025, 1, 1, tzinfo=dt.UTC))
>>> issue.number
42

"""

from __future__ import annotations

import datetime as dt

from ghrelay.github.models import (
    AccountRecord,
    BranchRefRecord,
    CommitRecord,
    GitActorRecord,
    GitCommitRecord,
    IssueRecord,
    PullRequestRecord,
    ReleaseRecord,
)

EPOCH = dt.datetime(2025, 3, 1, 12, 0, tzinfo=dt.UTC)
BEFORE_EPOCH = EPOCH - dt.timedelta(days=2)
AFTER_EPOCH = EPOCH + dt.timedelta(minutes=5)


def account(login: str = "octocat") -> AccountRecord:
    """Return an account record for ``login``."""
    return AccountRecord(login=login, html_url=f"https://github.com/{login}")


def commit_record(
    sha: str,
    *,
    message: str = "Update README",
    author: str | None = "octocat",
) -> CommitRecord:
    """Return a commit listing entry."""
    return CommitRecord(
        sha=sha,
        commit=GitCommitRecord(
            message=message,
            author=GitActorRecord(name="The Octocat", email="octo@example.com"),
        ),
        html_url=f"https://github.com/acme/widgets/commit/{sha}",
        author=account(author) if author is not None else None,
    )


def release_record(
    tag_name: str,
    *,
    published_at: dt.datetime | None = AFTER_EPOCH,
    draft: bool = False,
    prerelease: bool = False,
) -> ReleaseRecord:
    """Return a release listing entry."""
    return ReleaseRecord(
        tag_name=tag_name,
        name=f"Release {tag_name}",
        body="Bug fixes",
        draft=draft,
        prerelease=prerelease,
        html_url=f"https://github.com/acme/widgets/releases/tag/{tag_name}",
        published_at=published_at,
        author=account(),
    )


def issue_record(
    number: int,
    *,
    created_at: dt.datetime = BEFORE_EPOCH,
    closed_at: dt.datetime | None = None,
    title: str = "Widget is broken",
    is_pull_request: bool = False,
) -> IssueRecord:
    """Return an issue listing entry; closed when ``closed_at`` is given."""
    return IssueRecord(
        number=number,
        title=title,
        state="closed" if closed_at is not None else "open",
        created_at=created_at,
        html_url=f"https://github.com/acme/widgets/issues/{number}",
        closed_at=closed_at,
        user=account(),
        pull_request={"url": "https://api.github.com/pr"} if is_pull_request else None,
    )


def pull_request_record(
    number: int,
    *,
    created_at: dt.datetime = BEFORE_EPOCH,
    closed_at: dt.datetime | None = None,
    merged: bool = False,
    title: str = "Add sprockets",
) -> PullRequestRecord:
    """Return a pull request listing entry; merged implies closed."""
    return PullRequestRecord(
        number=number,
        title=title,
        state="closed" if closed_at is not None else "open",
        created_at=created_at,
        html_url=f"https://github.com/acme/widgets/pull/{number}",
        closed_at=closed_at,
        merged_at=closed_at if merged else None,
        user=account(),
        base=BranchRefRecord(ref="main"),
        head=BranchRefRecord(ref="feature"),
    )
