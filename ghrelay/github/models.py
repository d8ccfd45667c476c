"""msgspec records decoded from GitHub REST list endpoints.

Only the fields the poller reads are declared; msgspec ignores the rest of
each JSON object.
"""

from __future__ import annotations

import datetime as dt  # noqa: TC003 - msgspec resolves annotations at runtime

import msgspec


class AccountRecord(msgspec.Struct, kw_only=True, frozen=True):
    """A GitHub user or bot account."""

    login: str
    html_url: str | None = None


class GitActorRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Author or committer identity embedded in a git commit."""

    name: str | None = None
    email: str | None = None
    date: dt.datetime | None = None


class GitCommitRecord(msgspec.Struct, kw_only=True, frozen=True):
    """The git-level portion of a commit listing entry."""

    message: str = ""
    author: GitActorRecord | None = None


class CommitRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Entry of ``GET /repos/{owner}/{repo}/commits``."""

    sha: str
    commit: GitCommitRecord = msgspec.field(default_factory=GitCommitRecord)
    html_url: str | None = None
    author: AccountRecord | None = None


class ReleaseRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Entry of ``GET /repos/{owner}/{repo}/releases``."""

    tag_name: str
    name: str | None = None
    body: str | None = None
    draft: bool = False
    prerelease: bool = False
    html_url: str | None = None
    published_at: dt.datetime | None = None
    author: AccountRecord | None = None


class LabelRecord(msgspec.Struct, kw_only=True, frozen=True):
    """An issue label."""

    name: str


class IssueRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Entry of ``GET /repos/{owner}/{repo}/issues``.

    The issues endpoint also returns pull requests; those carry a
    ``pull_request`` object and are reported by :attr:`is_pull_request`.
    """

    number: int
    title: str
    state: str
    created_at: dt.datetime
    body: str | None = None
    html_url: str | None = None
    closed_at: dt.datetime | None = None
    user: AccountRecord | None = None
    labels: list[LabelRecord] = msgspec.field(default_factory=list)
    assignee: AccountRecord | None = None
    pull_request: dict[str, object] | None = None

    @property
    def is_pull_request(self) -> bool:
        """Whether this entry is a pull request surfaced by the issues API."""
        return self.pull_request is not None


class BranchRefRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Base or head reference of a pull request."""

    ref: str


class PullRequestRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Entry of ``GET /repos/{owner}/{repo}/pulls``.

    The list endpoint omits ``merged``, ``additions``, ``deletions`` and
    ``commits``; merge state is derived from ``merged_at`` and the counts
    default to zero.
    """

    number: int
    title: str
    state: str
    created_at: dt.datetime
    body: str | None = None
    html_url: str | None = None
    closed_at: dt.datetime | None = None
    merged_at: dt.datetime | None = None
    user: AccountRecord | None = None
    merged_by: AccountRecord | None = None
    base: BranchRefRecord | None = None
    head: BranchRefRecord | None = None
    additions: int = 0
    deletions: int = 0
    commits: int = 0

    @property
    def merged(self) -> bool:
        """Whether the pull request was closed by merging."""
        return self.merged_at is not None


__all__ = [
    "AccountRecord",
    "BranchRefRecord",
    "CommitRecord",
    "GitActorRecord",
    "GitCommitRecord",
    "IssueRecord",
    "LabelRecord",
    "PullRequestRecord",
    "ReleaseRecord",
]
