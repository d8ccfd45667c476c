"""Normalised event envelope and payload variants.

Both ingestion paths (the repository poller and the webhook receiver) build
:class:`NormalizedEvent` values from these types. The envelope never stores
its kind separately: :attr:`NormalizedEvent.kind` is derived from the payload
variant, so the two cannot disagree.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

from ghrelay.common.slug import repo_slug


class EventKind(enum.StrEnum):
    """Kinds of repository activity relayed to subscribers."""

    PUSH = "push"
    RELEASE = "release"
    ISSUE = "issue"
    PULL_REQUEST = "pull_request"


class LifecyclePhase(enum.StrEnum):
    """Lifecycle phase of an issue or pull request used in dedup keys."""

    CREATED = "created"
    CLOSED = "closed"
    MERGED = "merged"
    REOPENED = "reopened"


_ACTION_PHASES: dict[str, LifecyclePhase] = {
    "opened": LifecyclePhase.CREATED,
    "closed": LifecyclePhase.CLOSED,
    "merged": LifecyclePhase.MERGED,
    "reopened": LifecyclePhase.REOPENED,
}


class UnknownActionError(ValueError):
    """Raised when an issue or pull request action has no lifecycle phase."""

    def __init__(self, action: str) -> None:
        """Record the offending action name."""
        self.action = action
        super().__init__(f"no lifecycle phase for action {action!r}")


def phase_for_action(action: str) -> LifecyclePhase:
    """Map an issue or pull request sub-action onto its lifecycle phase."""
    try:
        return _ACTION_PHASES[action]
    except KeyError as exc:
        raise UnknownActionError(action) from exc


@dc.dataclass(frozen=True, slots=True)
class UserRef:
    """GitHub account reference."""

    login: str
    html_url: str | None = None


@dc.dataclass(frozen=True, slots=True)
class CommitSummary:
    """A commit as shown in a push notification."""

    sha: str
    message: str
    author_name: str | None = None
    url: str | None = None

    @property
    def short_sha(self) -> str:
        """Return the abbreviated seven-character SHA."""
        return self.sha[:7]


@dc.dataclass(frozen=True, slots=True)
class PushPayload:
    """Commits pushed to a branch.

    ``ref`` is ``None`` when the push was observed by polling, because the
    commits endpoint does not report which branch received them.
    """

    after: str
    commits: tuple[CommitSummary, ...] = ()
    ref: str | None = None
    before: str | None = None
    compare_url: str | None = None
    pusher: UserRef | None = None

    @property
    def branch(self) -> str | None:
        """Return the short branch name for ``refs/heads/*`` refs."""
        if self.ref is None:
            return None
        return self.ref.removeprefix("refs/heads/")


@dc.dataclass(frozen=True, slots=True)
class ReleasePayload:
    """A published release."""

    tag_name: str
    action: str = "published"
    name: str | None = None
    body: str | None = None
    prerelease: bool = False
    html_url: str | None = None
    author: UserRef | None = None


@dc.dataclass(frozen=True, slots=True)
class IssuePayload:
    """An issue lifecycle transition."""

    action: str
    number: int
    title: str
    state: str = "open"
    body: str | None = None
    html_url: str | None = None
    user: UserRef | None = None
    labels: tuple[str, ...] = ()
    assignee: UserRef | None = None


@dc.dataclass(frozen=True, slots=True)
class PullRequestPayload:
    """A pull request lifecycle transition.

    ``action`` is ``merged`` for a pull request that was closed by merging,
    on both ingestion paths.
    """

    action: str
    number: int
    title: str
    state: str = "open"
    body: str | None = None
    html_url: str | None = None
    user: UserRef | None = None
    merged: bool = False
    merged_by: UserRef | None = None
    base_ref: str | None = None
    head_ref: str | None = None
    additions: int = 0
    deletions: int = 0
    commits: int = 0


type EventPayload = PushPayload | ReleasePayload | IssuePayload | PullRequestPayload


@dc.dataclass(frozen=True, slots=True)
class NormalizedEvent:
    """Envelope carrying one notifiable fact about one repository."""

    repo_owner: str
    repo_name: str
    payload: EventPayload

    @property
    def kind(self) -> EventKind:
        """Return the event kind implied by the payload variant."""
        match self.payload:
            case PushPayload():
                return EventKind.PUSH
            case ReleasePayload():
                return EventKind.RELEASE
            case IssuePayload():
                return EventKind.ISSUE
            case PullRequestPayload():
                return EventKind.PULL_REQUEST
            case _:
                typ.assert_never(self.payload)

    @property
    def slug(self) -> str:
        """Return the ``owner/name`` repository slug."""
        return repo_slug(self.repo_owner, self.repo_name)


@dc.dataclass(frozen=True, slots=True)
class DedupKey:
    """Unique identity of a notifiable fact within the ledger."""

    repo_owner: str
    repo_name: str
    event_kind: EventKind
    event_id: str

    def __str__(self) -> str:
        """Render as ``owner/name:kind:id`` for log lines."""
        return (
            f"{repo_slug(self.repo_owner, self.repo_name)}"
            f":{self.event_kind}:{self.event_id}"
        )


def release_event_id(tag_name: str) -> str:
    """Return the ledger event id for a release tag."""
    return f"release-{tag_name}"


def issue_event_id(number: int, phase: LifecyclePhase) -> str:
    """Return the ledger event id for an issue lifecycle phase."""
    return f"issue-{number}-{phase}"


def pull_request_event_id(number: int, phase: LifecyclePhase) -> str:
    """Return the ledger event id for a pull request lifecycle phase."""
    return f"pr-{number}-{phase}"


def event_id_for(payload: EventPayload) -> str:
    """Derive the kind-specific ledger event id for ``payload``."""
    match payload:
        case PushPayload(after=after):
            return after
        case ReleasePayload(tag_name=tag_name):
            return release_event_id(tag_name)
        case IssuePayload(number=number, action=action):
            return issue_event_id(number, phase_for_action(action))
        case PullRequestPayload(number=number, action=action):
            return pull_request_event_id(number, phase_for_action(action))
        case _:
            typ.assert_never(payload)


def dedup_key_for(event: NormalizedEvent) -> DedupKey:
    """Return the ledger key identifying ``event``."""
    return DedupKey(
        repo_owner=event.repo_owner,
        repo_name=event.repo_name,
        event_kind=event.kind,
        event_id=event_id_for(event.payload),
    )


__all__ = [
    "CommitSummary",
    "DedupKey",
    "EventKind",
    "EventPayload",
    "IssuePayload",
    "LifecyclePhase",
    "NormalizedEvent",
    "PullRequestPayload",
    "PushPayload",
    "ReleasePayload",
    "UnknownActionError",
    "UserRef",
    "dedup_key_for",
    "event_id_for",
    "issue_event_id",
    "phase_for_action",
    "pull_request_event_id",
    "release_event_id",
]
