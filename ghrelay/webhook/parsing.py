"""Normalise GitHub webhook deliveries into :class:`NormalizedEvent` values.

Each supported ``X-GitHub-Event`` type has a msgspec schema covering just
the fields the relay uses. Deliveries of other types, and sub-actions
outside the allow-list, normalise to ``None`` (ignored).
"""

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

from .errors import WebhookPayloadError

RELEASE_ACTIONS = frozenset({"published"})
ISSUE_ACTIONS = frozenset({"opened", "closed", "reopened"})
PULL_REQUEST_ACTIONS = frozenset({"opened", "closed", "reopened"})


class _Account(msgspec.Struct, kw_only=True):
    login: str
    html_url: str | None = None


class _Owner(msgspec.Struct, kw_only=True):
    login: str


class _Repository(msgspec.Struct, kw_only=True):
    name: str
    owner: _Owner


class _CommitAuthor(msgspec.Struct, kw_only=True):
    name: str | None = None
    email: str | None = None


class _PushCommit(msgspec.Struct, kw_only=True):
    id: str
    message: str = ""
    url: str | None = None
    author: _CommitAuthor | None = None


class _Pusher(msgspec.Struct, kw_only=True):
    name: str


class _PushDelivery(msgspec.Struct, kw_only=True):
    repository: _Repository
    ref: str
    after: str
    before: str | None = None
    compare: str | None = None
    pusher: _Pusher | None = None
    commits: list[_PushCommit] = msgspec.field(default_factory=list)


class _Release(msgspec.Struct, kw_only=True):
    tag_name: str
    name: str | None = None
    body: str | None = None
    prerelease: bool = False
    html_url: str | None = None
    author: _Account | None = None


class _ReleaseDelivery(msgspec.Struct, kw_only=True):
    repository: _Repository
    action: str
    release: _Release


class _Label(msgspec.Struct, kw_only=True):
    name: str


class _Issue(msgspec.Struct, kw_only=True):
    number: int
    title: str
    state: str = "open"
    body: str | None = None
    html_url: str | None = None
    user: _Account | None = None
    labels: list[_Label] = msgspec.field(default_factory=list)
    assignee: _Account | None = None


class _IssueDelivery(msgspec.Struct, kw_only=True):
    repository: _Repository
    action: str
    issue: _Issue


class _BranchRef(msgspec.Struct, kw_only=True):
    ref: str


class _PullRequest(msgspec.Struct, kw_only=True):
    number: int
    title: str
    state: str = "open"
    body: str | None = None
    html_url: str | None = None
    user: _Account | None = None
    merged: bool = False
    merged_by: _Account | None = None
    base: _BranchRef | None = None
    head: _BranchRef | None = None
    additions: int = 0
    deletions: int = 0
    commits: int = 0


class _PullRequestDelivery(msgspec.Struct, kw_only=True):
    repository: _Repository
    action: str
    pull_request: _PullRequest


def _user(account: _Account | None) -> UserRef | None:
    if account is None:
        return None
    return UserRef(login=account.login, html_url=account.html_url)


def _decode[T](event_type: str, body: bytes, schema: type[T]) -> T:
    try:
        return msgspec.json.decode(body, type=schema)
    except msgspec.DecodeError as exc:
        raise WebhookPayloadError.malformed(event_type, str(exc)) from exc


def _push_event(body: bytes) -> NormalizedEvent:
    delivery = _decode("push", body, _PushDelivery)
    commits = tuple(
        CommitSummary(
            sha=commit.id,
            message=commit.message,
            author_name=commit.author.name if commit.author else None,
            url=commit.url,
        )
        for commit in delivery.commits
    )
    return NormalizedEvent(
        repo_owner=delivery.repository.owner.login,
        repo_name=delivery.repository.name,
        payload=PushPayload(
            after=delivery.after,
            commits=commits,
            ref=delivery.ref,
            before=delivery.before,
            compare_url=delivery.compare,
            pusher=UserRef(login=delivery.pusher.name) if delivery.pusher else None,
        ),
    )


def _release_event(body: bytes) -> NormalizedEvent | None:
    delivery = _decode("release", body, _ReleaseDelivery)
    if delivery.action not in RELEASE_ACTIONS:
        return None
    release = delivery.release
    return NormalizedEvent(
        repo_owner=delivery.repository.owner.login,
        repo_name=delivery.repository.name,
        payload=ReleasePayload(
            tag_name=release.tag_name,
            action=delivery.action,
            name=release.name,
            body=release.body,
            prerelease=release.prerelease,
            html_url=release.html_url,
            author=_user(release.author),
        ),
    )


def _issue_event(body: bytes) -> NormalizedEvent | None:
    delivery = _decode("issues", body, _IssueDelivery)
    if delivery.action not in ISSUE_ACTIONS:
        return None
    issue = delivery.issue
    return NormalizedEvent(
        repo_owner=delivery.repository.owner.login,
        repo_name=delivery.repository.name,
        payload=IssuePayload(
            action=delivery.action,
            number=issue.number,
            title=issue.title,
            state=issue.state,
            body=issue.body,
            html_url=issue.html_url,
            user=_user(issue.user),
            labels=tuple(label.name for label in issue.labels),
            assignee=_user(issue.assignee),
        ),
    )


def _pull_request_event(body: bytes) -> NormalizedEvent | None:
    delivery = _decode("pull_request", body, _PullRequestDelivery)
    if delivery.action not in PULL_REQUEST_ACTIONS:
        return None
    pull = delivery.pull_request
    # A merge arrives as "closed"; it shares the poller's merged dedup key.
    action = "merged" if delivery.action == "closed" and pull.merged else delivery.action
    return NormalizedEvent(
        repo_owner=delivery.repository.owner.login,
        repo_name=delivery.repository.name,
        payload=PullRequestPayload(
            action=action,
            number=pull.number,
            title=pull.title,
            state=pull.state,
            body=pull.body,
            html_url=pull.html_url,
            user=_user(pull.user),
            merged=pull.merged,
            merged_by=_user(pull.merged_by),
            base_ref=pull.base.ref if pull.base else None,
            head_ref=pull.head.ref if pull.head else None,
            additions=pull.additions,
            deletions=pull.deletions,
            commits=pull.commits,
        ),
    )


_PARSERS: dict[str, typ.Callable[[bytes], NormalizedEvent | None]] = {
    "push": _push_event,
    "release": _release_event,
    "issues": _issue_event,
    "pull_request": _pull_request_event,
}

SUPPORTED_EVENT_TYPES = frozenset(_PARSERS)


def parse_webhook_event(event_type: str, body: bytes) -> NormalizedEvent | None:
    """Normalise a delivery of ``event_type``.

    Returns
    -------
    NormalizedEvent | None
        The normalised event, or ``None`` when the delivery type is not
        relayed (``ping`` included) or its action is not allow-listed.

    Raises
    ------
    WebhookPayloadError
        If the body of a supported type is not valid JSON or lacks required
        fields such as ``repository``.

    """
    parser = _PARSERS.get(event_type)
    if parser is None:
        return None
    return parser(body)


__all__ = [
    "ISSUE_ACTIONS",
    "PULL_REQUEST_ACTIONS",
    "RELEASE_ACTIONS",
    "SUPPORTED_EVENT_TYPES",
    "parse_webhook_event",
]
