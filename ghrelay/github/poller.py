"""Repository poller: turn periodic GitHub snapshots into new events.

GitHub's list endpoints expose no change feed, so the poller combines two
signals to decide what is new:

* a **watch epoch**, the instant this poller was created, which separates
  activity that predates the watch from activity worth notifying about, and
* the **dedup ledger**, which remembers individual facts that have already
  been notified.

On start the poller runs a silent initialisation pass that records the
recent history of every watched repository in the ledger without emitting
anything. Afterwards each tick re-reads a bounded window of the four feeds,
classifies every item against the epoch, and offers the ones the ledger has
not seen to the event channel. Recording is left to the notifier, so an
event dropped by a full channel is retried on the next tick.
"""

from __future__ import annotations

import asyncio
import dataclasses
import datetime as dt
import os
import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from ghrelay.common.slug import repo_slug
from ghrelay.common.time import ensure_utc, utcnow
from ghrelay.events import (
    CommitSummary,
    DedupKey,
    EventKind,
    IssuePayload,
    LifecyclePhase,
    NormalizedEvent,
    PullRequestPayload,
    PushPayload,
    ReleasePayload,
    UserRef,
    dedup_key_for,
    issue_event_id,
    pull_request_event_id,
    release_event_id,
)
from ghrelay.ledger import LedgerStorageError, RecordOutcome
from ghrelay.logging import get_logger, log_debug, log_exception, log_info, log_warning

from .observability import PollEventLogger

if typ.TYPE_CHECKING:
    from ghrelay.channel import EventChannel
    from ghrelay.ledger import DedupLedger
    from ghrelay.subscriptions import WatchedRepository

    from .client import GitHubActivityClient
    from .models import (
        AccountRecord,
        CommitRecord,
        IssueRecord,
        PullRequestRecord,
        ReleaseRecord,
    )

logger = get_logger(__name__)

MIN_POLL_INTERVAL = dt.timedelta(seconds=60)
DEFAULT_POLL_INTERVAL = dt.timedelta(seconds=300)

_PHASE_ACTIONS: dict[LifecyclePhase, str] = {
    LifecyclePhase.CREATED: "opened",
    LifecyclePhase.CLOSED: "closed",
    LifecyclePhase.MERGED: "merged",
    LifecyclePhase.REOPENED: "reopened",
}


class WatchedRepositorySource(typ.Protocol):
    """Source of the repositories that currently have subscribers."""

    async def list_repositories_with_subscribers(self) -> list[WatchedRepository]:
        """Return every repository with at least one subscriber."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class PollerConfig:
    """Runtime knobs for the repository poller.

    ``interval`` is raised to :data:`MIN_POLL_INTERVAL` when configured
    lower, to stay inside GitHub's rate limits.
    """

    interval: dt.timedelta = DEFAULT_POLL_INTERVAL
    commit_window: int = 10
    release_window: int = 5
    issue_window: int = 20
    pull_request_window: int = 20
    scan_timeout: dt.timedelta = dt.timedelta(seconds=30)
    max_concurrent_scans: int = 4

    def __post_init__(self) -> None:
        """Apply the interval floor and reject non-positive sizes."""
        if self.interval < MIN_POLL_INTERVAL:
            object.__setattr__(self, "interval", MIN_POLL_INTERVAL)
        for field in (
            "commit_window",
            "release_window",
            "issue_window",
            "pull_request_window",
            "max_concurrent_scans",
        ):
            value = getattr(self, field)
            if value < 1:
                msg = f"{field} must be positive, got: {value}"
                raise ValueError(msg)
        if self.scan_timeout <= dt.timedelta(0):
            msg = f"scan_timeout must be positive, got: {self.scan_timeout}"
            raise ValueError(msg)

    @classmethod
    def from_env(cls) -> PollerConfig:
        """Create configuration from ``GHRELAY_POLL_INTERVAL_SECONDS``."""
        raw = os.environ.get("GHRELAY_POLL_INTERVAL_SECONDS", "")
        if not raw.strip():
            return cls()
        try:
            seconds = int(raw)
        except ValueError as exc:
            msg = f"GHRELAY_POLL_INTERVAL_SECONDS must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if seconds < 1:
            msg = f"GHRELAY_POLL_INTERVAL_SECONDS must be positive, got: {seconds}"
            raise ValueError(msg)
        return cls(interval=dt.timedelta(seconds=seconds))


@dataclasses.dataclass(slots=True)
class RepositoryScanResult:
    """Outcome of scanning one repository during a polling pass."""

    repo_slug: str
    commits: int = 0
    releases: int = 0
    issues: int = 0
    pull_requests: int = 0
    dropped: int = 0
    error: BaseException | None = None

    @property
    def emitted(self) -> int:
        """Total events accepted by the channel for this repository."""
        return self.commits + self.releases + self.issues + self.pull_requests


def classify_release(
    release: ReleaseRecord, epoch: dt.datetime
) -> LifecyclePhase | None:
    """Return ``CREATED`` for a release published at or after ``epoch``.

    Drafts and releases without a publish time are never notifiable.
    """
    if release.draft or release.published_at is None:
        return None
    if release.published_at < epoch:
        return None
    return LifecyclePhase.CREATED


def classify_issue(issue: IssueRecord, epoch: dt.datetime) -> LifecyclePhase | None:
    """Classify an issue against the watch epoch.

    Returns ``CREATED`` for issues opened at or after the epoch, ``CLOSED``
    for older issues closed after it, and ``None`` for pre-existing ones.
    """
    if issue.created_at >= epoch:
        return LifecyclePhase.CREATED
    if issue.state == "closed" and issue.closed_at is not None:
        if issue.closed_at > epoch:
            return LifecyclePhase.CLOSED
    return None


def classify_pull_request(
    pull: PullRequestRecord, epoch: dt.datetime
) -> LifecyclePhase | None:
    """Classify a pull request against the watch epoch.

    Mirrors :func:`classify_issue`, with ``MERGED`` taking precedence over
    ``CLOSED`` for pull requests closed by merging.
    """
    if pull.created_at >= epoch:
        return LifecyclePhase.CREATED
    if pull.state == "closed" and pull.closed_at is not None:
        if pull.closed_at > epoch:
            return LifecyclePhase.MERGED if pull.merged else LifecyclePhase.CLOSED
    return None


def _user(account: AccountRecord | None) -> UserRef | None:
    if account is None:
        return None
    return UserRef(login=account.login, html_url=account.html_url)


def commit_event(owner: str, name: str, commit: CommitRecord) -> NormalizedEvent:
    """Build a push event for a single polled commit."""
    git_author = commit.commit.author
    author_name = git_author.name if git_author is not None else None
    pusher = _user(commit.author)
    if pusher is None and author_name:
        pusher = UserRef(login=author_name)
    return NormalizedEvent(
        repo_owner=owner,
        repo_name=name,
        payload=PushPayload(
            after=commit.sha,
            commits=(
                CommitSummary(
                    sha=commit.sha,
                    message=commit.commit.message,
                    author_name=author_name,
                    url=commit.html_url,
                ),
            ),
            pusher=pusher,
        ),
    )


def release_event(owner: str, name: str, release: ReleaseRecord) -> NormalizedEvent:
    """Build a ``published`` release event from a polled release."""
    return NormalizedEvent(
        repo_owner=owner,
        repo_name=name,
        payload=ReleasePayload(
            tag_name=release.tag_name,
            action="published",
            name=release.name,
            body=release.body,
            prerelease=release.prerelease,
            html_url=release.html_url,
            author=_user(release.author),
        ),
    )


def issue_event(
    owner: str, name: str, issue: IssueRecord, phase: LifecyclePhase
) -> NormalizedEvent:
    """Build an issue event for ``phase`` from a polled issue."""
    return NormalizedEvent(
        repo_owner=owner,
        repo_name=name,
        payload=IssuePayload(
            action=_PHASE_ACTIONS[phase],
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


def pull_request_event(
    owner: str, name: str, pull: PullRequestRecord, phase: LifecyclePhase
) -> NormalizedEvent:
    """Build a pull request event for ``phase`` from a polled pull request."""
    return NormalizedEvent(
        repo_owner=owner,
        repo_name=name,
        payload=PullRequestPayload(
            action=_PHASE_ACTIONS[phase],
            number=pull.number,
            title=pull.title,
            state=pull.state,
            body=pull.body,
            html_url=pull.html_url,
            user=_user(pull.user),
            merged=pull.merged,
            merged_by=_user(pull.merged_by),
            base_ref=pull.base.ref if pull.base is not None else None,
            head_ref=pull.head.ref if pull.head is not None else None,
            additions=pull.additions,
            deletions=pull.deletions,
            commits=pull.commits,
        ),
    )


class RepositoryPoller:
    """Periodically scan watched repositories and emit new activity."""

    def __init__(  # noqa: PLR0913
        self,
        client: GitHubActivityClient,
        ledger: DedupLedger,
        directory: WatchedRepositorySource,
        channel: EventChannel,
        *,
        config: PollerConfig | None = None,
        epoch: dt.datetime | None = None,
        event_logger: PollEventLogger | None = None,
    ) -> None:
        """Bind the poller to its collaborators and fix the watch epoch."""
        self._client = client
        self._ledger = ledger
        self._directory = directory
        self._channel = channel
        self._config = config or PollerConfig()
        self._epoch = (
            ensure_utc(epoch, field="epoch") if epoch is not None else utcnow()
        )
        self._event_logger = event_logger or PollEventLogger()
        self._stopping = asyncio.Event()
        self._finished = asyncio.Event()
        self._running = False
        self._pass_task: asyncio.Task[list[RepositoryScanResult]] | None = None

    @property
    def epoch(self) -> dt.datetime:
        """Instant from which activity counts as new."""
        return self._epoch

    @property
    def config(self) -> PollerConfig:
        """Active poller configuration."""
        return self._config

    @property
    def stopping(self) -> bool:
        """Whether :meth:`stop` has been requested."""
        return self._stopping.is_set()

    async def _watched_repositories(self) -> list[WatchedRepository]:
        try:
            return await self._directory.list_repositories_with_subscribers()
        except SQLAlchemyError as exc:
            log_exception(logger, "Failed to list watched repositories", exc)
            return []

    # Initialisation

    async def initialize(self) -> int:
        """Record recent history of every watched repository without emitting.

        Returns
        -------
        int
            Number of ledger keys newly inserted.

        """
        repositories = await self._watched_repositories()
        if not repositories:
            self._event_logger.log_init_completed(0, 0)
            return 0

        log_info(
            logger,
            "Seeding ledger for %d repositories; no notifications are sent",
            len(repositories),
        )
        seeded = 0
        for repo in repositories:
            if self._stopping.is_set():
                break
            try:
                async with asyncio.timeout(self._config.scan_timeout.total_seconds()):
                    seeded += await self._seed_repository(repo.owner, repo.name)
            except Exception as exc:  # noqa: BLE001
                self._event_logger.log_init_repository_failed(
                    repo_slug(repo.owner, repo.name), exc
                )
        self._event_logger.log_init_completed(len(repositories), seeded)
        return seeded

    async def _seed(self, keys: typ.Iterable[DedupKey]) -> int:
        inserted = 0
        for key in keys:
            try:
                outcome = await self._ledger.record_if_absent(key)
            except LedgerStorageError as exc:
                log_warning(logger, "Skipping ledger seed for %s: %s", key, exc)
                continue
            if outcome is RecordOutcome.INSERTED:
                inserted += 1
        return inserted

    async def _seed_repository(self, owner: str, name: str) -> int:
        """Seed ledger keys for every feed of one repository.

        A failing feed is logged and skipped so the remaining feeds still
        seed.
        """
        seeders = (
            ("commits", self._commit_seed_keys),
            ("releases", self._release_seed_keys),
            ("issues", self._issue_seed_keys),
            ("pull_requests", self._pull_request_seed_keys),
        )
        inserted = 0
        for feed, build_keys in seeders:
            try:
                keys = await build_keys(owner, name)
            except Exception as exc:  # noqa: BLE001
                log_warning(
                    logger,
                    "Failed to fetch %s for %s during initialisation: %s",
                    feed,
                    repo_slug(owner, name),
                    exc,
                )
                continue
            inserted += await self._seed(keys)
        log_debug(logger, "Seeded %d keys for %s", inserted, repo_slug(owner, name))
        return inserted

    async def _commit_seed_keys(self, owner: str, name: str) -> list[DedupKey]:
        commits = await self._client.list_recent_commits(
            owner, name, limit=self._config.commit_window
        )
        return [
            DedupKey(owner, name, EventKind.PUSH, commit.sha)
            for commit in commits
            if commit.sha
        ]

    async def _release_seed_keys(self, owner: str, name: str) -> list[DedupKey]:
        releases = await self._client.list_recent_releases(
            owner, name, limit=self._config.release_window
        )
        return [
            DedupKey(owner, name, EventKind.RELEASE, release_event_id(release.tag_name))
            for release in releases
            if not release.draft
        ]

    async def _issue_seed_keys(self, owner: str, name: str) -> list[DedupKey]:
        issues = await self._client.list_issues(
            owner, name, limit=self._config.issue_window
        )
        keys: list[DedupKey] = []
        for issue in issues:
            if issue.is_pull_request:
                continue
            keys.append(
                DedupKey(
                    owner,
                    name,
                    EventKind.ISSUE,
                    issue_event_id(issue.number, LifecyclePhase.CREATED),
                )
            )
            if issue.state == "closed":
                keys.append(
                    DedupKey(
                        owner,
                        name,
                        EventKind.ISSUE,
                        issue_event_id(issue.number, LifecyclePhase.CLOSED),
                    )
                )
        return keys

    async def _pull_request_seed_keys(self, owner: str, name: str) -> list[DedupKey]:
        pulls = await self._client.list_pull_requests(
            owner, name, limit=self._config.pull_request_window
        )
        keys: list[DedupKey] = []
        for pull in pulls:
            keys.append(
                DedupKey(
                    owner,
                    name,
                    EventKind.PULL_REQUEST,
                    pull_request_event_id(pull.number, LifecyclePhase.CREATED),
                )
            )
            if pull.state == "closed":
                terminal = LifecyclePhase.MERGED if pull.merged else LifecyclePhase.CLOSED
                keys.append(
                    DedupKey(
                        owner,
                        name,
                        EventKind.PULL_REQUEST,
                        pull_request_event_id(pull.number, terminal),
                    )
                )
        return keys

    # Steady state

    async def poll_once(self) -> list[RepositoryScanResult]:
        """Scan every watched repository once.

        Repositories are scanned concurrently up to
        ``config.max_concurrent_scans``. A repository that fails is reported
        through its result's ``error`` and does not affect the others.
        """
        started_at = utcnow()
        repositories = await self._watched_repositories()
        self._event_logger.log_run_started(started_at, len(repositories))
        semaphore = asyncio.Semaphore(self._config.max_concurrent_scans)

        async def bounded_scan(repo: WatchedRepository) -> RepositoryScanResult:
            async with semaphore:
                return await self.scan_repository(repo.owner, repo.name)

        results = list(
            await asyncio.gather(*(bounded_scan(repo) for repo in repositories))
        )
        self._event_logger.log_run_completed(results, utcnow() - started_at)
        return results

    async def scan_repository(self, owner: str, name: str) -> RepositoryScanResult:
        """Scan the four feeds of one repository and emit new events.

        Failures are captured on the returned result rather than raised.
        """
        result = RepositoryScanResult(repo_slug=repo_slug(owner, name))
        started_at = utcnow()
        try:
            async with asyncio.timeout(self._config.scan_timeout.total_seconds()):
                await self._scan_commits(owner, name, result)
                await self._scan_releases(owner, name, result)
                await self._scan_issues(owner, name, result)
                await self._scan_pull_requests(owner, name, result)
        except Exception as exc:  # noqa: BLE001
            result.error = exc
            self._event_logger.log_repository_failed(
                result.repo_slug, exc, utcnow() - started_at
            )
        else:
            self._event_logger.log_repository_scanned(result, utcnow() - started_at)
        return result

    async def _emit(self, event: NormalizedEvent, result: RepositoryScanResult) -> bool:
        """Offer ``event`` unless the ledger already holds its key.

        Returns ``True`` when the channel accepted the event.
        """
        if self._stopping.is_set():
            return False
        key = dedup_key_for(event)
        if await self._ledger.contains(key):
            return False
        if self._stopping.is_set():
            return False
        if not self._channel.offer(event):
            result.dropped += 1
            return False
        log_debug(logger, "New %s detected: %s", event.kind, key)
        return True

    async def _scan_commits(
        self, owner: str, name: str, result: RepositoryScanResult
    ) -> None:
        commits = await self._client.list_recent_commits(
            owner, name, since=self._epoch, limit=self._config.commit_window
        )
        for commit in commits:
            if not commit.sha:
                continue
            if await self._emit(commit_event(owner, name, commit), result):
                result.commits += 1

    async def _scan_releases(
        self, owner: str, name: str, result: RepositoryScanResult
    ) -> None:
        releases = await self._client.list_recent_releases(
            owner, name, limit=self._config.release_window
        )
        for release in releases:
            if classify_release(release, self._epoch) is None:
                continue
            if await self._emit(release_event(owner, name, release), result):
                result.releases += 1

    async def _scan_issues(
        self, owner: str, name: str, result: RepositoryScanResult
    ) -> None:
        issues = await self._client.list_issues(
            owner, name, since=self._epoch, limit=self._config.issue_window
        )
        for issue in issues:
            if issue.is_pull_request:
                continue
            phase = classify_issue(issue, self._epoch)
            if phase is None:
                continue
            if await self._emit(issue_event(owner, name, issue, phase), result):
                result.issues += 1

    async def _scan_pull_requests(
        self, owner: str, name: str, result: RepositoryScanResult
    ) -> None:
        pulls = await self._client.list_pull_requests(
            owner, name, limit=self._config.pull_request_window
        )
        for pull in pulls:
            phase = classify_pull_request(pull, self._epoch)
            if phase is None:
                continue
            if await self._emit(pull_request_event(owner, name, pull, phase), result):
                result.pull_requests += 1

    # Lifecycle

    async def run(self) -> None:
        """Initialise, then poll every ``config.interval`` until stopped."""
        self._running = True
        self._finished.clear()
        interval = self._config.interval.total_seconds()
        log_info(logger, "Poller started (interval=%.0fs)", interval)
        try:
            await self.initialize()
            while not self._stopping.is_set():
                try:
                    await asyncio.wait_for(self._stopping.wait(), timeout=interval)
                except TimeoutError:
                    await self._run_pass()
        finally:
            self._running = False
            self._finished.set()
            log_info(logger, "Poller stopped")

    async def _run_pass(self) -> None:
        self._pass_task = asyncio.create_task(self.poll_once())
        try:
            await self._pass_task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            log_info(logger, "Polling pass abandoned on stop")
        finally:
            self._pass_task = None

    async def stop(self) -> None:
        """Request shutdown and wait for :meth:`run` to return.

        No event is emitted once stop has been requested; events already in
        the channel stay there.
        """
        log_info(logger, "Stopping poller")
        self._stopping.set()
        if self._pass_task is not None:
            self._pass_task.cancel()
        if self._running:
            await self._finished.wait()


__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "MIN_POLL_INTERVAL",
    "PollerConfig",
    "RepositoryPoller",
    "RepositoryScanResult",
    "WatchedRepositorySource",
    "classify_issue",
    "classify_pull_request",
    "classify_release",
    "commit_event",
    "issue_event",
    "pull_request_event",
    "release_event",
]
