"""Fan-out of normalised events to subscribed chats."""

from __future__ import annotations

import asyncio
import dataclasses as dc
import enum
import typing as typ

from ghrelay.events import (
    DedupKey,
    EventKind,
    PushPayload,
    dedup_key_for,
    format_event_message,
)
from ghrelay.ledger import LedgerStorageError
from ghrelay.logging import (
    get_logger,
    log_debug,
    log_error,
    log_exception,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    from ghrelay.channel import EventChannel
    from ghrelay.events import NormalizedEvent
    from ghrelay.ledger import DedupLedger
    from ghrelay.subscriptions import Subscriber

logger = get_logger(__name__)


def _pushed_commit_keys(event: NormalizedEvent, key: DedupKey) -> list[DedupKey]:
    """Return push keys for the commits a push carries besides its head.

    The poller checks each listed commit against its own SHA.
    """
    payload = event.payload
    if not isinstance(payload, PushPayload):
        return []
    return [
        DedupKey(key.repo_owner, key.repo_name, EventKind.PUSH, commit.sha)
        for commit in payload.commits
        if commit.sha and commit.sha != key.event_id
    ]


class SubscriberDirectory(typ.Protocol):
    """Lookup of the chats subscribed to a repository."""

    async def list_subscribers(self, owner: str, name: str) -> list[Subscriber]:
        """Return the subscribers of ``owner/name``."""
        ...


class MessageDelivery(typ.Protocol):
    """Outbound messaging channel."""

    async def deliver(self, chat_id: int, text: str) -> None:
        """Send ``text`` to ``chat_id`` or raise on failure."""
        ...


class NotificationStatus(enum.StrEnum):
    """How :meth:`Notifier.handle` disposed of an event."""

    NO_SUBSCRIBERS = "no_subscribers"
    ALREADY_NOTIFIED = "already_notified"
    FANNED_OUT = "fanned_out"


@dc.dataclass(frozen=True, slots=True)
class NotificationResult:
    """Outcome of handling one event.

    Attributes
    ----------
    status
        Whether the event was fanned out or short-circuited.
    delivered
        Subscribers that received the message.
    failed
        Subscribers whose delivery raised.
    skipped
        Subscribers whose kind filter excludes the event.
    committed
        Whether the event's key is now in the ledger.

    """

    status: NotificationStatus
    delivered: int = 0
    failed: int = 0
    skipped: int = 0
    committed: bool = False


class Notifier:
    """Deliver each event once to every interested subscriber."""

    def __init__(
        self,
        directory: SubscriberDirectory,
        ledger: DedupLedger,
        delivery: MessageDelivery,
    ) -> None:
        """Bind the notifier to subscriptions, the ledger and delivery."""
        self._directory = directory
        self._ledger = ledger
        self._delivery = delivery

    async def handle(self, event: NormalizedEvent) -> NotificationResult:
        """Fan ``event`` out to its repository's subscribers.

        The ledger is consulted first, so an event already delivered through
        the other ingestion path is skipped. A failed delivery is logged and
        the remaining subscribers are still served. The event is committed to
        the ledger once after the fan-out, whatever the individual outcomes.
        """
        subscribers = await self._directory.list_subscribers(
            event.repo_owner, event.repo_name
        )
        if not subscribers:
            log_debug(logger, "No subscribers for %s", event.slug)
            return NotificationResult(status=NotificationStatus.NO_SUBSCRIBERS)

        key = dedup_key_for(event)
        if await self._ledger.contains(key):
            log_debug(logger, "Event %s already notified; skipping", key)
            return NotificationResult(
                status=NotificationStatus.ALREADY_NOTIFIED, committed=True
            )

        message = format_event_message(event)
        delivered = failed = skipped = 0
        for subscriber in subscribers:
            if not subscriber.wants(event.kind):
                skipped += 1
                continue
            try:
                await self._delivery.deliver(subscriber.chat_id, message)
            except Exception as exc:  # noqa: BLE001
                failed += 1
                log_error(
                    logger,
                    "Failed to notify chat %d of %s: %s",
                    subscriber.chat_id,
                    key,
                    exc,
                    exc_info=exc,
                )
            else:
                delivered += 1

        committed = await self._commit(key)
        for commit_key in _pushed_commit_keys(event, key):
            await self._commit(commit_key)
        log_info(
            logger,
            "Notified %s: delivered=%d failed=%d skipped=%d",
            key,
            delivered,
            failed,
            skipped,
        )
        return NotificationResult(
            status=NotificationStatus.FANNED_OUT,
            delivered=delivered,
            failed=failed,
            skipped=skipped,
            committed=committed,
        )

    async def _commit(self, key: DedupKey) -> bool:
        try:
            await self._ledger.record_if_absent(key)
        except LedgerStorageError as exc:
            log_warning(logger, "Failed to record %s in ledger: %s", key, exc)
            return False
        return True


class NotificationWorker:
    """Single consumer draining the event channel into the notifier."""

    def __init__(self, notifier: Notifier, channel: EventChannel) -> None:
        """Bind the worker to its notifier and input channel."""
        self._notifier = notifier
        self._channel = channel
        self._task: asyncio.Task[None] | None = None
        self.handled = 0

    async def run(self) -> None:
        """Handle events in arrival order until the channel closes."""
        async for event in self._channel:
            try:
                await self._notifier.handle(event)
            except Exception as exc:  # noqa: BLE001
                log_exception(
                    logger, f"Unexpected failure handling {event.kind} event", exc
                )
            self.handled += 1
        log_info(logger, "Notification worker drained after %d events", self.handled)

    def start(self) -> asyncio.Task[None]:
        """Run the worker in a background task."""
        if self._task is None:
            self._task = asyncio.create_task(self.run(), name="ghrelay-notifier")
        return self._task

    async def wait_closed(self) -> None:
        """Wait for the background task to drain and exit."""
        if self._task is not None:
            await self._task


__all__ = [
    "MessageDelivery",
    "NotificationResult",
    "NotificationStatus",
    "NotificationWorker",
    "Notifier",
    "SubscriberDirectory",
]
