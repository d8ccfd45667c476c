"""Unit tests for the notifier fan-out and the notification worker."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest

from ghrelay.channel import EventChannel
from ghrelay.events import DedupKey, EventKind, dedup_key_for
from ghrelay.ledger import DedupLedger
from ghrelay.notifier import (
    NotificationStatus,
    NotificationWorker,
    Notifier,
)
from ghrelay.subscriptions import Subscriber
from tests.helpers.events import (
    NAME,
    OWNER,
    issue_event,
    pull_request_event,
    push_event,
    release_event,
)
from tests.helpers.fakes import RecordingDelivery, StaticDirectory

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from ghrelay.events import NormalizedEvent
    from ghrelay.notifier import NotificationResult

CHAT_A = 1001
CHAT_B = 1002


@pytest.fixture
def ledger(session_factory: async_sessionmaker[AsyncSession]) -> DedupLedger:
    """Return a ledger backed by the temporary database."""
    return DedupLedger(session_factory)


def _notifier(
    ledger: DedupLedger,
    subscribers: list[Subscriber],
    delivery: RecordingDelivery,
) -> Notifier:
    directory = StaticDirectory({(OWNER, NAME): subscribers})
    return Notifier(directory, ledger, delivery)


class TestNotifier:
    """Fan-out semantics of Notifier.handle."""

    @pytest.mark.asyncio
    async def test_partial_failure_still_commits(self, ledger: DedupLedger) -> None:
        """A failing subscriber does not block others or the ledger commit."""
        delivery = RecordingDelivery(failing_chats=[CHAT_A])
        notifier = _notifier(
            ledger, [Subscriber(chat_id=CHAT_A), Subscriber(chat_id=CHAT_B)], delivery
        )
        event = issue_event(42)

        result = await notifier.handle(event)

        assert result.status is NotificationStatus.FANNED_OUT
        assert (result.delivered, result.failed) == (1, 1)
        assert result.committed
        assert delivery.attempts == [CHAT_A, CHAT_B]
        assert delivery.chats() == [CHAT_B]
        assert await ledger.contains(dedup_key_for(event))

    @pytest.mark.asyncio
    async def test_already_notified_event_is_skipped(self, ledger: DedupLedger) -> None:
        """An event delivered through the other path is not sent again."""
        delivery = RecordingDelivery()
        notifier = _notifier(ledger, [Subscriber(chat_id=CHAT_A)], delivery)
        event = push_event("abc1234def")
        await ledger.record_if_absent(dedup_key_for(event))

        result = await notifier.handle(event)

        assert result.status is NotificationStatus.ALREADY_NOTIFIED
        assert delivery.attempts == []

    @pytest.mark.asyncio
    async def test_second_handle_of_same_event_is_deduplicated(
        self, ledger: DedupLedger
    ) -> None:
        """Handling the same event twice delivers it once."""
        delivery = RecordingDelivery()
        notifier = _notifier(ledger, [Subscriber(chat_id=CHAT_A)], delivery)

        first = await notifier.handle(release_event("v1.0.0"))
        second = await notifier.handle(release_event("v1.0.0"))

        assert first.status is NotificationStatus.FANNED_OUT
        assert second.status is NotificationStatus.ALREADY_NOTIFIED
        assert delivery.chats() == [CHAT_A]

    @pytest.mark.asyncio
    async def test_kind_filters_skip_subscribers(self, ledger: DedupLedger) -> None:
        """Subscribers only receive the kinds they enabled."""
        delivery = RecordingDelivery()
        notifier = _notifier(
            ledger,
            [
                Subscriber(chat_id=CHAT_A, enabled_event_kinds=frozenset({EventKind.PUSH})),
                Subscriber(chat_id=CHAT_B),
            ],
            delivery,
        )

        result = await notifier.handle(pull_request_event(43, "closed", merged=True))

        assert (result.delivered, result.skipped) == (1, 1)
        assert delivery.chats() == [CHAT_B]
        assert "merged" in delivery.sent[0][1]

    @pytest.mark.asyncio
    async def test_push_records_every_listed_commit(self, ledger: DedupLedger) -> None:
        """Each commit of a push is recorded under its own SHA."""
        delivery = RecordingDelivery()
        notifier = _notifier(ledger, [Subscriber(chat_id=CHAT_A)], delivery)
        event = push_event("0000002aaaa", commits=3)

        await notifier.handle(event)

        assert len(delivery.sent) == 1
        for sha in ("0000000aaaa", "0000001aaaa", "0000002aaaa"):
            assert await ledger.contains(
                DedupKey(OWNER, NAME, EventKind.PUSH, sha)
            ), sha

    @pytest.mark.asyncio
    async def test_no_subscribers_records_nothing(self, ledger: DedupLedger) -> None:
        """Events for unwatched repositories are dropped unrecorded."""
        delivery = RecordingDelivery()
        notifier = _notifier(ledger, [], delivery)
        event = issue_event(7)

        result = await notifier.handle(event)

        assert result.status is NotificationStatus.NO_SUBSCRIBERS
        assert not await ledger.contains(dedup_key_for(event))


class _ScriptedNotifier:
    """Notifier stand-in that records events and fails on request."""

    def __init__(self, failing_numbers: set[int]) -> None:
        self.failing_numbers = failing_numbers
        self.seen: list[str] = []

    async def handle(self, event: NormalizedEvent) -> NotificationResult:
        event_id = dedup_key_for(event).event_id
        self.seen.append(event_id)
        if event_id in {f"issue-{n}-created" for n in self.failing_numbers}:
            msg = f"boom on {event_id}"
            raise RuntimeError(msg)
        return typ.cast("NotificationResult", None)


class TestNotificationWorker:
    """Draining behaviour of the single consumer."""

    @pytest.mark.asyncio
    async def test_drains_in_order_and_survives_failures(self) -> None:
        """Events are handled FIFO and an exception does not stop the worker."""
        channel = EventChannel(capacity=10)
        notifier = _ScriptedNotifier(failing_numbers={2})
        worker = NotificationWorker(typ.cast("Notifier", notifier), channel)
        for number in (1, 2, 3):
            assert channel.offer(issue_event(number))

        worker.start()
        channel.close()
        await asyncio.wait_for(worker.wait_closed(), timeout=1)

        assert notifier.seen == [
            "issue-1-created",
            "issue-2-created",
            "issue-3-created",
        ]
        assert worker.handled == 3

    @pytest.mark.asyncio
    async def test_wait_closed_without_start_returns(self) -> None:
        """Waiting on an idle worker is a no-op."""
        worker = NotificationWorker(
            typ.cast("Notifier", _ScriptedNotifier(set())), EventChannel()
        )
        await worker.wait_closed()
        assert worker.handled == 0

    @pytest.mark.asyncio
    async def test_end_to_end_delivery(self, ledger: DedupLedger) -> None:
        """A worker fed by the channel delivers through the real notifier."""
        channel = EventChannel(capacity=10)
        delivery = RecordingDelivery()
        worker = NotificationWorker(
            _notifier(ledger, [Subscriber(chat_id=CHAT_A)], delivery), channel
        )
        worker.start()

        channel.offer(issue_event(42))
        channel.offer(issue_event(42))
        channel.close()
        await asyncio.wait_for(worker.wait_closed(), timeout=2)

        assert delivery.chats() == [CHAT_A]
        assert worker.handled == 2
