"""Shared fixtures and steps for the relay BDD scenarios.

Each scenario gets a fresh SQLite database and a relay wired from the real
ledger, subscription store, channel, poller and notifier, with GitHub and
Telegram replaced by in-memory fakes.
"""

from __future__ import annotations

import typing as typ

import pytest
from pytest_bdd import given, parsers, then, when
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from ghrelay.channel import EventChannel
from ghrelay.common.storage import init_storage
from ghrelay.github import RepositoryPoller
from ghrelay.ledger import DedupLedger
from ghrelay.notifier import Notifier
from ghrelay.subscriptions import SubscriptionStore
from ghrelay.webhook import WebhookIngestor
from tests.features.steps._relay_context import RelayContext, drain_channel, run_async
from tests.helpers.fakes import FakeGitHubClient, RecordingDelivery
from tests.helpers.records import EPOCH

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def relay_context(tmp_path: Path) -> typ.Iterator[RelayContext]:
    """Provision a fresh database and relay for each scenario."""
    # NullPool keeps aiosqlite connections from outliving each step's loop.
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'relay.db'}", poolclass=NullPool
    )
    run_async(init_storage(engine))
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    store = SubscriptionStore(session_factory)
    ledger = DedupLedger(session_factory)
    client = FakeGitHubClient()
    delivery = RecordingDelivery()
    channel = EventChannel(capacity=50)
    yield {
        "session_factory": session_factory,
        "store": store,
        "ledger": ledger,
        "github_client": client,
        "delivery": delivery,
        "channel": channel,
        "poller": RepositoryPoller(client, ledger, store, channel, epoch=EPOCH),
        "notifier": Notifier(store, ledger, delivery),
        "ingestor": WebhookIngestor(channel),
        "emitted": [],
    }
    run_async(engine.dispose())


@given(parsers.parse('chat {chat_id:d} is subscribed to "{slug}"'))
def chat_subscribed(relay_context: RelayContext, chat_id: int, slug: str) -> None:
    """Subscribe a chat to every event kind of a repository."""
    owner, name = slug.split("/", 1)
    run_async(relay_context["store"].subscribe(chat_id, owner, name))


@when("the poller initialises")
def poller_initialises(relay_context: RelayContext) -> None:
    """Run the silent seeding pass."""
    run_async(relay_context["poller"].initialize())


@when("the poller ticks")
def poller_ticks(relay_context: RelayContext) -> None:
    """Run one polling pass over every watched repository."""
    run_async(relay_context["poller"].poll_once())


@when("the notifier drains the channel")
def notifier_drains(relay_context: RelayContext) -> None:
    """Hand every buffered event to the notifier in arrival order."""
    drain_channel(relay_context, notify=True)


@then(
    parsers.re(r"chat (?P<chat_id>\d+) received (?P<count>\d+) messages?"),
    converters={"chat_id": int, "count": int},
)
def chat_received(relay_context: RelayContext, chat_id: int, count: int) -> None:
    """Assert how many messages reached a chat."""
    received = relay_context["delivery"].chats().count(chat_id)
    assert received == count, f"chat {chat_id} received {received} messages"
