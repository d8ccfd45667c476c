"""ASGI lifespan wiring for the relay's background tasks.

Falcon calls ``process_startup`` once before serving and ``process_shutdown``
once after the server stops accepting requests. Startup creates the tables,
sweeps expired ledger entries, and starts the notification worker plus, in
polling modes, the repository poller. Shutdown stops the poller first so no
event is emitted afterwards, closes the channel, waits for the worker to
drain what is already buffered, and only then releases HTTP clients and the
database engine.

Usage
-----
Register the middleware when creating the Falcon app::

    lifespan = RelayLifespan(RelayConfig.from_env())
    app = create_app(
        AppDependencies(ingestor=WebhookIngestor(lifespan.channel), lifespan=lifespan)
    )

"""

from __future__ import annotations

import asyncio
import typing as typ
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from ghrelay.channel import EventChannel
from ghrelay.common.storage import init_storage
from ghrelay.github import (
    GitHubRestClient,
    GitHubRestConfig,
    PollerConfig,
    RepositoryPoller,
)
from ghrelay.ledger import DedupLedger, LedgerStorageError
from ghrelay.logging import get_logger, log_info, log_warning
from ghrelay.notifier import (
    NotificationWorker,
    Notifier,
    TelegramConfig,
    TelegramDelivery,
)
from ghrelay.subscriptions import SubscriptionStore

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from ghrelay.config import RelayConfig
    from ghrelay.github import GitHubActivityClient
    from ghrelay.notifier import MessageDelivery

__all__ = ["RelayLifespan"]

logger = get_logger(__name__)


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite"):
        return
    if url.database in {None, "", ":memory:"}:
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


class RelayLifespan:
    """Falcon middleware owning the relay's long-lived components.

    Parameters
    ----------
    config
        Process configuration.
    delivery
        Message delivery to use instead of a Telegram client built from the
        environment. An injected delivery is not closed on shutdown.
    github_client
        GitHub client to use instead of a REST client built from the
        environment. An injected client is not closed on shutdown.
    poller_config
        Poller settings; read from the environment when omitted.

    """

    def __init__(
        self,
        config: RelayConfig,
        *,
        delivery: MessageDelivery | None = None,
        github_client: GitHubActivityClient | None = None,
        poller_config: PollerConfig | None = None,
    ) -> None:
        """Create the shared channel; everything else is built on startup."""
        self._config = config
        self._delivery = delivery
        self._github_client = github_client
        self._poller_config = poller_config
        self.channel = EventChannel(config.channel_capacity)
        self._engine: AsyncEngine | None = None
        self._worker: NotificationWorker | None = None
        self._poller: RepositoryPoller | None = None
        self._poller_task: asyncio.Task[None] | None = None
        self._owned_clients: list[TelegramDelivery | GitHubRestClient] = []
        self._ready = False

    @property
    def ready(self) -> bool:
        """Whether startup has completed and shutdown has not begun."""
        return self._ready

    @property
    def poller(self) -> RepositoryPoller | None:
        """Running poller, or ``None`` when polling is disabled."""
        return self._poller

    @property
    def worker(self) -> NotificationWorker | None:
        """Running notification worker once started."""
        return self._worker

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Initialise storage and start the background tasks."""
        _ensure_sqlite_directory(self._config.database_url)
        engine = create_async_engine(self._config.database_url)
        self._engine = engine
        await init_storage(engine)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)

        ledger = DedupLedger(session_factory)
        await self._sweep(ledger)
        store = SubscriptionStore(session_factory)

        notifier = Notifier(store, ledger, self._build_delivery())
        self._worker = NotificationWorker(notifier, self.channel)
        self._worker.start()

        if self._config.polling_enabled:
            self._poller = RepositoryPoller(
                self._build_github_client(),
                ledger,
                store,
                self.channel,
                config=self._poller_config or PollerConfig.from_env(),
            )
            self._poller_task = asyncio.create_task(
                self._poller.run(), name="ghrelay-poller"
            )

        self._ready = True
        log_info(
            logger,
            "Relay started (mode=%s, channel_capacity=%d)",
            self._config.mode,
            self._config.channel_capacity,
        )

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Stop the poller, drain the channel, then release resources."""
        self._ready = False
        if self._poller is not None:
            await self._poller.stop()
        if self._poller_task is not None:
            await self._poller_task
        self.channel.close()
        if self._worker is not None:
            await self._worker.wait_closed()
        for client in self._owned_clients:
            await client.aclose()
        self._owned_clients.clear()
        if self._engine is not None:
            await self._engine.dispose()
        stats = self.channel.stats
        log_info(
            logger,
            "Relay stopped (accepted=%d, dropped=%d)",
            stats.accepted,
            stats.dropped,
        )

    async def _sweep(self, ledger: DedupLedger) -> None:
        try:
            removed = await ledger.sweep(self._config.retention_days)
        except (LedgerStorageError, SQLAlchemyError) as exc:
            log_warning(logger, "Startup ledger sweep failed: %s", exc)
            return
        log_info(logger, "Startup ledger sweep removed %d records", removed)

    def _build_delivery(self) -> MessageDelivery:
        if self._delivery is not None:
            return self._delivery
        delivery = TelegramDelivery(TelegramConfig.from_env())
        self._owned_clients.append(delivery)
        return delivery

    def _build_github_client(self) -> GitHubActivityClient:
        if self._github_client is not None:
            return self._github_client
        client = GitHubRestClient(GitHubRestConfig.from_env())
        self._owned_clients.append(client)
        return client
