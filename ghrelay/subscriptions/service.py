"""Subscription store backing the poller and the notifier."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from ghrelay.common.slug import repo_slug
from ghrelay.events import EventKind
from ghrelay.logging import get_logger, log_info, log_warning

from .storage import SubscriptionRecord

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)

# Older rows name the issue kind after GitHub's "issues" event header.
_KIND_ALIASES: dict[str, EventKind] = {"issues": EventKind.ISSUE}


@dc.dataclass(frozen=True, slots=True)
class WatchedRepository:
    """A repository with at least one subscriber."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        """Return the ``owner/name`` repository slug."""
        return repo_slug(self.owner, self.name)


@dc.dataclass(frozen=True, slots=True)
class Subscriber:
    """A chat subscribed to a repository.

    ``enabled_event_kinds`` of ``None`` means every kind is wanted.
    """

    chat_id: int
    enabled_event_kinds: frozenset[EventKind] | None = None

    def wants(self, kind: EventKind) -> bool:
        """Return whether this subscriber receives events of ``kind``."""
        return self.enabled_event_kinds is None or kind in self.enabled_event_kinds


def _parse_kinds(raw: object) -> frozenset[EventKind] | None:
    """Decode a stored kind list, treating unreadable values as "all kinds"."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        log_warning(logger, "Unreadable subscription kinds %r; assuming all", raw)
        return None
    kinds: set[EventKind] = set()
    for item in raw:
        if not isinstance(item, str):
            continue
        if item in _KIND_ALIASES:
            kinds.add(_KIND_ALIASES[item])
            continue
        try:
            kinds.add(EventKind(item))
        except ValueError:
            log_warning(logger, "Ignoring unknown subscription kind %r", item)
    return frozenset(kinds)


def _serialise_kinds(kinds: cabc.Iterable[EventKind] | None) -> list[str] | None:
    if kinds is None:
        return None
    return sorted({str(EventKind(kind)) for kind in kinds})


class SubscriptionStore:
    """CRUD over the ``subscriptions`` table."""

    def __init__(self, session_factory: SessionFactory) -> None:
        """Store the session factory used for subscription queries."""
        self._session_factory = session_factory

    async def subscribe(
        self,
        chat_id: int,
        owner: str,
        name: str,
        kinds: cabc.Iterable[EventKind] | None = None,
    ) -> Subscriber:
        """Create or update the subscription of ``chat_id`` to ``owner/name``.

        Re-subscribing replaces the stored kind filter.
        """
        stored_kinds = _serialise_kinds(kinds)
        async with self._session_factory() as session:
            if not await self._update_kinds(session, chat_id, owner, name, stored_kinds):
                session.add(
                    SubscriptionRecord(
                        chat_id=chat_id,
                        repo_owner=owner,
                        repo_name=name,
                        event_kinds=stored_kinds,
                    )
                )
            try:
                await session.commit()
            except IntegrityError:
                # A concurrent subscribe won the insert; apply our filter to it.
                await session.rollback()
                await self._update_kinds(session, chat_id, owner, name, stored_kinds)
                await session.commit()

        log_info(
            logger,
            "Chat %d subscribed to %s (kinds=%s)",
            chat_id,
            repo_slug(owner, name),
            stored_kinds or "all",
        )
        return Subscriber(chat_id=chat_id, enabled_event_kinds=_parse_kinds(stored_kinds))

    @staticmethod
    async def _update_kinds(
        session: AsyncSession,
        chat_id: int,
        owner: str,
        name: str,
        stored_kinds: list[str] | None,
    ) -> bool:
        existing = await session.scalar(
            select(SubscriptionRecord).where(
                SubscriptionRecord.chat_id == chat_id,
                SubscriptionRecord.repo_owner == owner,
                SubscriptionRecord.repo_name == name,
            )
        )
        if existing is None:
            return False
        existing.event_kinds = stored_kinds
        return True

    async def unsubscribe(self, chat_id: int, owner: str, name: str) -> bool:
        """Remove a subscription, returning whether one existed."""
        async with self._session_factory() as session:
            result = await session.execute(
                delete(SubscriptionRecord).where(
                    SubscriptionRecord.chat_id == chat_id,
                    SubscriptionRecord.repo_owner == owner,
                    SubscriptionRecord.repo_name == name,
                )
            )
            await session.commit()
        return bool(result.rowcount)

    async def list_repositories_with_subscribers(self) -> list[WatchedRepository]:
        """Return every distinct repository with at least one subscription."""
        async with self._session_factory() as session:
            rows = await session.execute(
                select(SubscriptionRecord.repo_owner, SubscriptionRecord.repo_name)
                .distinct()
                .order_by(SubscriptionRecord.repo_owner, SubscriptionRecord.repo_name)
            )
            return [WatchedRepository(owner=owner, name=name) for owner, name in rows]

    async def list_subscribers(self, owner: str, name: str) -> list[Subscriber]:
        """Return the subscribers of ``owner/name`` in subscription order."""
        async with self._session_factory() as session:
            records = await session.scalars(
                select(SubscriptionRecord)
                .where(
                    SubscriptionRecord.repo_owner == owner,
                    SubscriptionRecord.repo_name == name,
                )
                .order_by(SubscriptionRecord.id)
            )
            return [
                Subscriber(
                    chat_id=record.chat_id,
                    enabled_event_kinds=_parse_kinds(record.event_kinds),
                )
                for record in records
            ]

    async def list_chat_repositories(self, chat_id: int) -> list[WatchedRepository]:
        """Return the repositories ``chat_id`` is subscribed to."""
        async with self._session_factory() as session:
            rows = await session.execute(
                select(SubscriptionRecord.repo_owner, SubscriptionRecord.repo_name)
                .where(SubscriptionRecord.chat_id == chat_id)
                .order_by(SubscriptionRecord.repo_owner, SubscriptionRecord.repo_name)
            )
            return [WatchedRepository(owner=owner, name=name) for owner, name in rows]


__all__ = ["Subscriber", "SubscriptionStore", "WatchedRepository"]
