"""Dedup ledger operations over the ``event_records`` table."""

from __future__ import annotations

import datetime as dt
import enum
import typing as typ

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ghrelay.common.time import utcnow
from ghrelay.logging import get_logger, log_debug, log_warning

from .errors import LedgerStorageError
from .storage import EventRecord

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from ghrelay.events import DedupKey

    type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)


class RecordOutcome(enum.StrEnum):
    """Result of :meth:`DedupLedger.record_if_absent`."""

    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


def _key_clause(key: DedupKey) -> tuple[typ.Any, ...]:
    return (
        EventRecord.repo_owner == key.repo_owner,
        EventRecord.repo_name == key.repo_name,
        EventRecord.event_kind == str(key.event_kind),
        EventRecord.event_id == key.event_id,
    )


class DedupLedger:
    """Persistent set of dedup keys with idempotent insert.

    Concurrent writers are reconciled by the table's unique constraint: the
    losing insert surfaces as ``IntegrityError`` and is reported as
    :attr:`RecordOutcome.ALREADY_PRESENT`. No in-process lock is involved, so
    several processes may share one database.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Store the session factory used for ledger operations."""
        self._session_factory = session_factory

    async def record_if_absent(self, key: DedupKey) -> RecordOutcome:
        """Insert ``key`` unless it is already present.

        Raises
        ------
        LedgerStorageError
            If the store fails for any reason other than a duplicate key.

        """
        try:
            async with self._session_factory() as session:
                session.add(
                    EventRecord(
                        repo_owner=key.repo_owner,
                        repo_name=key.repo_name,
                        event_kind=str(key.event_kind),
                        event_id=key.event_id,
                    )
                )
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    existing = await session.scalar(
                        select(EventRecord.id).where(*_key_clause(key))
                    )
                    if existing is None:
                        raise LedgerStorageError.missing_after_conflict(key) from exc
                    log_debug(logger, "Ledger key %s already present", key)
                    return RecordOutcome.ALREADY_PRESENT
        except SQLAlchemyError as exc:
            raise LedgerStorageError.record_failed(key) from exc
        return RecordOutcome.INSERTED

    async def contains(self, key: DedupKey) -> bool:
        """Return whether ``key`` has been recorded.

        Lookup failures are logged and answered with ``False`` so a genuine
        first occurrence is never suppressed by a storage fault.
        """
        try:
            async with self._session_factory() as session:
                found = await session.scalar(
                    select(EventRecord.id).where(*_key_clause(key)).limit(1)
                )
        except SQLAlchemyError as exc:
            log_warning(
                logger,
                "Ledger lookup failed for %s; treating as unseen: %s",
                key,
                exc,
                exc_info=exc,
            )
            return False
        return found is not None

    async def sweep(self, max_age_days: int, *, now: dt.datetime | None = None) -> int:
        """Delete records inserted more than ``max_age_days`` ago.

        Parameters
        ----------
        max_age_days : int
            Retention window in days; must be at least 1.
        now : datetime, optional
            Reference instant, defaulting to the current UTC time.

        Returns
        -------
        int
            Number of records removed.

        Raises
        ------
        ValueError
            If ``max_age_days`` is less than 1.
        LedgerStorageError
            If the delete fails.

        """
        if max_age_days < 1:
            msg = f"max_age_days must be positive, got: {max_age_days}"
            raise ValueError(msg)

        cutoff = (now or utcnow()) - dt.timedelta(days=max_age_days)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(EventRecord).where(EventRecord.inserted_at < cutoff)
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise LedgerStorageError.sweep_failed(max_age_days) from exc
        removed = result.rowcount or 0
        log_debug(logger, "Ledger sweep removed %d records before %s", removed, cutoff)
        return removed


__all__ = ["DedupLedger", "RecordOutcome"]
