"""Shared SQLAlchemy base and the UTC timestamp column type.

SQLite stores ``DateTime(timezone=True)`` values without an offset, so
:class:`UTCDateTime` normalises on the way in and reattaches UTC on the way
out. Ledger sweeps compare these values against ``utcnow()`` and must never
mix naive and aware datetimes.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class TimezoneAwareRequiredError(ValueError):
    """Raised when a naive datetime is written to a UTC column."""

    def __init__(self, value: dt.datetime) -> None:
        """Report the offending value."""
        super().__init__(f"naive datetime {value.isoformat()} cannot be stored as UTC")


class Base(DeclarativeBase):
    """Declarative base for ledger and subscription tables."""


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)


class UTCDateTime(TypeDecorator[dt.datetime]):
    """Timezone-aware column that always yields UTC datetimes."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError(value)
        return _as_utc(value)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        # SQLite drops the offset; values were stored as UTC.
        return None if value is None else _as_utc(value)


async def init_storage(engine: AsyncEngine) -> None:
    """Create the ledger and subscription tables if they are absent."""
    # Importing the storage modules registers their tables on Base.metadata.
    from ghrelay.ledger import storage as _ledger_storage  # noqa: F401
    from ghrelay.subscriptions import storage as _subscription_storage  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


__all__ = ["Base", "TimezoneAwareRequiredError", "UTCDateTime", "init_storage"]
