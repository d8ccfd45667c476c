"""Dramatiq actor that applies the ledger retention window.

Schedule it from cron or a Dramatiq periodic scheduler:

>>> sweep_ledger_job.send(
...     database_url="sqlite+aiosqlite:///./data/ghrelay.db",
...     max_age_days=30,
... )

"""

from __future__ import annotations

import asyncio
import functools

import dramatiq
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ghrelay.ledger._broker import ensure_broker_configured
from ghrelay.ledger.service import DedupLedger
from ghrelay.logging import get_logger, log_info

type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)


@functools.cache
def _session_factory_for(database_url: str) -> SessionFactory:
    """Return the worker-wide session factory for ``database_url``."""
    return async_sessionmaker(create_async_engine(database_url), expire_on_commit=False)


async def _sweep_ledger_async(session_factory: SessionFactory, max_age_days: int) -> int:
    removed = await DedupLedger(session_factory).sweep(max_age_days)
    log_info(
        logger,
        "Ledger sweep removed %d records older than %d days",
        removed,
        max_age_days,
    )
    return removed


@dramatiq.actor
def sweep_ledger_job(database_url: str, max_age_days: int) -> int:
    """Delete ledger records older than ``max_age_days`` and return the count.

    ``max_age_days`` must be at least 1; ``DedupLedger.sweep`` rejects
    anything smaller.
    """
    ensure_broker_configured()
    return asyncio.run(
        _sweep_ledger_async(_session_factory_for(database_url), max_age_days)
    )


__all__ = ["sweep_ledger_job"]
