"""Persistent dedup ledger of already-notified events.

``sweep_ledger_job`` is the Dramatiq actor applying the retention window;
run a worker for it with ``dramatiq ghrelay.ledger.actor``.
"""

from __future__ import annotations

from .actor import sweep_ledger_job
from .errors import LedgerStorageError
from .service import DedupLedger, RecordOutcome
from .storage import EventRecord

__all__ = [
    "DedupLedger",
    "EventRecord",
    "LedgerStorageError",
    "RecordOutcome",
    "sweep_ledger_job",
]
