"""Dedup ledger error types."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from ghrelay.events import DedupKey


class LedgerStorageError(RuntimeError):
    """Raised when the ledger's backing store cannot complete an operation."""

    @classmethod
    def record_failed(cls, key: DedupKey) -> LedgerStorageError:
        """Return an error for a failed insert of ``key``."""
        return cls(f"failed to record ledger key {key}")

    @classmethod
    def sweep_failed(cls, max_age_days: int) -> LedgerStorageError:
        """Return an error for a failed retention sweep."""
        return cls(f"failed to sweep ledger records older than {max_age_days} days")

    @classmethod
    def missing_after_conflict(cls, key: DedupKey) -> LedgerStorageError:
        """Return an error when a conflicting row vanished before it was read."""
        return cls(f"expected existing ledger row for {key} after rollback")


__all__ = ["LedgerStorageError"]
