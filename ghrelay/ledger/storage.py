"""Persistence model for the dedup ledger."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ghrelay.common.storage import Base, UTCDateTime
from ghrelay.common.time import utcnow


class EventRecord(Base):
    """A dedup key that has already been acted upon."""

    __tablename__ = "event_records"
    __table_args__ = (
        UniqueConstraint(
            "repo_owner",
            "repo_name",
            "event_kind",
            "event_id",
            name="uq_event_records_key",
        ),
        Index("ix_event_records_repo", "repo_owner", "repo_name"),
        Index("ix_event_records_inserted_at", "inserted_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    repo_owner: Mapped[str] = mapped_column(String(255))
    repo_name: Mapped[str] = mapped_column(String(255))
    event_kind: Mapped[str] = mapped_column(String(32))
    event_id: Mapped[str] = mapped_column(String(255))
    inserted_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


__all__ = ["EventRecord"]
