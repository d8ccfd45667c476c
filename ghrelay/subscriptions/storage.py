"""Persistence model for chat subscriptions."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import JSON, BigInteger, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ghrelay.common.storage import Base, UTCDateTime
from ghrelay.common.time import utcnow


class SubscriptionRecord(Base):
    """A chat's subscription to one repository.

    ``event_kinds`` holds a JSON list of kind names; ``NULL`` subscribes the
    chat to every kind.
    """

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint(
            "chat_id", "repo_owner", "repo_name", name="uq_subscriptions_chat_repo"
        ),
        Index("ix_subscriptions_repo", "repo_owner", "repo_name"),
        Index("ix_subscriptions_chat_id", "chat_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    chat_id: Mapped[int] = mapped_column(BigInteger)
    repo_owner: Mapped[str] = mapped_column(String(255))
    repo_name: Mapped[str] = mapped_column(String(255))
    event_kinds: Mapped[list[str] | None] = mapped_column(JSON, default=None)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)


__all__ = ["SubscriptionRecord"]
