"""Process-level configuration for the relay.

``RelayConfig`` collects the settings shared by the runtime wiring: where
the ledger and subscriptions live, which ingestion paths are active, and
how large the event channel may grow.

Usage
-----
Load from environment variables:

>>> import os
>>> os.environ["GHRELAY_MODE"] = "both"
>>> config = RelayConfig.from_env()
>>> config.webhook_enabled
True

"""

from __future__ import annotations

import dataclasses as dc
import enum
import os

from ghrelay.channel import DEFAULT_CHANNEL_CAPACITY

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/ghrelay.db"
DEFAULT_RETENTION_DAYS = 30


class RelayMode(enum.StrEnum):
    """Which ingestion paths feed the event channel."""

    POLLING = "polling"
    WEBHOOK = "webhook"
    BOTH = "both"


@dc.dataclass(frozen=True, slots=True)
class RelayConfig:
    """Configuration for the relay process.

    Attributes
    ----------
    database_url
        SQLAlchemy async URL for the ledger and subscription tables.
    mode
        Active ingestion paths. The poller only runs in ``polling`` and
        ``both``; the webhook route only accepts deliveries in ``webhook``
        and ``both``.
    webhook_secret
        Shared secret for ``X-Hub-Signature-256`` verification. ``None``
        disables verification.
    channel_capacity
        Maximum number of buffered events before offers are dropped.
    retention_days
        Age after which ledger entries are swept.

    """

    database_url: str = DEFAULT_DATABASE_URL
    mode: RelayMode = RelayMode.POLLING
    webhook_secret: str | None = None
    channel_capacity: int = DEFAULT_CHANNEL_CAPACITY
    retention_days: int = DEFAULT_RETENTION_DAYS

    @property
    def polling_enabled(self) -> bool:
        """Return True when the poller should run."""
        return self.mode in {RelayMode.POLLING, RelayMode.BOTH}

    @property
    def webhook_enabled(self) -> bool:
        """Return True when webhook deliveries are accepted."""
        return self.mode in {RelayMode.WEBHOOK, RelayMode.BOTH}

    @staticmethod
    def _parse_positive_int(env_var: str, default: int) -> int:
        """Read a positive integer env var, falling back to a default."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < 1:
            msg = f"{env_var} must be positive, got: {value}"
            raise ValueError(msg)
        return value

    @staticmethod
    def _parse_mode(raw: str) -> RelayMode:
        candidate = raw.strip().lower()
        if not candidate:
            return RelayMode.POLLING
        try:
            return RelayMode(candidate)
        except ValueError as exc:
            choices = ", ".join(mode.value for mode in RelayMode)
            msg = f"GHRELAY_MODE must be one of {choices}, got: {raw!r}"
            raise ValueError(msg) from exc

    @classmethod
    def from_env(cls) -> RelayConfig:
        """Create configuration from environment variables.

        Reads ``GHRELAY_DATABASE_URL``, ``GHRELAY_MODE``,
        ``GHRELAY_WEBHOOK_SECRET``, ``GHRELAY_CHANNEL_CAPACITY`` and
        ``GHRELAY_LEDGER_RETENTION_DAYS``. Blank values fall back to the
        defaults.

        Raises
        ------
        ValueError
            If a numeric variable is not a positive integer or the mode is
            not recognised.

        """
        database_url = (
            os.environ.get("GHRELAY_DATABASE_URL", "").strip() or DEFAULT_DATABASE_URL
        )
        secret = os.environ.get("GHRELAY_WEBHOOK_SECRET", "").strip() or None
        return cls(
            database_url=database_url,
            mode=cls._parse_mode(os.environ.get("GHRELAY_MODE", "")),
            webhook_secret=secret,
            channel_capacity=cls._parse_positive_int(
                "GHRELAY_CHANNEL_CAPACITY", DEFAULT_CHANNEL_CAPACITY
            ),
            retention_days=cls._parse_positive_int(
                "GHRELAY_LEDGER_RETENTION_DAYS", DEFAULT_RETENTION_DAYS
            ),
        )


__all__ = [
    "DEFAULT_DATABASE_URL",
    "DEFAULT_RETENTION_DAYS",
    "RelayConfig",
    "RelayMode",
]
