"""Process entrypoint serving the relay with Granian.

``create_app`` is the factory Granian imports as ``ghrelay.runtime:create_app``.
It loads :class:`~ghrelay.config.RelayConfig`, builds the lifespan middleware
that owns the poller and the notification worker, and adds the webhook
routes when ``GHRELAY_MODE`` accepts deliveries.

``main`` reads the listener settings:

- ``GHRELAY_HOST``: bind address (default ``0.0.0.0``)
- ``GHRELAY_PORT``: listen port (default ``8080``)
- ``GHRELAY_LOG_LEVEL``: femtologging level (default ``INFO``)
"""

from __future__ import annotations

import dataclasses as dc
import os
import typing as typ

from ghrelay.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["ServerSettings", "create_app", "main"]

logger = get_logger(__name__)

_PORT_RANGE = range(1, 65536)


def _parse_port(raw: str) -> int:
    """Return ``raw`` as a TCP port, exiting with status 1 when invalid."""
    try:
        port = int(raw)
    except ValueError:
        port = None
    if port is None or port not in _PORT_RANGE:
        log_error(
            logger,
            "Invalid GHRELAY_PORT value: %r (must be %d-%d)",
            raw,
            _PORT_RANGE.start,
            _PORT_RANGE.stop - 1,
        )
        raise SystemExit(1)
    return port


@dc.dataclass(frozen=True, slots=True)
class ServerSettings:
    """Listener settings for the Granian server."""

    host: str = "0.0.0.0"  # noqa: S104 - containers bind every interface
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ServerSettings:
        """Read ``GHRELAY_HOST``, ``GHRELAY_PORT`` and ``GHRELAY_LOG_LEVEL``."""
        defaults = cls()
        return cls(
            host=os.environ.get("GHRELAY_HOST", defaults.host),
            port=_parse_port(os.environ.get("GHRELAY_PORT", str(defaults.port))),
            log_level=os.environ.get("GHRELAY_LOG_LEVEL", defaults.log_level),
        )


def create_app() -> falcon.asgi.App:
    """Build the relay application from the environment.

    Raises
    ------
    ValueError
        If a ``GHRELAY_*`` relay setting is invalid.

    """
    from ghrelay.api.app import AppDependencies
    from ghrelay.api.app import create_app as build_app
    from ghrelay.api.lifespan import RelayLifespan
    from ghrelay.config import RelayConfig
    from ghrelay.webhook import WebhookIngestor

    config = RelayConfig.from_env()
    lifespan = RelayLifespan(config)
    if not config.webhook_enabled:
        return build_app(AppDependencies(lifespan=lifespan))

    ingestor = WebhookIngestor(lifespan.channel, config.webhook_secret)
    if not ingestor.verifies_signatures:
        log_warning(
            logger,
            "GHRELAY_WEBHOOK_SECRET is not set; accepting unsigned deliveries",
        )
    return build_app(AppDependencies(ingestor=ingestor, lifespan=lifespan))


def main() -> None:
    """Configure logging and serve :func:`create_app` until interrupted."""
    from granian import Granian
    from granian.constants import Interfaces

    settings = ServerSettings.from_env()
    level, invalid = configure_logging(settings.log_level)
    if invalid:
        log_warning(
            logger,
            "Invalid GHRELAY_LOG_LEVEL %r, falling back to %s",
            settings.log_level,
            level,
        )
    log_info(logger, "Starting ghrelay on %s:%d (log_level=%s)", settings.host, settings.port, level)

    # One worker: the poller and the notifier must not run twice.
    Granian(
        "ghrelay.runtime:create_app",
        address=settings.host,
        port=settings.port,
        interface=Interfaces.ASGI,
        factory=True,
        workers=1,
    ).serve()


if __name__ == "__main__":
    main()
