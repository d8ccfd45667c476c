"""Health probe resources.

``/health`` reports liveness unconditionally. ``/ready`` consults an
optional readiness check, which the lifespan middleware flips once storage
is initialised and the background tasks are running.
"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    Responds ``200 {"status": "ready"}`` when no check is configured or the
    check passes, otherwise ``503 {"status": "starting"}``.

    Parameters
    ----------
    is_ready
        Optional zero-argument callable reporting readiness.

    """

    def __init__(self, is_ready: typ.Callable[[], bool] | None = None) -> None:
        """Store the optional readiness check."""
        self._is_ready = is_ready

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        if self._is_ready is None or self._is_ready():
            resp.media = {"status": "ready"}
            resp.status = HTTPStatus.OK
            return
        resp.media = {"status": "starting"}
        resp.status = HTTPStatus.SERVICE_UNAVAILABLE
