"""Falcon resource receiving GitHub webhook deliveries.

The resource hands the raw body and the GitHub headers to a
:class:`~ghrelay.webhook.WebhookIngestor`. Rejections raised by the ingestor
propagate to the error handlers registered in :mod:`ghrelay.api.app`.

Usage
-----
Register the resource on the Falcon app::

    app.add_route("/webhook", WebhookResource(ingestor))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from ghrelay.webhook import WebhookIngestor

__all__ = ["EVENT_HEADER", "SIGNATURE_HEADER", "WebhookResource"]

EVENT_HEADER = "X-GitHub-Event"
SIGNATURE_HEADER = "X-Hub-Signature-256"


class WebhookResource:
    """Accept ``POST`` deliveries and report the ingestion outcome."""

    def __init__(self, ingestor: WebhookIngestor) -> None:
        """Bind the resource to the ingestor that processes deliveries."""
        self._ingestor = ingestor

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle POST requests carrying one GitHub delivery.

        Parameters
        ----------
        req
            Falcon request; its body is read unparsed so the signature is
            checked against the exact bytes GitHub signed.
        resp
            Falcon response populated with ``{"status": outcome}``.

        """
        body = await req.stream.read()
        outcome = self._ingestor.ingest(
            req.get_header(EVENT_HEADER),
            body,
            req.get_header(SIGNATURE_HEADER),
        )
        resp.media = {"status": outcome.value}
        resp.status = HTTPStatus.OK
