"""Falcon error handlers for rejected webhook deliveries.

The ingestor raises :class:`~ghrelay.webhook.WebhookSignatureError` for a
missing or mismatched ``X-Hub-Signature-256`` and
:class:`~ghrelay.webhook.WebhookPayloadError` for bodies it cannot decode.
Both become JSON problem bodies so GitHub's delivery log shows the reason.
"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from ghrelay.webhook import WebhookPayloadError, WebhookSignatureError

__all__ = ["handle_webhook_payload_error", "handle_webhook_signature_error"]


def _reject(resp: Response, status: str, title: str, ex: Exception) -> None:
    resp.status = status
    resp.media = {"title": title, "description": str(ex)}


async def handle_webhook_signature_error(
    _req: Request,
    resp: Response,
    ex: WebhookSignatureError,
    _params: dict[str, typ.Any],
) -> None:
    """Answer an unverifiable delivery with 401."""
    _reject(resp, falcon.HTTP_401, "Invalid signature", ex)


async def handle_webhook_payload_error(
    _req: Request,
    resp: Response,
    ex: WebhookPayloadError,
    _params: dict[str, typ.Any],
) -> None:
    """Answer an undecodable delivery with 400."""
    _reject(resp, falcon.HTTP_400, "Invalid payload", ex)
