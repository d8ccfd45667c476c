"""Webhook ingestion: verify, normalise, and enqueue one delivery."""

from __future__ import annotations

import enum
import typing as typ

from ghrelay.logging import get_logger, log_debug, log_info, log_warning

from .errors import WebhookPayloadError, WebhookSignatureError
from .parsing import parse_webhook_event
from .signature import verify_signature

if typ.TYPE_CHECKING:
    from ghrelay.channel import EventChannel

logger = get_logger(__name__)


class WebhookOutcome(enum.StrEnum):
    """Terminal state of a delivery that was not rejected."""

    ACCEPTED = "accepted"
    IGNORED = "ignored"
    DROPPED = "dropped"


class WebhookIngestor:
    """Turn signed GitHub deliveries into events on the channel.

    When ``secret`` is ``None`` or empty, signature verification is skipped
    and every delivery is trusted.
    """

    def __init__(self, channel: EventChannel, secret: str | None = None) -> None:
        """Bind the ingestor to its output channel and shared secret."""
        self._channel = channel
        self._secret = secret or None

    @property
    def verifies_signatures(self) -> bool:
        """Whether deliveries must carry a valid HMAC signature."""
        return self._secret is not None

    def ingest(
        self,
        event_type: str | None,
        body: bytes,
        signature: str | None = None,
    ) -> WebhookOutcome:
        """Process one delivery.

        Parameters
        ----------
        event_type
            Value of the ``X-GitHub-Event`` header.
        body
            Raw request body, exactly as signed by GitHub.
        signature
            Value of the ``X-Hub-Signature-256`` header.

        Returns
        -------
        WebhookOutcome
            ``ACCEPTED`` when an event was enqueued, ``IGNORED`` for
            unsupported types or actions, ``DROPPED`` when the channel was
            full.

        Raises
        ------
        WebhookSignatureError
            If a secret is configured and the signature does not verify.
        WebhookPayloadError
            If the event header is missing or the body cannot be normalised.

        """
        if self._secret is not None:
            if not signature:
                log_warning(logger, "Rejected webhook without signature")
                raise WebhookSignatureError.missing()
            if not verify_signature(self._secret, body, signature):
                log_warning(logger, "Rejected webhook with invalid signature")
                raise WebhookSignatureError.mismatch()

        if not event_type:
            raise WebhookPayloadError.missing_event_type()

        try:
            event = parse_webhook_event(event_type, body)
        except WebhookPayloadError as exc:
            log_warning(logger, "Rejected %s webhook: %s", event_type, exc)
            raise

        if event is None:
            log_debug(logger, "Ignoring %s webhook", event_type)
            return WebhookOutcome.IGNORED

        if not self._channel.offer(event):
            return WebhookOutcome.DROPPED

        log_info(logger, "Webhook %s event received for %s", event.kind, event.slug)
        return WebhookOutcome.ACCEPTED


__all__ = ["WebhookIngestor", "WebhookOutcome"]
