"""Webhook rejection errors."""

from __future__ import annotations


class WebhookSignatureError(Exception):
    """Raised when a delivery's HMAC signature does not verify."""

    @classmethod
    def missing(cls) -> WebhookSignatureError:
        """Return an error for a delivery without ``X-Hub-Signature-256``."""
        return cls("missing X-Hub-Signature-256 header")

    @classmethod
    def mismatch(cls) -> WebhookSignatureError:
        """Return an error for a signature that does not match the body."""
        return cls("webhook signature mismatch")


class WebhookPayloadError(Exception):
    """Raised when a delivery cannot be normalised into an event."""

    @classmethod
    def missing_event_type(cls) -> WebhookPayloadError:
        """Return an error for a delivery without ``X-GitHub-Event``."""
        return cls("missing X-GitHub-Event header")

    @classmethod
    def malformed(cls, event_type: str, detail: str) -> WebhookPayloadError:
        """Return an error for a body that does not decode as ``event_type``."""
        return cls(f"malformed {event_type} payload: {detail}")


__all__ = ["WebhookPayloadError", "WebhookSignatureError"]
