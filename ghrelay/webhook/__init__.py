"""GitHub webhook verification, normalisation, and ingestion."""

from __future__ import annotations

from .errors import WebhookPayloadError, WebhookSignatureError
from .ingestor import WebhookIngestor, WebhookOutcome
from .parsing import SUPPORTED_EVENT_TYPES, parse_webhook_event
from .signature import compute_signature, verify_signature

__all__ = [
    "SUPPORTED_EVENT_TYPES",
    "WebhookIngestor",
    "WebhookOutcome",
    "WebhookPayloadError",
    "WebhookSignatureError",
    "compute_signature",
    "parse_webhook_event",
    "verify_signature",
]
