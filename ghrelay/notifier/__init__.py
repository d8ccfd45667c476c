"""Fan-out notifier and Telegram delivery."""

from __future__ import annotations

from .errors import DeliveryConfigError, DeliveryError
from .service import (
    MessageDelivery,
    NotificationResult,
    NotificationStatus,
    NotificationWorker,
    Notifier,
    SubscriberDirectory,
)
from .telegram import TelegramConfig, TelegramDelivery

__all__ = [
    "DeliveryConfigError",
    "DeliveryError",
    "MessageDelivery",
    "NotificationResult",
    "NotificationStatus",
    "NotificationWorker",
    "Notifier",
    "SubscriberDirectory",
    "TelegramConfig",
    "TelegramDelivery",
]
