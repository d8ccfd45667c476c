"""Chat subscriptions to watched repositories."""

from __future__ import annotations

from .service import Subscriber, SubscriptionStore, WatchedRepository
from .storage import SubscriptionRecord

__all__ = ["Subscriber", "SubscriptionRecord", "SubscriptionStore", "WatchedRepository"]
