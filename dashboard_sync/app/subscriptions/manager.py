"""
Subscription manager for cache change notifications.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from shared.logging import get_logger
from shared.metrics import SyncMetrics

Subscriber = Callable[[Any], None]


@dataclass
class Subscription:
    """Subscription data."""
    subscription_id: str
    key: str
    callback: Subscriber
    created_at: datetime = field(default_factory=datetime.now)
    last_notified_at: Optional[datetime] = None
    notification_count: int = 0
    error_count: int = 0


class SubscriptionManager:
    """Keeps change callbacks per cache key and delivers notifications.

    Delivery is synchronous and follows registration order. A callback that
    raises is logged and counted; the remaining callbacks still run.
    """

    def __init__(self, metrics: Optional[SyncMetrics] = None):
        self.logger = get_logger("dashboard_sync.subscriptions.manager")
        self.metrics = metrics

        # Subscription storage
        self.subscriptions: Dict[str, Subscription] = {}
        self.key_subscriptions: Dict[str, List[str]] = {}  # key -> subscription_ids, registration order

    def subscribe(self, key: str, callback: Subscriber) -> Callable[[], bool]:
        """Register ``callback`` for ``key``; returns an idempotent unsubscribe."""
        if not callable(callback):
            raise TypeError("Subscriber callback must be callable")

        subscription_id = str(uuid.uuid4())
        self.subscriptions[subscription_id] = Subscription(
            subscription_id=subscription_id,
            key=key,
            callback=callback
        )
        self.key_subscriptions.setdefault(key, []).append(subscription_id)

        self.logger.debug(
            "Subscription created",
            subscription_id=subscription_id,
            key=key,
            subscriber_count=len(self.key_subscriptions[key])
        )

        def unsubscribe() -> bool:
            return self.remove_subscription(subscription_id)

        return unsubscribe

    def remove_subscription(self, subscription_id: str) -> bool:
        """Remove a subscription."""
        subscription = self.subscriptions.pop(subscription_id, None)
        if subscription is None:
            return False

        ids = self.key_subscriptions.get(subscription.key)
        if ids is not None:
            ids.remove(subscription_id)
            if not ids:
                del self.key_subscriptions[subscription.key]

        self.logger.debug(
            "Subscription removed",
            subscription_id=subscription_id,
            key=subscription.key
        )
        return True

    def notify(self, key: str, payload: Any) -> int:
        """Call every subscriber of ``key`` with ``payload``; returns callbacks that succeeded."""
        delivered = 0
        # Snapshot so callbacks may (un)subscribe while we iterate
        for subscription_id in list(self.key_subscriptions.get(key, ())):
            subscription = self.subscriptions.get(subscription_id)
            if subscription is None:
                continue

            subscription.last_notified_at = datetime.now()
            subscription.notification_count += 1
            if self.metrics:
                self.metrics.record_notification(key)

            try:
                subscription.callback(payload)
            except Exception as exc:
                subscription.error_count += 1
                if self.metrics:
                    self.metrics.record_subscriber_error(key)
                self.logger.error(
                    "Subscriber callback failed",
                    subscription_id=subscription_id,
                    key=key,
                    error=str(exc)
                )
                continue

            delivered += 1

        return delivered

    def subscriber_count(self, key: str) -> int:
        return len(self.key_subscriptions.get(key, ()))

    def clear(self) -> int:
        """Drop every subscription; returns how many were removed."""
        count = len(self.subscriptions)
        self.subscriptions.clear()
        self.key_subscriptions.clear()
        return count

    def get_subscription_stats(self) -> Dict[str, Any]:
        """Get subscription statistics."""
        return {
            "total_subscriptions": len(self.subscriptions),
            "total_keys": len(self.key_subscriptions),
            "keys": list(self.key_subscriptions.keys())
        }

    def get_key_stats(self, key: str) -> Dict[str, Any]:
        """Get statistics for a specific key."""
        subscriptions = []
        for subscription_id in self.key_subscriptions.get(key, ()):
            subscription = self.subscriptions[subscription_id]
            subscriptions.append({
                "subscription_id": subscription_id,
                "notification_count": subscription.notification_count,
                "error_count": subscription.error_count,
                "created_at": subscription.created_at.isoformat(),
                "last_notified_at": subscription.last_notified_at.isoformat() if subscription.last_notified_at else None
            })

        return {
            "key": key,
            "subscriber_count": len(subscriptions),
            "subscriptions": subscriptions
        }
