"""
Notification Service - payment status fan-out to connected listeners.

Listeners subscribe with a callback. Publishing is fire-and-forget: a failing
listener is dropped and logged, and publish never raises to its caller.
Delivery is best effort with no ordering or durability guarantee across
disconnects.
"""

import threading
import uuid
from typing import Any, Callable, Dict

from loguru import logger

Subscriber = Callable[[Dict[str, Any]], None]

PAYMENT_STATUS_EVENT = "payment_status"


class NotificationHub:
    """Publish/subscribe hub for payment status events"""

    def __init__(self):
        self._subscribers: Dict[str, Subscriber] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> str:
        """Register a listener. Returns the id used to unsubscribe."""
        subscription_id = str(uuid.uuid4())
        with self._lock:
            self._subscribers[subscription_id] = callback
        logger.info(f"Notification listener connected ({self.subscriber_count} total)")
        return subscription_id

    def unsubscribe(self, subscription_id: str) -> None:
        with self._lock:
            removed = self._subscribers.pop(subscription_id, None)
        if removed is not None:
            logger.info(f"Notification listener disconnected ({self.subscriber_count} total)")

    def publish(self, event: Dict[str, Any]) -> int:
        """
        Send an event to every current listener.

        Returns:
            Number of listeners the event was handed to
        """
        with self._lock:
            subscribers = list(self._subscribers.items())

        delivered = 0
        for subscription_id, callback in subscribers:
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping notification listener {subscription_id}: {e}")
                self.unsubscribe(subscription_id)

        logger.debug(f"Published {event.get('event')} to {delivered} listener(s)")
        return delivered

    def publish_payment_status(self, payment_id: int, status: str, **extra: Any) -> int:
        return self.publish(
            {"event": PAYMENT_STATUS_EVENT, "payment_id": payment_id, "status": status, **extra}
        )
