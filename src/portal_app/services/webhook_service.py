"""
Stripe webhook handling.

Incoming events are verified against the endpoint secret and dispatched over
a closed set of event kinds. Anything outside that set is acknowledged with
no side effects.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional

import stripe
from loguru import logger

from src import config
from src.portal_app.errors import WebhookSignatureError
from src.portal_app.models.database import PAYMENT_FAILED, PAYMENT_SUCCESS
from src.portal_app.services.notification_service import NotificationHub


class WebhookEventKind(Enum):
    """Event types the portal reacts to"""

    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_FAILED = "payment_intent.payment_failed"
    UNKNOWN = "unknown"

    @classmethod
    def from_type(cls, event_type: Optional[str]) -> "WebhookEventKind":
        for kind in cls:
            if kind is not cls.UNKNOWN and kind.value == event_type:
                return kind
        return cls.UNKNOWN


class WebhookService:
    """Verifies and dispatches payment-network callbacks."""

    def __init__(self, notifications: NotificationHub, endpoint_secret: Optional[str] = None):
        self.notifications = notifications
        self.endpoint_secret = endpoint_secret or config.STRIPE_WEBHOOK_SECRET
        self._handlers: Dict[WebhookEventKind, Callable[[Dict[str, Any]], None]] = {
            WebhookEventKind.PAYMENT_INTENT_SUCCEEDED: self._on_payment_succeeded,
            WebhookEventKind.PAYMENT_INTENT_FAILED: self._on_payment_failed,
        }

    def handle(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify and dispatch one webhook delivery.

        Raises:
            WebhookSignatureError: signature or payload rejected
        """
        try:
            event = stripe.Webhook.construct_event(payload, signature or "", self.endpoint_secret)
        except (stripe.SignatureVerificationError, ValueError) as e:
            logger.warning(f"Webhook signature verification failed: {e}")
            raise WebhookSignatureError()

        event_type = event["type"]
        kind = WebhookEventKind.from_type(event_type)
        handler = self._handlers.get(kind)
        if handler is None:
            logger.info(f"Unhandled event type {event_type}")
        else:
            handler(event["data"]["object"])

        return {"received": True}

    def _on_payment_succeeded(self, payment_intent: Dict[str, Any]) -> None:
        logger.info(f"PaymentIntent was successful! ID: {payment_intent.get('id')}")
        self.notifications.publish(
            {
                "event": "payment_intent",
                "status": PAYMENT_SUCCESS,
                "payment_intent_id": payment_intent.get("id"),
            }
        )

    def _on_payment_failed(self, payment_intent: Dict[str, Any]) -> None:
        logger.warning(f"PaymentIntent failed. ID: {payment_intent.get('id')}")
        self.notifications.publish(
            {
                "event": "payment_intent",
                "status": PAYMENT_FAILED,
                "payment_intent_id": payment_intent.get("id"),
            }
        )
