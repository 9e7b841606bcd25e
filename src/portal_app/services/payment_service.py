"""
Payment intake: field validation, persistence and status notification.

Only the shape of the card data is checked; nothing here talks to a payment
network. Whether a new payment settles immediately or stays Pending for
asynchronous settlement is the `immediate_settlement` policy on the context.
"""

import re
from decimal import Decimal
from typing import Any, Optional

from loguru import logger

from src.portal_app.context import PortalContext
from src.portal_app.errors import InvalidTransition, ValidationError
from src.portal_app.models.database import (
    PAYMENT_FAILED,
    PAYMENT_PENDING,
    PAYMENT_SUCCESS,
    Payment,
)
from src.portal_app.services.audit_service import EVENT_PAYMENT_INITIATED

# Applied with fullmatch; \d is ASCII 0-9 only
AMOUNT_PATTERN = re.compile(r"\d+(\.\d{1,2})?", re.ASCII)
INSTRUMENT_PATTERN = re.compile(r"\d{13,19}", re.ASCII)
EXPIRY_PATTERN = re.compile(r"(0[1-9]|1[0-2])/(\d{2}|\d{4})", re.ASCII)
CODE_PATTERN = re.compile(r"\d{3,4}", re.ASCII)

# Forward-only status transitions
ALLOWED_TRANSITIONS = {
    PAYMENT_PENDING: {PAYMENT_SUCCESS, PAYMENT_FAILED},
    PAYMENT_SUCCESS: set(),
    PAYMENT_FAILED: set(),
}


def mask_instrument(instrument_number: str) -> str:
    """Keep the last four digits only."""
    return "*" * (len(instrument_number) - 4) + instrument_number[-4:]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def validate_payment(
    username: Any,
    full_name: Any,
    instrument_number: Any,
    expiry: Any,
    code: Any,
    amount: Any,
) -> None:
    """
    Validate a payment submission in field order.

    Raises:
        ValidationError: naming the first offending field
    """
    fields = [username, full_name, instrument_number, expiry, code, amount]
    if any(_as_text(value) == "" for value in fields):
        raise ValidationError(field="all", message="All payment fields are required.")

    if not AMOUNT_PATTERN.fullmatch(_as_text(amount)):
        raise ValidationError(
            field="amount",
            message="Amount must be a valid number with up to 2 decimals.",
        )

    if not INSTRUMENT_PATTERN.fullmatch(_as_text(instrument_number)):
        raise ValidationError(
            field="cardNumber", message="Card number must be 13 to 19 digits."
        )

    if not EXPIRY_PATTERN.fullmatch(_as_text(expiry)):
        raise ValidationError(
            field="expiry",
            message="Expiry date must be in MM/YY or MM/YYYY format.",
        )

    if not CODE_PATTERN.fullmatch(_as_text(code)):
        raise ValidationError(field="cvv", message="CVV must be 3 or 4 digits.")


class PaymentIntakeService:
    """Accepts payment submissions and moves them through their statuses."""

    def __init__(self, context: PortalContext):
        self.context = context

    def submit(
        self,
        username: Any,
        full_name: Any,
        instrument_number: Any,
        expiry: Any,
        code: Any,
        amount: Any,
        source_address: Optional[str] = None,
    ) -> Payment:
        validate_payment(username, full_name, instrument_number, expiry, code, amount)

        instrument_number = _as_text(instrument_number)
        with self.context.pool.session() as db:
            payment = Payment(
                username=_as_text(username),
                full_name=_as_text(full_name),
                instrument_reference=mask_instrument(instrument_number),
                expiry=_as_text(expiry),
                verification_code=None,
                amount=Decimal(_as_text(amount)),
                status=PAYMENT_PENDING,
                payment_date=self.context.clock(),
            )
            db.add(payment)
            db.flush()

            if self.context.immediate_settlement:
                self._transition(payment, PAYMENT_SUCCESS)

        logger.info(
            f"Payment {payment.id} recorded for '{payment.username}' "
            f"({payment.amount}, {payment.status})"
        )
        self.context.audit.record(payment.username, EVENT_PAYMENT_INITIATED, source_address)

        if payment.status != PAYMENT_PENDING:
            self.context.notifications.publish_payment_status(payment.id, payment.status)
        return payment

    def mark_settled(self, payment_id: int, status: str) -> Payment:
        """
        Move a Pending payment to a terminal status and notify listeners.

        Raises:
            InvalidTransition: payment missing or already terminal
        """
        with self.context.pool.session() as db:
            payment = db.query(Payment).filter(Payment.id == payment_id).first()
            if payment is None:
                raise InvalidTransition(f"Payment {payment_id} not found")
            self._transition(payment, status)

        self.context.notifications.publish_payment_status(payment.id, payment.status)
        return payment

    @staticmethod
    def _transition(payment: Payment, status: str) -> None:
        if status not in ALLOWED_TRANSITIONS.get(payment.status, set()):
            raise InvalidTransition(
                f"Payment cannot move from {payment.status} to {status}"
            )
        logger.info(f"Payment {payment.id}: {payment.status} -> {status}")
        payment.status = status
