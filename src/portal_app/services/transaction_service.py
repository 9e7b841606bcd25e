"""Read-only payment history queries."""

from typing import List

from src.portal_app.context import PortalContext
from src.portal_app.models.database import Payment


class TransactionQueryService:
    """Lists a user's payments, newest first."""

    def __init__(self, context: PortalContext):
        self.context = context

    def list_for_user(self, username: str) -> List[Payment]:
        """Return the user's payments by submission time descending; empty if none."""
        with self.context.pool.session() as db:
            return (
                db.query(Payment)
                .filter(Payment.username == username)
                .order_by(Payment.payment_date.desc(), Payment.id.desc())
                .all()
            )
