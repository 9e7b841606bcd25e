"""
Audit logging model for security events.

Tracks who did what, when, and from where. Rows are append-only.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

# Import Base from database module
from src.portal_app.models.database import Base


class AuditLog(Base):
    """
    Audit log for account and payment events.

    Tracks:
    - Registrations
    - Successful and failed logins
    - Payment submissions
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
    )

    event_type = Column(
        String(50), nullable=False, index=True
    )  # registration, login_failed, login_success, payment_initiated
    username = Column(String(100), nullable=True, index=True)
    ip_address = Column(String(45), nullable=True, index=True)  # IPv6 max length

    def __repr__(self):
        return f"<AuditLog(id={self.id}, type={self.event_type}, user={self.username}, time={self.timestamp})>"
