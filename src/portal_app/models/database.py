from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import declarative_base

# Create base class for all models
Base = declarative_base()

PAYMENT_PENDING = "Pending"
PAYMENT_SUCCESS = "Success"
PAYMENT_FAILED = "Failed"
PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_SUCCESS, PAYMENT_FAILED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Account(Base):
    """Customer account used for authentication and lockout tracking"""
    __tablename__ = 'accounts'

    id = Column(Integer, primary_key=True)
    username = Column(String(20), unique=True, nullable=False, index=True)
    email = Column(String(254), nullable=False)
    password_hash = Column(String(255), nullable=False)
    failed_attempts = Column(Integer, default=0, nullable=False)
    lockout_until = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return (
            f"<Account(username={self.username}, "
            f"failed_attempts={self.failed_attempts}, locked={self.lockout_until})>"
        )


class Payment(Base):
    """Payment submission record"""
    __tablename__ = 'payments'

    id = Column(Integer, primary_key=True)
    username = Column(String(20), nullable=False, index=True)
    full_name = Column(String(100), nullable=False)
    # Masked reference only; the full instrument number is never persisted.
    instrument_reference = Column(String(32), nullable=False)
    expiry = Column(String(7), nullable=False)
    # Verification codes are never written; the column stays NULL.
    verification_code = Column(String(4), nullable=True)
    amount = Column(Numeric(18, 2), nullable=False)
    status = Column(String(10), default=PAYMENT_PENDING, nullable=False)
    payment_date = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Payment(id={self.id}, user={self.username}, amount={self.amount}, status={self.status})>"


def create_tables(engine):
    """Create all database tables"""
    # Imported for its side effect of registering the audit table on Base
    from src.portal_app.models import audit_log  # noqa: F401

    logger.info("Creating database tables...")
    Base.metadata.create_all(engine)
    logger.info("Database tables created successfully")
