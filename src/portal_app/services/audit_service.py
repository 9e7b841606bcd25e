"""
Audit logging service for account and payment events.

Writes are best effort: a failure to record an event is logged locally and
never reaches the operation that asked for it. By default writes are handed
to a single background worker so the request path does not wait on them; a
single worker keeps events in the order they were recorded.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional

from loguru import logger

from src.portal_app.models.audit_log import AuditLog
from src.portal_app.services.connection_pool import ConnectionPoolManager

EVENT_REGISTRATION = "registration"
EVENT_LOGIN_FAILED = "login_failed"
EVENT_LOGIN_SUCCESS = "login_success"
EVENT_PAYMENT_INITIATED = "payment_initiated"


class AuditLogService:
    """Service for recording audit events."""

    def __init__(self, pool: ConnectionPoolManager, asynchronous: bool = True):
        self.pool = pool
        self.asynchronous = asynchronous
        self._executor: Optional[ThreadPoolExecutor] = None
        if asynchronous:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="audit")

    def record(
        self,
        username: Optional[str],
        event_type: str,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Record an audit event. Never raises.

        Args:
            username: Subject of the event
            event_type: registration, login_failed, login_success, payment_initiated
            ip_address: Source address of the request
        """
        timestamp = datetime.now(timezone.utc)
        try:
            if self._executor is not None:
                self._executor.submit(self._write, username, event_type, ip_address, timestamp)
            else:
                self._write(username, event_type, ip_address, timestamp)
        except Exception as e:
            logger.error(f"Audit log error: could not queue '{event_type}' for '{username}': {e}")

    def _write(
        self,
        username: Optional[str],
        event_type: str,
        ip_address: Optional[str],
        timestamp: datetime,
    ) -> None:
        try:
            with self.pool.session() as db:
                db.add(
                    AuditLog(
                        timestamp=timestamp,
                        event_type=event_type,
                        username=username,
                        ip_address=ip_address,
                    )
                )
            logger.info(
                f"AUDIT[{event_type}]: User: {username or 'N/A'} | IP: {ip_address or 'N/A'}"
            )
        except Exception as e:
            logger.error(f"Audit log error: {type(e).__name__}: {e}")

    def list_events(self, username: str) -> List[AuditLog]:
        """Return the events recorded for a user, oldest first."""
        with self.pool.session() as db:
            return (
                db.query(AuditLog)
                .filter(AuditLog.username == username)
                .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
                .all()
            )

    def flush(self, timeout: Optional[float] = 10.0) -> None:
        """Wait until every queued write has been attempted."""
        if self._executor is not None:
            self._executor.submit(lambda: None).result(timeout=timeout)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
