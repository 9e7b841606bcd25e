"""
Tests for audit logging.

Audit writes are best effort and must never fail the operation that asked
for them.
"""

from unittest.mock import Mock

from src.portal_app.errors import StoreUnavailable
from src.portal_app.models.audit_log import AuditLog
from src.portal_app.services.audit_service import (
    EVENT_LOGIN_FAILED,
    EVENT_LOGIN_SUCCESS,
    EVENT_REGISTRATION,
    AuditLogService,
)


class TestSynchronous:
    def test_record_writes_row(self, pool):
        audit = AuditLogService(pool, asynchronous=False)

        audit.record("alice", EVENT_REGISTRATION, "10.0.0.1")

        with pool.session() as db:
            row = db.query(AuditLog).one()
        assert row.username == "alice"
        assert row.event_type == EVENT_REGISTRATION
        assert row.ip_address == "10.0.0.1"
        assert row.timestamp is not None

    def test_missing_username_and_address_are_allowed(self, pool):
        audit = AuditLogService(pool, asynchronous=False)
        audit.record(None, EVENT_LOGIN_FAILED)

        with pool.session() as db:
            row = db.query(AuditLog).one()
        assert row.username is None
        assert row.ip_address is None

    def test_store_failure_is_swallowed(self):
        broken_pool = Mock()
        broken_pool.session.side_effect = StoreUnavailable()
        audit = AuditLogService(broken_pool, asynchronous=False)

        audit.record("alice", EVENT_LOGIN_SUCCESS, "10.0.0.1")

        broken_pool.session.assert_called_once()


class TestAsynchronous:
    def test_events_keep_recorded_order(self, pool):
        audit = AuditLogService(pool, asynchronous=True)
        try:
            for event_type in (EVENT_REGISTRATION, EVENT_LOGIN_FAILED, EVENT_LOGIN_SUCCESS):
                audit.record("alice", event_type, "10.0.0.1")
            audit.flush()

            events = audit.list_events("alice")
        finally:
            audit.shutdown()

        assert [e.event_type for e in events] == [
            EVENT_REGISTRATION,
            EVENT_LOGIN_FAILED,
            EVENT_LOGIN_SUCCESS,
        ]

    def test_background_failure_does_not_reach_caller(self):
        broken_pool = Mock()
        broken_pool.session.side_effect = RuntimeError("disk full")
        audit = AuditLogService(broken_pool, asynchronous=True)
        try:
            audit.record("alice", EVENT_REGISTRATION)
            audit.flush()
        finally:
            audit.shutdown()

        broken_pool.session.assert_called_once()

    def test_record_after_shutdown_is_written_inline(self, pool):
        audit = AuditLogService(pool, asynchronous=True)
        audit.shutdown()

        audit.record("alice", EVENT_REGISTRATION)

        assert len(audit.list_events("alice")) == 1
