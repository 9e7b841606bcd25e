"""
Pytest configuration and fixtures for payment portal tests

This file ensures:
1. Clean database state for each test
2. Proper test isolation
3. Consistent test environment
"""
import os
from datetime import datetime, timedelta, timezone

# Cheap bcrypt cost for the suite; must be set before src.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from src.api.dependencies import get_context  # noqa: E402
from src.api.main import app  # noqa: E402
from src.portal_app.context import PortalContext  # noqa: E402
from src.portal_app.models.database import create_tables  # noqa: E402
from src.portal_app.services.audit_service import AuditLogService  # noqa: E402
from src.portal_app.services.connection_pool import ConnectionPoolManager  # noqa: E402
from src.portal_app.services.credential_provider import (  # noqa: E402
    CredentialBundle,
    CredentialProvider,
)
from src.portal_app.services.login_throttle import LoginThrottle  # noqa: E402
from src.portal_app.services.notification_service import NotificationHub  # noqa: E402


class FakeClock:
    """Controllable UTC clock for lockout windows and payment ordering."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def reset_production_db():
    """
    Prevent tests from accidentally using the production database.
    This fixture runs automatically for all tests.
    """
    # Store original environment
    original_env = os.environ.get('DATABASE_URL')
    original_testing = os.environ.get('TESTING')

    # Force test environment (disables rate limiting)
    os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
    os.environ['TESTING'] = '1'

    yield

    # Restore original environment
    if original_env:
        os.environ['DATABASE_URL'] = original_env
    elif 'DATABASE_URL' in os.environ:
        del os.environ['DATABASE_URL']

    if original_testing:
        os.environ['TESTING'] = original_testing
    elif 'TESTING' in os.environ:
        del os.environ['TESTING']


@pytest.fixture(scope="function")
def test_db_engine():
    """
    Create a fresh in-memory SQLite database for each test.
    This ensures complete isolation between tests.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key constraints for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    create_tables(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def clock():
    return FakeClock()


@pytest.fixture(scope="function")
def pool(test_db_engine):
    return ConnectionPoolManager(engine_factory=lambda: test_db_engine)


@pytest.fixture(scope="function")
def portal_context(pool, clock):
    """
    PortalContext wired to the in-memory database.
    Audit writes are inline and the login throttle is off.
    """
    context = PortalContext(
        credentials=CredentialProvider(
            secret_name="",
            fallback=CredentialBundle(user="", password="", host="", database=""),
        ),
        pool=pool,
        audit=AuditLogService(pool, asynchronous=False),
        notifications=NotificationHub(),
        throttle=LoginThrottle(enabled=False),
        immediate_settlement=False,
        clock=clock,
    )
    yield context
    context.audit.shutdown()


@pytest.fixture(scope="function")
def client(portal_context):
    """FastAPI test client bound to the test context."""
    app.dependency_overrides[get_context] = lambda: portal_context
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="session")
def test_password():
    """Return a consistent password that meets the strength rules."""
    return "Str0ng!Pass"
