"""
Tests for registration, login and account lockout.

Lockout rules:
1. Five consecutive failures lock the account for 15 minutes
2. A locked account rejects even the correct password
3. A successful login resets the counter
4. Failures are counted in the database, not in request memory
"""

from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.portal_app.errors import (
    AccountLocked,
    Conflict,
    InvalidCredentials,
    RateLimited,
    ValidationError,
)
from src.portal_app.models.database import Account, create_tables
from src.portal_app.services.account_service import AuthenticationEngine
from src.portal_app.services.audit_service import (
    EVENT_LOGIN_FAILED,
    EVENT_LOGIN_SUCCESS,
    EVENT_REGISTRATION,
)
from src.portal_app.services.lockout_service import AccountLockoutService
from src.portal_app.services.login_throttle import LoginThrottle
from src.portal_app.utils.jwt_utils import decode_session_token

WRONG_PASSWORD = "Wr0ng!Pass"


@pytest.fixture
def engine(portal_context):
    return AuthenticationEngine(portal_context)


@pytest.fixture
def alice(engine, test_password):
    engine.register("alice", test_password, "alice@example.com", "10.0.0.1")
    return "alice"


def fail_login(engine, username, times):
    for _ in range(times):
        with pytest.raises(InvalidCredentials):
            engine.login(username, WRONG_PASSWORD, "10.0.0.1")


class TestRegistration:
    def test_register_issues_token(self, engine, test_password):
        grant = engine.register("bob", test_password, "bob@example.com", "10.0.0.2")

        claims = decode_session_token(grant.token)
        assert claims["sub"] == "bob"
        assert claims["exp"] - claims["iat"] == 3600

    def test_register_stores_hash_not_password(self, engine, test_password):
        engine.register("bob", test_password, "bob@example.com")
        account = engine.get_account("bob")

        assert account.password_hash != test_password
        assert account.password_hash.startswith("$2b$")
        assert account.failed_attempts == 0
        assert account.lockout_until is None

    def test_duplicate_username_conflicts(self, engine, alice, test_password):
        with pytest.raises(Conflict):
            engine.register("alice", test_password, "other@example.com")

    def test_invalid_input_never_touches_storage(self, engine):
        with pytest.raises(ValidationError) as exc_info:
            engine.register("al", "weak", "alice@example.com")

        assert exc_info.value.kind == ValidationError.BAD_USERNAME
        assert engine.get_account("al") is None

    def test_registration_is_audited(self, engine, portal_context, alice):
        events = portal_context.audit.list_events("alice")
        assert [e.event_type for e in events] == [EVENT_REGISTRATION]
        assert events[0].ip_address == "10.0.0.1"


class TestLogin:
    def test_correct_password_issues_token(self, engine, alice, test_password):
        grant = engine.login("alice", test_password, "10.0.0.1")
        assert decode_session_token(grant.token)["sub"] == "alice"

    def test_unknown_user_is_invalid_credentials(self, engine):
        with pytest.raises(InvalidCredentials):
            engine.login("ghost", WRONG_PASSWORD, "10.0.0.1")

    def test_unknown_user_is_not_audited(self, engine, portal_context):
        with pytest.raises(InvalidCredentials):
            engine.login("ghost", WRONG_PASSWORD, "10.0.0.1")
        assert portal_context.audit.list_events("ghost") == []

    @pytest.mark.parametrize("username,password", [("", "x"), ("alice", ""), (None, None)])
    def test_missing_fields(self, engine, username, password):
        with pytest.raises(ValidationError) as exc_info:
            engine.login(username, password)
        assert exc_info.value.kind == ValidationError.MISSING_FIELD

    def test_failure_and_success_are_audited(self, engine, portal_context, alice, test_password):
        fail_login(engine, "alice", 1)
        engine.login("alice", test_password, "10.0.0.1")

        events = [e.event_type for e in portal_context.audit.list_events("alice")]
        assert events == [EVENT_REGISTRATION, EVENT_LOGIN_FAILED, EVENT_LOGIN_SUCCESS]


class TestLockout:
    def test_four_failures_keep_account_active(self, engine, alice):
        fail_login(engine, "alice", 4)

        account = engine.get_account("alice")
        assert account.failed_attempts == 4
        assert account.lockout_until is None

    def test_fifth_failure_locks_for_fifteen_minutes(self, engine, alice, clock):
        fail_login(engine, "alice", 4)

        with pytest.raises(AccountLocked) as exc_info:
            engine.login("alice", WRONG_PASSWORD, "10.0.0.1")

        assert exc_info.value.until == clock.now + timedelta(minutes=15)
        assert engine.get_account("alice").failed_attempts == 5

    def test_locked_account_rejects_correct_password(self, engine, alice, clock, test_password):
        fail_login(engine, "alice", 4)
        with pytest.raises(AccountLocked):
            engine.login("alice", WRONG_PASSWORD)

        clock.advance(minutes=14, seconds=59)
        with pytest.raises(AccountLocked):
            engine.login("alice", test_password)

        # Rejected while locked, so the counter did not move
        assert engine.get_account("alice").failed_attempts == 5

    def test_login_after_expiry_resets_counter(self, engine, alice, clock, test_password):
        fail_login(engine, "alice", 4)
        with pytest.raises(AccountLocked):
            engine.login("alice", WRONG_PASSWORD)

        clock.advance(minutes=15)
        engine.login("alice", test_password)

        account = engine.get_account("alice")
        assert account.failed_attempts == 0
        assert account.lockout_until is None

    def test_failure_after_expiry_starts_fresh_count(self, engine, alice, clock):
        fail_login(engine, "alice", 4)
        with pytest.raises(AccountLocked):
            engine.login("alice", WRONG_PASSWORD)

        clock.advance(minutes=16)
        fail_login(engine, "alice", 1)

        account = engine.get_account("alice")
        assert account.failed_attempts == 1
        assert account.lockout_until is None

    def test_success_resets_partial_count(self, engine, alice, test_password):
        fail_login(engine, "alice", 4)
        engine.login("alice", test_password)
        fail_login(engine, "alice", 4)

        assert engine.get_account("alice").failed_attempts == 4

    def test_unlock_clears_lockout(self, engine, alice, test_password):
        fail_login(engine, "alice", 4)
        with pytest.raises(AccountLocked):
            engine.login("alice", WRONG_PASSWORD)

        assert engine.unlock("alice", admin_username="ops") is True
        engine.login("alice", test_password)

    def test_unlock_unknown_account(self, engine):
        assert engine.unlock("ghost") is False


class TestThrottle:
    def test_sixth_attempt_from_same_address_is_rate_limited(self, engine, portal_context, alice):
        portal_context.throttle = LoginThrottle(rate="5 per 15 minutes", enabled=True)

        fail_login(engine, "alice", 4)
        with pytest.raises(AccountLocked):
            engine.login("alice", WRONG_PASSWORD, "10.0.0.1")
        with pytest.raises(RateLimited):
            engine.login("alice", WRONG_PASSWORD, "10.0.0.1")

    def test_throttle_is_per_address(self, engine, portal_context, alice, test_password):
        portal_context.throttle = LoginThrottle(rate="1 per 15 minutes", enabled=True)

        engine.login("alice", test_password, "10.0.0.1")
        with pytest.raises(RateLimited):
            engine.login("alice", test_password, "10.0.0.1")
        engine.login("alice", test_password, "10.0.0.2")

    def test_rate_limited_before_lookup(self, engine, portal_context):
        portal_context.throttle = LoginThrottle(rate="1 per 15 minutes", enabled=True)

        with pytest.raises(InvalidCredentials):
            engine.login("ghost", WRONG_PASSWORD, "10.0.0.9")
        with pytest.raises(RateLimited):
            engine.login("ghost", WRONG_PASSWORD, "10.0.0.9")


class TestAtomicIncrement:
    def test_increment_uses_stored_count(self, tmp_path, clock):
        """A session holding a stale row still increments the stored value."""
        engine = create_engine(f"sqlite:///{tmp_path / 'lockout.db'}")
        create_tables(engine)
        Session = sessionmaker(bind=engine, expire_on_commit=False)

        with Session() as setup:
            setup.add(Account(username="alice", email="a@example.com", password_hash="h"))
            setup.commit()

        stale = Session()
        stale_account = stale.query(Account).filter(Account.username == "alice").one()
        assert stale_account.failed_attempts == 0
        stale.commit()

        with Session() as other:
            AccountLockoutService.record_failed_attempt(other, "alice", clock.now)
            other.commit()

        _, _, count = AccountLockoutService.record_failed_attempt(stale, "alice", clock.now)
        stale.commit()
        stale.close()

        assert count == 2
        engine.dispose()

    def test_update_skips_locked_row(self, tmp_path, clock):
        engine = create_engine(f"sqlite:///{tmp_path / 'lockout.db'}")
        create_tables(engine)
        Session = sessionmaker(bind=engine, expire_on_commit=False)
        locked_until = clock.now + timedelta(minutes=10)

        with Session() as db:
            db.add(
                Account(
                    username="alice",
                    email="a@example.com",
                    password_hash="h",
                    failed_attempts=5,
                    lockout_until=locked_until,
                )
            )
            db.commit()

        with Session() as db:
            is_locked, until, count = AccountLockoutService.record_failed_attempt(
                db, "alice", clock.now
            )
            db.commit()

        assert is_locked is True
        assert until == locked_until
        assert count == 5
        engine.dispose()
