"""
Account authentication engine: registration, login and lockout.

Login order matters: the source address throttle runs before any lookup, and
the lockout check runs before the password comparison.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from src.portal_app.context import PortalContext
from src.portal_app.errors import (
    AccountLocked,
    Conflict,
    InvalidCredentials,
    RateLimited,
    ValidationError,
)
from src.portal_app.models.database import Account
from src.portal_app.services.audit_service import (
    EVENT_LOGIN_FAILED,
    EVENT_LOGIN_SUCCESS,
    EVENT_REGISTRATION,
)
from src.portal_app.services.auth_service import (
    burn_password_check,
    get_password_hash,
    validate_registration,
    verify_password,
)
from src.portal_app.services.lockout_service import lockout_service
from src.portal_app.utils.jwt_utils import create_session_token


@dataclass(frozen=True)
class SessionGrant:
    username: str
    token: str


class AuthenticationEngine:
    """Registers accounts and authenticates logins."""

    def __init__(self, context: PortalContext):
        self.context = context

    def register(
        self,
        username: str,
        password: str,
        email: str,
        source_address: Optional[str] = None,
    ) -> SessionGrant:
        """
        Create an account and issue a session token.

        Raises:
            ValidationError: input rejected before storage is touched
            Conflict: username already exists
        """
        validate_registration(username, password, email)

        password_hash = get_password_hash(password)
        with self.context.pool.session() as db:
            existing = db.query(Account).filter(Account.username == username).first()
            if existing:
                raise Conflict()

            db.add(
                Account(
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    failed_attempts=0,
                    lockout_until=None,
                    created_at=self.context.clock(),
                )
            )
            try:
                db.flush()
            except IntegrityError:
                # Lost a race with a concurrent registration of the same name
                raise Conflict()

        logger.info(f"Account registered: '{username}'")
        self.context.audit.record(username, EVENT_REGISTRATION, source_address)
        return SessionGrant(username=username, token=create_session_token(username))

    def login(
        self,
        username: str,
        password: str,
        source_address: Optional[str] = None,
    ) -> SessionGrant:
        """
        Authenticate a user and issue a session token.

        Raises:
            RateLimited: source address exhausted its window
            InvalidCredentials: unknown user or wrong password
            AccountLocked: account is inside its lockout window
        """
        if not self.context.throttle.hit(source_address):
            raise RateLimited()

        if not username or not password:
            raise ValidationError(
                field="all",
                message="Username and password are required",
                kind=ValidationError.MISSING_FIELD,
            )

        now = self.context.clock()
        locked_until: Optional[datetime] = None
        attempt_count = 0

        with self.context.pool.session() as db:
            account = db.query(Account).filter(Account.username == username).first()
            if account is None:
                burn_password_check(password)
                logger.info(f"Login failed: unknown user '{username}' from {source_address}")
                raise InvalidCredentials()

            is_locked, until = lockout_service.is_locked(account, now)
            if is_locked:
                logger.warning(f"Login rejected for locked account '{username}' until {until}")
                raise AccountLocked(until)

            matched = verify_password(password, account.password_hash)
            if matched:
                lockout_service.reset_attempts(db, username)
            else:
                is_locked, locked_until, attempt_count = lockout_service.record_failed_attempt(
                    db, username, now
                )

        if not matched:
            self.context.audit.record(username, EVENT_LOGIN_FAILED, source_address)
            if locked_until is not None:
                raise AccountLocked(locked_until)
            logger.info(
                f"Login failed for '{username}' "
                f"(attempt {attempt_count}/{lockout_service.MAX_ATTEMPTS})"
            )
            raise InvalidCredentials()

        self.context.audit.record(username, EVENT_LOGIN_SUCCESS, source_address)
        logger.info(f"Session token issued for '{username}'")
        return SessionGrant(username=username, token=create_session_token(username))

    def unlock(self, username: str, admin_username: str = "system") -> bool:
        """Clear the failed-attempt counter and lockout for an account."""
        with self.context.pool.session() as db:
            return lockout_service.unlock_account(db, username, admin_username)

    def get_account(self, username: str) -> Optional[Account]:
        with self.context.pool.session() as db:
            return db.query(Account).filter(Account.username == username).first()
