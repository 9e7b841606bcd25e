"""
Account lockout service for failed login protection.

Implements 5-attempt lockout with 15-minute cooldown. The counter and the
lockout expiry live on the account row and are changed with single UPDATE
statements so concurrent failures cannot under-count.
"""

from datetime import datetime, timedelta
from typing import Optional, Tuple

from loguru import logger
from sqlalchemy import and_, case, literal, null, or_, update
from sqlalchemy.orm import Session

from src.portal_app.models.database import Account, as_utc


class AccountLockoutService:
    """Service for managing account lockout after failed logins."""

    # Configuration
    MAX_ATTEMPTS = 5
    LOCKOUT_DURATION_MINUTES = 15

    @staticmethod
    def is_locked(account: Account, now: datetime) -> Tuple[bool, Optional[datetime]]:
        """
        Check if account is currently locked.

        Returns:
            Tuple of (is_locked, locked_until)
        """
        locked_until = as_utc(account.lockout_until)
        if locked_until is not None and now < locked_until:
            return True, locked_until
        return False, None

    @staticmethod
    def record_failed_attempt(
        db: Session, username: str, now: datetime
    ) -> Tuple[bool, Optional[datetime], int]:
        """
        Record a failed login attempt.

        The increment only applies while the account is unlocked; a lock that
        expired starts a fresh count.

        Args:
            db: Database session
            username: Username that failed login
            now: Current time (UTC)

        Returns:
            Tuple of (is_locked, locked_until, attempt_count)
        """
        lockout_until = now + timedelta(
            minutes=AccountLockoutService.LOCKOUT_DURATION_MINUTES
        )
        lock_expired = and_(
            Account.lockout_until.isnot(None), Account.lockout_until <= now
        )
        new_count = case((lock_expired, 1), else_=Account.failed_attempts + 1)

        result = db.execute(
            update(Account)
            .where(Account.username == username)
            .where(or_(Account.lockout_until.is_(None), Account.lockout_until <= now))
            .values(
                failed_attempts=new_count,
                lockout_until=case(
                    (
                        new_count >= AccountLockoutService.MAX_ATTEMPTS,
                        literal(lockout_until, Account.lockout_until.type),
                    ),
                    else_=null(),
                ),
            )
            .execution_options(synchronize_session=False)
        )

        account = (
            db.query(Account)
            .filter(Account.username == username)
            .populate_existing()
            .one()
        )

        if result.rowcount == 0:
            # Another request locked the account between our read and this update
            is_locked, locked_until = AccountLockoutService.is_locked(account, now)
            logger.warning(
                f"Failed login attempt for locked account '{username}'. Locked until {locked_until}"
            )
            return is_locked, locked_until, account.failed_attempts

        is_locked, locked_until = AccountLockoutService.is_locked(account, now)
        if is_locked:
            logger.warning(
                f"Account '{username}' locked after {account.failed_attempts} failed attempts. "
                f"Locked until {locked_until}"
            )
        else:
            logger.info(
                f"Recorded failed login attempt {account.failed_attempts}/"
                f"{AccountLockoutService.MAX_ATTEMPTS} for '{username}'"
            )
        return is_locked, locked_until, account.failed_attempts

    @staticmethod
    def reset_attempts(db: Session, username: str):
        """
        Reset failed attempt count after successful login.

        Args:
            db: Database session
            username: Username to reset
        """
        db.execute(
            update(Account)
            .where(Account.username == username)
            .values(failed_attempts=0, lockout_until=None)
            .execution_options(synchronize_session=False)
        )

        logger.info(
            f"Reset failed login attempts for '{username}' after successful login"
        )

    @staticmethod
    def unlock_account(db: Session, username: str, admin_username: str) -> bool:
        """
        Manually unlock an account (admin action).

        Args:
            db: Database session
            username: Username to unlock
            admin_username: Admin performing unlock

        Returns:
            True if the account existed
        """
        result = db.execute(
            update(Account)
            .where(Account.username == username)
            .values(failed_attempts=0, lockout_until=None)
            .execution_options(synchronize_session=False)
        )

        logger.info(f"Admin '{admin_username}' manually unlocked account '{username}'")

        return result.rowcount > 0


# Global service instance
lockout_service = AccountLockoutService()
