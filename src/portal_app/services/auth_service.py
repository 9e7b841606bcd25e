"""
Authentication helpers: password hashing, verification and registration input rules.

Uses bcrypt directly for secure password hashing with automatic salting.
"""

import re
from functools import lru_cache
from typing import Optional

import bcrypt
from loguru import logger

from src import config
from src.portal_app.errors import ValidationError

# Applied with fullmatch; ASCII digits and word characters only
USERNAME_PATTERN = re.compile(r"[A-Za-z0-9]{3,20}", re.ASCII)
EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+", re.ASCII)
PASSWORD_SYMBOLS = "@$!%*?&"
STRONG_PASSWORD_PATTERN = re.compile(
    r"(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}", re.ASCII
)

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt with automatic salt generation.

    Args:
        password: Plain text password to hash
        rounds: Cost factor, defaults to BCRYPT_ROUNDS (10)

    Returns:
        Bcrypt hash string (includes salt and algorithm info)
    """
    if not password:
        raise ValueError("Password cannot be empty")

    salt = bcrypt.gensalt(rounds=rounds or config.BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(_encode(password), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain password against a bcrypt hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Bcrypt hash to verify against

    Returns:
        True if password matches, False otherwise
    """
    try:
        return bcrypt.checkpw(_encode(plain_password), hashed_password.encode("utf-8"))
    except Exception as e:
        logger.warning(f"Password verification failed: {e}")
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return get_password_hash("Dummy!Passw0rd")


def burn_password_check(plain_password: str) -> None:
    """Spend the same time as a real verification when there is no account to check."""
    verify_password(plain_password or "", _dummy_hash())


def is_strong_password(password: str) -> bool:
    """At least 8 chars with one uppercase, one lowercase, one digit and one of @$!%*?&."""
    return bool(STRONG_PASSWORD_PATTERN.fullmatch(password or ""))


def validate_registration(username: str, password: str, email: str) -> None:
    """
    Validate registration input before anything touches storage.

    Raises:
        ValidationError: MissingField, BadUsername, BadEmail or WeakPassword
    """
    if not username or not password or not email:
        raise ValidationError(
            field="all",
            message="Username, password, and email are required",
            kind=ValidationError.MISSING_FIELD,
        )

    if not USERNAME_PATTERN.fullmatch(username):
        raise ValidationError(
            field="username",
            message="Username must be 3-20 alphanumeric characters.",
            kind=ValidationError.BAD_USERNAME,
        )

    if not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError(
            field="email",
            message="Invalid email format.",
            kind=ValidationError.BAD_EMAIL,
        )

    if not is_strong_password(password):
        raise ValidationError(
            field="password",
            message=(
                "Password must be at least 8 characters and include uppercase, "
                "lowercase, number, and special character."
            ),
            kind=ValidationError.WEAK_PASSWORD,
        )
