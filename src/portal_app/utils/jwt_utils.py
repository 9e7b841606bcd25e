"""
JWT session token utilities.

Session tokens are HS256-signed, carry the username as `sub` and expire after
a fixed hour. There is no refresh token and no server-side revocation.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from loguru import logger

from src import config

# JWT Configuration
# Load from env.properties via config module (environment variables take precedence)
JWT_SECRET_KEY = config.get("JWT_SECRET_KEY", "INSECURE_DEFAULT_CHANGE_IN_PRODUCTION")
JWT_ALGORITHM = "HS256"
SESSION_TOKEN_EXPIRE_MINUTES = config.SESSION_TOKEN_EXPIRE_MINUTES

# Enforce secure secret in production
if config.ENVIRONMENT == "production":
    if JWT_SECRET_KEY == "INSECURE_DEFAULT_CHANGE_IN_PRODUCTION":
        raise ValueError(
            "CRITICAL SECURITY ERROR: JWT_SECRET_KEY must be set to a secure value in production. "
            "Generate one with: python scripts/generate_jwt_secret.py"
        )


def create_session_token(
    username: str, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed session token for a user.

    Args:
        username: Subject of the token
        expires_delta: Optional custom lifetime. Defaults to SESSION_TOKEN_EXPIRE_MINUTES.

    Returns:
        Encoded JWT token as a string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=SESSION_TOKEN_EXPIRE_MINUTES))

    payload = {"sub": username, "iat": now, "exp": expire}
    encoded_jwt = jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)

    logger.debug(f"Created session token for subject: {username}, expires: {expire}")
    return encoded_jwt


def decode_session_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a session token.

    Args:
        token: The JWT token string to decode

    Returns:
        Dictionary of claims if token is valid, None if invalid or expired
    """
    try:
        return jwt.decode(
            token,
            JWT_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "iat", "sub"]},
        )

    except jwt.ExpiredSignatureError:
        logger.warning("Token has expired")
        return None

    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid token: {e}")
        return None


def generate_secret_key() -> str:
    """
    Generate a secure random secret key for JWT signing.

    Returns:
        A secure random 256-bit (32-byte) key encoded as hex string
    """
    return secrets.token_hex(32)


# Warning on module import if using insecure default
if JWT_SECRET_KEY == "INSECURE_DEFAULT_CHANGE_IN_PRODUCTION":
    logger.warning(
        "Using default JWT_SECRET_KEY! This is INSECURE. "
        "Set JWT_SECRET_KEY in the environment or env.properties."
    )
