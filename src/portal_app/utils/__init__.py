"""
Payment Portal Utilities Package

Contains utility modules for the payment portal.
"""

from .jwt_utils import (
    JWT_ALGORITHM,
    JWT_SECRET_KEY,
    SESSION_TOKEN_EXPIRE_MINUTES,
    create_session_token,
    decode_session_token,
    generate_secret_key,
)

__all__ = [
    "create_session_token",
    "decode_session_token",
    "generate_secret_key",
    "JWT_SECRET_KEY",
    "JWT_ALGORITHM",
    "SESSION_TOKEN_EXPIRE_MINUTES",
]
