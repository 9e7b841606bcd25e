"""
Error taxonomy for the payment portal.

Every error a caller can observe derives from PortalError and carries a stable
HTTP status code and a short message. Backend details never go into the
message; they are logged where the error is translated.
"""

from datetime import datetime
from typing import Any, Dict, Optional


class PortalError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message}


class ValidationError(PortalError):
    """Client input is malformed. Raised before any storage access."""

    status_code = 400
    default_message = "Invalid input"

    # Kinds used by registration
    MISSING_FIELD = "MissingField"
    BAD_USERNAME = "BadUsername"
    BAD_EMAIL = "BadEmail"
    WEAK_PASSWORD = "WeakPassword"
    INVALID = "Invalid"

    def __init__(self, field: str, message: Optional[str] = None, kind: str = INVALID):
        self.field = field
        self.kind = kind
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "field": self.field, "kind": self.kind}


class Conflict(PortalError):
    status_code = 400
    default_message = "Username already taken"


class InvalidCredentials(PortalError):
    status_code = 400
    default_message = "Invalid credentials"


class AccountLocked(PortalError):
    status_code = 403
    default_message = "Account is temporarily locked. Please try again later."

    def __init__(self, until: datetime, message: Optional[str] = None):
        self.until = until
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "until": self.until.isoformat()}


class RateLimited(PortalError):
    status_code = 429
    default_message = "Too many login attempts, please try again after 15 minutes"


class InvalidTransition(PortalError):
    status_code = 409
    default_message = "Payment status cannot be changed"


class WebhookSignatureError(PortalError):
    status_code = 400
    default_message = "Webhook signature verification failed"


class StoreUnavailable(PortalError):
    status_code = 500
    default_message = "Internal server error"


class InternalError(PortalError):
    status_code = 500
    default_message = "Internal server error"


class SecretUnavailable(Exception):
    """Secret store lookup failed. Never leaves the credential provider."""
