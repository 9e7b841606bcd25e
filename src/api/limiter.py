import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address


def is_testing() -> bool:
    return os.getenv("TESTING", "0") == "1" or os.getenv("ENVIRONMENT") == "testing"


def exempt_when_testing() -> bool:
    return is_testing()


def client_address(request: Request) -> str:
    """Source address used for throttling and audit records."""
    return get_remote_address(request) or "unknown"


limiter = Limiter(key_func=get_remote_address)
