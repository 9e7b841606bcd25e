"""
Per-source-address throttle for login attempts.

Uses the moving window strategy from `limits` (the engine behind slowapi) so
the window rolls instead of resetting on a fixed boundary.
"""

from typing import Optional

from limits import parse
from limits.storage import MemoryStorage, Storage
from limits.strategies import MovingWindowRateLimiter
from loguru import logger

from src import config


class LoginThrottle:
    """Counts login attempts per source address."""

    NAMESPACE = "login"

    def __init__(
        self,
        rate: Optional[str] = None,
        enabled: bool = True,
        storage: Optional[Storage] = None,
    ):
        self.rate = parse(rate or config.LOGIN_RATE_LIMIT)
        self.enabled = enabled
        self._storage = storage or MemoryStorage()
        self._limiter = MovingWindowRateLimiter(self._storage)

    def hit(self, source_address: Optional[str]) -> bool:
        """
        Count an attempt.

        Returns:
            False when the address has used up its window
        """
        if not self.enabled:
            return True
        key = source_address or "unknown"
        allowed = self._limiter.hit(self.rate, self.NAMESPACE, key)
        if not allowed:
            logger.warning(f"Login rate limit exceeded for {key} ({self.rate})")
        return allowed

    def reset(self) -> None:
        self._storage.reset()
