"""Per-client request limiting for the operator API"""

import logging
import math
import time

from fastapi import HTTPException
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

RATE_LIMIT_DETAIL = "Too many requests, please try again later."


class ApiRateLimiter:
    """Fixed-window limit keyed on the client address.

    ``limit`` uses the ``limits`` notation, e.g. ``"100 per 15 minutes"``.
    """

    def __init__(self, limit: str, *, enabled: bool = True, namespace: str = "api") -> None:
        self.item = parse(limit)
        self.enabled = enabled
        self.namespace = namespace
        self._strategy = FixedWindowRateLimiter(MemoryStorage())

    def check(self, client_key: str) -> None:
        """Count one request for *client_key*; raise 429 once the window is spent."""
        if not self.enabled:
            return
        if self._strategy.hit(self.item, self.namespace, client_key):
            return

        stats = self._strategy.get_window_stats(self.item, self.namespace, client_key)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        logger.warning(f"Rate limit exceeded for {client_key} ({self.item})")
        raise HTTPException(
            status_code=429,
            detail=RATE_LIMIT_DETAIL,
            headers={"Retry-After": str(retry_after)},
        )

    def reset(self) -> None:
        self._strategy.reset()
