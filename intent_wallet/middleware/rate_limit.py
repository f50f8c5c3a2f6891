"""
Self-imposed rate limiting for upstream-proxy endpoints.

The tweet feed proxies a heavily rate-limited upstream API, so calls are
spaced by a fixed minimum interval instead of a per-client window.
"""

import math
import time
from typing import Callable, Optional


class RateLimitExceeded(Exception):
    """Rate limit has been exceeded."""

    def __init__(self, retry_after: float, message: Optional[str] = None):
        self.retry_after = retry_after
        self.retry_after_seconds = max(1, math.ceil(retry_after))
        super().__init__(
            message or f"Too many requests. Please wait {self.retry_after_seconds} seconds."
        )


class MinIntervalLimiter:
    """Allow at most one call per ``min_interval_s`` seconds."""

    def __init__(self, min_interval_s: float, clock: Callable[[], float] = time.monotonic):
        self.min_interval_s = min_interval_s
        self._clock = clock
        self._last_call: Optional[float] = None

    def check(self) -> None:
        """Record a call, or raise RateLimitExceeded with the remaining wait."""
        now = self._clock()
        if self._last_call is not None:
            elapsed = now - self._last_call
            if elapsed < self.min_interval_s:
                raise RateLimitExceeded(self.min_interval_s - elapsed)
        self._last_call = now

    def reset(self) -> None:
        self._last_call = None
