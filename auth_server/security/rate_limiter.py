"""
Rate Limiter - Sliding window request limiting

Module: security.rate_limiter
Date: 2026-10-19
Version: 0.1.1

CHANGELOG:
[2026-10-19 v0.1.0] Initial implementation
  - Per-key sliding window of request timestamps
  - Remaining / reset reporting for X-RateLimit-* headers

[2026-10-19 v0.1.1] Idle client sweep
  - Clients with no hit inside the window are dropped once per window

ARCHITECTURE:
Each key (client address) owns a deque of monotonic timestamps. Entries
older than the window are pruned lazily on every hit, and clients idle for
a whole window are swept at most once per window. A hit over the
maximum is rejected and not recorded.
"""

import logging
from collections import deque
from dataclasses import dataclass
from time import monotonic
from typing import Callable, Deque, Dict

from ..core.constants import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS


@dataclass
class RateLimitDecision:
    """Outcome of one hit"""
    allowed: bool
    limit: int
    remaining: int
    reset_after: float    # seconds until the oldest hit leaves the window

    def headers(self) -> Dict[str, str]:
        """Legacy X-RateLimit-* headers"""
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_after + 0.999)),
        }


class RateLimiter:
    """Sliding window limiter keyed by client address"""

    def __init__(
        self,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        clock: Callable[[], float] = monotonic,
    ):
        self.logger = logging.getLogger("security.rate_limiter")
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self._clock = clock
        self._buckets: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        """Number of clients currently tracked"""
        return len(self._buckets)

    def hit(self, key: str) -> RateLimitDecision:
        """
        Record a request for key

        Args:
            key: Client identifier (usually the remote address)

        Returns:
            RateLimitDecision
        """
        now = self._clock()
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(now)

        bucket = self._buckets.setdefault(key, deque())

        while bucket and now - bucket[0] >= self.window_seconds:
            bucket.popleft()

        if len(bucket) >= self.max_requests:
            self.logger.warning(f"Rate limit exceeded for {key}")
            return RateLimitDecision(
                allowed=False,
                limit=self.max_requests,
                remaining=0,
                reset_after=self.window_seconds - (now - bucket[0]),
            )

        bucket.append(now)
        return RateLimitDecision(
            allowed=True,
            limit=self.max_requests,
            remaining=self.max_requests - len(bucket),
            reset_after=self.window_seconds - (now - bucket[0]),
        )

    def reset(self, key: str = None) -> None:
        """Forget one key, or every key"""
        if key is None:
            self._buckets.clear()
        else:
            self._buckets.pop(key, None)

    def _sweep(self, now: float) -> None:
        """Drop clients whose newest hit has left the window"""
        stale = [
            key for key, bucket in self._buckets.items()
            if not bucket or now - bucket[-1] >= self.window_seconds
        ]
        for key in stale:
            del self._buckets[key]
        self._last_sweep = now
        if stale:
            self.logger.debug(f"Dropped {len(stale)} idle clients")
