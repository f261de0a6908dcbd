"""
Per-client token bucket rate limiter for the search endpoint.
"""
import logging
import math
import time
from threading import Lock
from typing import Callable, Dict, Tuple

logger = logging.getLogger(__name__)


class TokenBucketRateLimiter:
    """
    Token bucket keyed by client identity.

    Each client starts with `capacity` tokens; tokens refill continuously at
    capacity / window_s per second. A request spends one token.
    """

    def __init__(self, capacity: int, window_s: float, clock: Callable[[], float] = time.monotonic):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if window_s <= 0:
            raise ValueError("window_s must be positive")
        self.capacity = float(capacity)
        self.window_s = float(window_s)
        self.refill_per_s = capacity / window_s
        self.clock = clock
        self._buckets: Dict[str, Tuple[float, float]] = {}  # client -> (tokens, last_refill)
        self._lock = Lock()
        self._last_sweep = clock()

    def _sweep(self, now: float) -> None:
        """Drop buckets that have refilled to capacity; they behave like missing entries."""
        full = [
            client_id
            for client_id, (tokens, last) in self._buckets.items()
            if tokens + (now - last) * self.refill_per_s >= self.capacity
        ]
        for client_id in full:
            del self._buckets[client_id]
        self._last_sweep = now
        if full:
            logger.debug(f"Evicted {len(full)} idle rate limit buckets")

    @classmethod
    def from_settings(cls, settings) -> "TokenBucketRateLimiter":
        return cls(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_S)

    def acquire(self, client_id: str) -> int:
        """
        Try to spend a token for client_id.

        Returns:
            0 if the request is allowed, otherwise seconds to wait (at least 1)
        """
        with self._lock:
            now = self.clock()
            # An empty bucket refills completely within one window
            if now - self._last_sweep >= self.window_s:
                self._sweep(now)
            tokens, last = self._buckets.get(client_id, (self.capacity, now))
            tokens = min(self.capacity, tokens + (now - last) * self.refill_per_s)

            if tokens >= 1.0:
                self._buckets[client_id] = (tokens - 1.0, now)
                return 0

            self._buckets[client_id] = (tokens, now)
            retry_after = math.ceil((1.0 - tokens) / self.refill_per_s)
            logger.debug(f"Rate limited {client_id}, retry after {retry_after}s")
            return max(1, retry_after)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
