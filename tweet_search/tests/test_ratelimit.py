"""
Tests for the token bucket rate limiter.
"""
import pytest
from unittest.mock import Mock

from tweet_search.ratelimit import TokenBucketRateLimiter


def test_allows_up_to_capacity(clock):
    limiter = TokenBucketRateLimiter(capacity=3, window_s=60, clock=clock)

    assert [limiter.acquire("1.2.3.4") for _ in range(3)] == [0, 0, 0]
    assert limiter.acquire("1.2.3.4") > 0


def test_retry_after_and_refill(clock):
    """Capacity 2 over 2 seconds refills one token per second."""
    limiter = TokenBucketRateLimiter(capacity=2, window_s=2, clock=clock)
    limiter.acquire("c")
    limiter.acquire("c")

    assert limiter.acquire("c") == 1

    clock.advance(1.0)
    assert limiter.acquire("c") == 0
    assert limiter.acquire("c") == 1


def test_clients_are_independent(clock):
    limiter = TokenBucketRateLimiter(capacity=1, window_s=60, clock=clock)

    assert limiter.acquire("a") == 0
    assert limiter.acquire("a") > 0
    assert limiter.acquire("b") == 0


def test_refill_caps_at_capacity(clock):
    limiter = TokenBucketRateLimiter(capacity=2, window_s=2, clock=clock)
    clock.advance(3600)

    assert [limiter.acquire("c") for _ in range(3)] == [0, 0, 1]


def test_idle_buckets_are_evicted(clock):
    """Spoofed client ids do not accumulate once their buckets refill."""
    limiter = TokenBucketRateLimiter(capacity=2, window_s=2, clock=clock)
    for n in range(10000):
        limiter.acquire(f"10.0.{n // 256}.{n % 256}")

    clock.advance(3600)
    limiter.acquire("fresh")

    assert len(limiter._buckets) <= 1


def test_sweep_keeps_limited_clients(clock):
    limiter = TokenBucketRateLimiter(capacity=2, window_s=2, clock=clock)
    clock.advance(1.9)
    limiter.acquire("a")
    limiter.acquire("a")

    clock.advance(0.2)
    assert limiter.acquire("b") == 0

    assert "a" in limiter._buckets
    assert limiter.acquire("a") > 0


def test_reset(clock):
    limiter = TokenBucketRateLimiter(capacity=1, window_s=60, clock=clock)
    limiter.acquire("c")
    limiter.reset()

    assert limiter.acquire("c") == 0


def test_invalid_arguments():
    with pytest.raises(ValueError):
        TokenBucketRateLimiter(capacity=0, window_s=60)
    with pytest.raises(ValueError):
        TokenBucketRateLimiter(capacity=1, window_s=0)


def test_from_settings():
    settings = Mock()
    settings.RATE_LIMIT_MAX_REQUESTS = 30
    settings.RATE_LIMIT_WINDOW_S = 60.0

    limiter = TokenBucketRateLimiter.from_settings(settings)

    assert limiter.capacity == 30
    assert limiter.refill_per_s == pytest.approx(0.5)
