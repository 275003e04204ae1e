"""
Tests for `services/rate_limiter.py`.

Covers:
- The (N+1)-th request inside a window is rejected with a retry-after.
- The first request after the window expires is admitted and restarts the window.
- Keys are independent.
- Concurrent admits never over-admit.
"""

from __future__ import annotations

import threading
from datetime import timedelta

from conftest import FakeClock
from services.rate_limiter import InProcessCounter, RateLimiter, rate_limit_headers


def test_limit_plus_one_is_rejected_then_next_window_admits() -> None:
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=3600, clock=clock)

    decisions = [limiter.admit("partner:a", 3) for _ in range(3)]
    assert all(d.allowed for d in decisions)
    assert [d.remaining for d in decisions] == [2, 1, 0]

    clock.advance(minutes=30)
    rejected = limiter.admit("partner:a", 3)
    assert not rejected.allowed
    assert rejected.remaining == 0
    assert rejected.retry_after_seconds == 1800

    clock.advance(minutes=30)
    admitted = limiter.admit("partner:a", 3)
    assert admitted.allowed
    assert admitted.remaining == 2
    # New window starts at the first request after expiry
    assert admitted.reset_at == clock.now + timedelta(hours=1)


def test_retry_after_is_at_least_one_second() -> None:
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=10, clock=clock)
    limiter.admit("k", 1)

    clock.advance(seconds=9, milliseconds=900)
    rejected = limiter.admit("k", 1)
    assert not rejected.allowed
    assert rejected.retry_after_seconds == 1


def test_keys_are_independent() -> None:
    limiter = RateLimiter(clock=FakeClock())
    assert limiter.admit("partner:a", 1).allowed
    assert not limiter.admit("partner:a", 1).allowed
    assert limiter.admit("partner:b", 1).allowed


def test_reset_clears_window() -> None:
    limiter = RateLimiter(clock=FakeClock())
    limiter.admit("partner:a", 1)
    limiter.reset("partner:a")
    assert limiter.admit("partner:a", 1).allowed


def test_stats_and_purge() -> None:
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=60, clock=clock)
    limiter.admit("a", 10)
    limiter.admit("b", 10)
    assert limiter.stats().active_keys == 2

    clock.advance(seconds=61)
    assert limiter.stats().active_keys == 0
    assert limiter.purge_expired() == 2


def test_concurrent_admits_never_over_admit() -> None:
    limiter = RateLimiter(InProcessCounter(), clock=FakeClock())
    allowed = []
    lock = threading.Lock()

    def worker() -> None:
        for _ in range(25):
            decision = limiter.admit("partner:hot", 50)
            if decision.allowed:
                with lock:
                    allowed.append(decision)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(allowed) == 50


def test_headers() -> None:
    clock = FakeClock()
    limiter = RateLimiter(window_seconds=60, clock=clock)
    ok = limiter.admit("k", 1)
    headers = rate_limit_headers(ok)
    assert headers["X-RateLimit-Limit"] == "1"
    assert headers["X-RateLimit-Remaining"] == "0"
    assert headers["X-RateLimit-Reset"] == str(int((clock.now + timedelta(seconds=60)).timestamp()))
    assert "Retry-After" not in headers

    rejected = limiter.admit("k", 1)
    assert rate_limit_headers(rejected)["Retry-After"] == "60"
