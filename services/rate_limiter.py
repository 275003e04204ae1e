"""
Per-partner admission control.

Fixed window with reset: the first request after a window expires starts a new
window at that request's timestamp. The window is keyed by partner identity,
never by network address, so one partner behind several egress IPs shares one
budget.

The increment-and-compare is delegated to an AtomicCounter:
- InProcessCounter: lock-guarded dict, correct for a single gateway instance.
- SupabaseAtomicCounter (repositories/rate_limit_repository.py): one Postgres
  upsert statement, correct across instances.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Protocol

from domain.rate_limit import RateLimitWindow
from domain.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 3600
# In-process entries are purged at most this often.
_PURGE_INTERVAL = timedelta(minutes=5)


class AtomicCounter(Protocol):
    def increment(self, key: str, now: datetime, window_seconds: int) -> RateLimitWindow:
        """Increment the key's count, restarting the window if it expired."""
        ...

    def reset(self, key: str) -> None: ...

    def purge_expired(self, now: datetime) -> int: ...

    def active_keys(self, now: datetime) -> int: ...


class InProcessCounter:
    """AtomicCounter for single-instance deployments."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._windows: Dict[str, RateLimitWindow] = {}

    def increment(self, key: str, now: datetime, window_seconds: int) -> RateLimitWindow:
        with self._lock:
            current = self._windows.get(key)
            if current is None or current.expired(now):
                updated = RateLimitWindow(key=key, count=1, reset_at=now + timedelta(seconds=window_seconds))
            else:
                updated = RateLimitWindow(key=key, count=current.count + 1, reset_at=current.reset_at)
            self._windows[key] = updated
            return updated

    def reset(self, key: str) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, window in self._windows.items() if window.expired(now)]
            for key in expired:
                del self._windows[key]
        return len(expired)

    def active_keys(self, now: datetime) -> int:
        with self._lock:
            return sum(1 for window in self._windows.values() if not window.expired(now))


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime
    retry_after_seconds: Optional[int] = None  # set only when rejected


@dataclass(frozen=True, slots=True)
class RateLimiterStats:
    active_keys: int
    window_seconds: int


class RateLimiter:
    """
    Admission control over an injectable counter and clock.

    Never raises for an exceeded limit: callers inspect `allowed`.
    """

    def __init__(
        self,
        counter: Optional[AtomicCounter] = None,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        self.counter = counter if counter is not None else InProcessCounter()
        self.window_seconds = window_seconds
        self._clock = clock
        self._next_purge_at: Optional[datetime] = None

    def admit(self, key: str, limit: int) -> RateLimitDecision:
        now = self._clock()
        self._maybe_purge(now)

        window = self.counter.increment(key, now, self.window_seconds)
        allowed = window.count <= limit
        remaining = max(0, limit - window.count)

        if allowed:
            return RateLimitDecision(allowed=True, limit=limit, remaining=remaining, reset_at=window.reset_at)

        retry_after = max(1, math.ceil((window.reset_at - now).total_seconds()))
        logger.warning(
            "Rate limit exceeded",
            extra={"rate_limit_key": key, "limit": limit, "count": window.count, "retry_after_seconds": retry_after},
        )
        return RateLimitDecision(
            allowed=False,
            limit=limit,
            remaining=0,
            reset_at=window.reset_at,
            retry_after_seconds=retry_after,
        )

    def reset(self, key: str) -> None:
        """Forget a key's window, e.g. after a credential is re-issued."""
        self.counter.reset(key)

    def stats(self) -> RateLimiterStats:
        return RateLimiterStats(
            active_keys=self.counter.active_keys(self._clock()),
            window_seconds=self.window_seconds,
        )

    def purge_expired(self) -> int:
        return self.counter.purge_expired(self._clock())

    def _maybe_purge(self, now: datetime) -> None:
        # Only the in-process counter grows without bound; the SQL table is
        # purged by its own scheduled job.
        if not isinstance(self.counter, InProcessCounter):
            return
        if self._next_purge_at is not None and now < self._next_purge_at:
            return
        self._next_purge_at = now + _PURGE_INTERVAL
        self.counter.purge_expired(now)


def rate_limit_headers(decision: RateLimitDecision) -> Dict[str, str]:
    """HTTP headers describing a decision; Retry-After only on rejection."""

    headers = {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.reset_at.timestamp())),
    }
    if decision.retry_after_seconds is not None:
        headers["Retry-After"] = str(decision.retry_after_seconds)
    return headers
