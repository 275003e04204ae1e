"""
Supabase-backed rate-limit counter.

Used when several gateway instances share one admission budget per partner.
The increment-and-compare happens in a single SQL statement inside
`rate_limit_hit()` (see sql/rate_limit_hit.sql), so concurrent requests for the
same key can never both observe the same count.

Window timing uses the database clock; the `now` argument accepted by
`increment` is ignored so that instances with skewed clocks agree.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from domain.rate_limit import RateLimitWindow
from repositories.client import get_supabase
from repositories.rows import parse_utc_datetime, rows_or_raise, to_iso_utc

logger = logging.getLogger(__name__)

_COUNTERS_TABLE: str = "rate_limit_counters"
_HIT_FUNCTION: str = "rate_limit_hit"


def _row_to_window(row: Mapping[str, Any]) -> RateLimitWindow:
    return RateLimitWindow(
        key=str(row["key"]),
        count=int(row["hit_count"]),
        reset_at=parse_utc_datetime(row["reset_at_utc"]),
    )


class SupabaseAtomicCounter:
    """AtomicCounter implementation over a Postgres upsert."""

    def increment(self, key: str, now: datetime, window_seconds: int) -> RateLimitWindow:
        response = (
            get_supabase()
            .rpc(_HIT_FUNCTION, {"p_key": key, "p_window_seconds": window_seconds})
            .execute()
        )
        rows = rows_or_raise(response, "increment rate limit counter")
        if isinstance(rows, dict):
            rows = [rows]
        if not rows:
            raise RuntimeError(f"rate_limit_hit returned no row for key {key}")
        return _row_to_window(rows[0])

    def reset(self, key: str) -> None:
        response = get_supabase().table(_COUNTERS_TABLE).delete().eq("key", key).execute()
        rows_or_raise(response, "reset rate limit counter")

    def purge_expired(self, now: datetime) -> int:
        response = (
            get_supabase()
            .table(_COUNTERS_TABLE)
            .delete()
            .lt("reset_at_utc", to_iso_utc(now, name="now"))
            .execute()
        )
        purged = len(rows_or_raise(response, "purge rate limit counters"))
        if purged:
            logger.info("Purged expired rate limit counters", extra={"purged": purged})
        return purged

    def active_keys(self, now: datetime) -> int:
        response = (
            get_supabase()
            .table(_COUNTERS_TABLE)
            .select("key", count="exact")
            .gte("reset_at_utc", to_iso_utc(now, name="now"))
            .execute()
        )
        rows_or_raise(response, "count rate limit counters")
        return int(getattr(response, "count", 0) or 0)


__all__ = ["SupabaseAtomicCounter"]
