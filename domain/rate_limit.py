"""
Domain: Rate-limit window state.

Ephemeral per-key counter used by admission control. Never persisted as a
business record; the Supabase backend keeps it in an unlogged helper table.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .time import require_utc_timestamp


@dataclass(frozen=True, slots=True)
class RateLimitWindow:
    key: str
    count: int
    reset_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("reset_at", self.reset_at)
        if self.count < 0:
            raise ValueError("count must be >= 0")

    def expired(self, as_of: datetime) -> bool:
        return as_of >= self.reset_at
