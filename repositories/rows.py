"""
Row conversion helpers shared by the Supabase repositories.

Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z', and
UUIDs as strings. These helpers normalize both directions so repository
modules only deal with domain types.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.time import require_utc_timestamp


def to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def optional_iso_utc(dt: Optional[datetime], *, name: str) -> Optional[str]:
    return to_iso_utc(dt, name=name) if dt is not None else None


def parse_utc_datetime(value: Any) -> datetime:
    """Parse a Supabase timestamp into a timezone-aware UTC datetime."""

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        # Python's fromisoformat doesn't consistently accept 'Z' across versions.
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    # Naive timestamps from the backend are interpreted as UTC so that the
    # domain model's UTC invariant is satisfied.
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_optional_utc(row: Mapping[str, Any], key: str) -> Optional[datetime]:
    value = row.get(key)
    return parse_utc_datetime(value) if value else None


def parse_optional_uuid(row: Mapping[str, Any], key: str) -> Optional[UUID]:
    value = row.get(key)
    return UUID(str(value)) if value else None


def rows_or_raise(response: Any, action: str) -> List[Mapping[str, Any]]:
    """
    Return response rows, raising if Supabase reported an error.

    Raises:
        RuntimeError: If the response carries an error.
    """

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


__all__ = [
    "to_iso_utc",
    "optional_iso_utc",
    "parse_utc_datetime",
    "parse_optional_utc",
    "parse_optional_uuid",
    "rows_or_raise",
]
