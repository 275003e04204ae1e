"""
Audit repository (persistence).

Append-only: this module exposes inserts and reads for the partner audit log,
never updates or deletes.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.audit import AuditAction, AuditEntry
from repositories.client import get_supabase
from repositories.rows import parse_utc_datetime, rows_or_raise, to_iso_utc

_AUDIT_TABLE: str = "partner_audit_log"


def _entry_to_row(entry: AuditEntry) -> dict[str, Any]:
    return {
        "entry_id": str(entry.entry_id),
        "partner_id": str(entry.partner_id),
        "organization_id": str(entry.organization_id),
        "action": entry.action.value,
        "details": entry.details,
        "previous_value": dict(entry.previous_value) if entry.previous_value is not None else None,
        "new_value": dict(entry.new_value) if entry.new_value is not None else None,
        "performed_by": entry.performed_by,
        "created_at_utc": to_iso_utc(entry.created_at, name="created_at"),
    }


def _row_to_entry(row: Mapping[str, Any]) -> AuditEntry:
    return AuditEntry(
        entry_id=UUID(str(row["entry_id"])),
        partner_id=UUID(str(row["partner_id"])),
        organization_id=UUID(str(row["organization_id"])),
        action=AuditAction(str(row["action"])),
        details=row.get("details"),
        previous_value=row.get("previous_value"),
        new_value=row.get("new_value"),
        performed_by=row.get("performed_by"),
        created_at=parse_utc_datetime(row["created_at_utc"]),
    )


def insert_audit_entry(entry: AuditEntry) -> None:
    """
    Append an audit entry.

    Raises:
        RuntimeError: If Supabase returns an error response.
    """

    response = get_supabase().table(_AUDIT_TABLE).insert(_entry_to_row(entry)).execute()
    rows_or_raise(response, "insert audit entry")


def list_audit_entries(
    partner_id: Optional[UUID] = None,
    organization_id: Optional[UUID] = None,
    action: Optional[AuditAction] = None,
    since: Optional[datetime] = None,
    limit: int = 100,
) -> List[AuditEntry]:
    """
    List audit entries, newest first, with optional filters.
    """

    query = get_supabase().table(_AUDIT_TABLE).select("*")
    if partner_id is not None:
        query = query.eq("partner_id", str(partner_id))
    if organization_id is not None:
        query = query.eq("organization_id", str(organization_id))
    if action is not None:
        query = query.eq("action", action.value)
    if since is not None:
        query = query.gte("created_at_utc", to_iso_utc(since, name="since"))

    response = query.order("created_at_utc", desc=True).limit(limit).execute()
    rows = rows_or_raise(response, "list audit entries")
    return [_row_to_entry(row) for row in rows]


__all__ = [
    "insert_audit_entry",
    "list_audit_entries",
]
