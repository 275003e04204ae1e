"""
Partner repository for managing lead-provider accounts.

Provides lookups by credential hash (the hot path of every submission) and the
few writes the activation workflow needs. The submission counter is only ever
incremented inside the atomic ingestion function, never from here.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from uuid import UUID

from domain.partner import DEFAULT_HOURLY_LIMIT, Partner, PartnerQualification, PartnerStatus
from repositories.client import get_supabase
from repositories.rows import parse_optional_utc, rows_or_raise

_PARTNERS_TABLE: str = "partners"
_PARTNER_SELECT: str = "*, partner_qualifications(*)"


def _row_to_qualification(row: Mapping[str, Any]) -> Optional[PartnerQualification]:
    embedded = row.get("partner_qualifications")
    # PostgREST returns a 1:1 embed as an object, older versions as a list
    if isinstance(embedded, list):
        embedded = embedded[0] if embedded else None
    if not embedded:
        return None

    return PartnerQualification(
        convention_signed_at=parse_optional_utc(embedded, "convention_signed_at_utc"),
        convention_expires_at=parse_optional_utc(embedded, "convention_expires_at_utc"),
        qualification_score=int(embedded.get("qualification_score") or 0),
        is_qualified=bool(embedded.get("is_qualified", False)),
    )


def row_to_partner(row: Mapping[str, Any]) -> Partner:
    return Partner(
        partner_id=UUID(str(row["partner_id"])),
        organization_id=UUID(str(row["organization_id"])),
        company_name=str(row["company_name"]),
        status=PartnerStatus(str(row["status"])),
        api_key_hash=row.get("api_key_hash") or None,
        hourly_limit=int(row.get("hourly_limit") or DEFAULT_HOURLY_LIMIT),
        contract_signed_at=parse_optional_utc(row, "contract_signed_at_utc"),
        contract_expires_at=parse_optional_utc(row, "contract_expires_at_utc"),
        dpa_signed_at=parse_optional_utc(row, "dpa_signed_at_utc"),
        total_leads_submitted=int(row.get("total_leads_submitted") or 0),
        qualification=_row_to_qualification(row),
        created_at=parse_optional_utc(row, "created_at_utc"),
    )


def get_partner_by_key_hash(api_key_hash: str) -> Optional[Partner]:
    """
    Get a partner by the sha256 hash of its API key.

    Returns:
        Partner domain model or None if no partner holds this credential
    """

    response = (
        get_supabase()
        .table(_PARTNERS_TABLE)
        .select(_PARTNER_SELECT)
        .eq("api_key_hash", api_key_hash)
        .limit(1)
        .execute()
    )
    rows = rows_or_raise(response, "fetch partner")
    return row_to_partner(rows[0]) if rows else None


def get_partner_by_id(partner_id: UUID) -> Optional[Partner]:
    response = (
        get_supabase()
        .table(_PARTNERS_TABLE)
        .select(_PARTNER_SELECT)
        .eq("partner_id", str(partner_id))
        .limit(1)
        .execute()
    )
    rows = rows_or_raise(response, "fetch partner")
    return row_to_partner(rows[0]) if rows else None


def update_partner_access(
    partner_id: UUID,
    status: PartnerStatus,
    api_key_hash: Optional[str] = None,
) -> None:
    """
    Update a partner's status and, when given, its credential hash.

    Args:
        partner_id: Partner identifier
        status: New status
        api_key_hash: New sha256 credential hash (None keeps the current one)
    """

    payload: dict[str, Any] = {"status": status.value}
    if api_key_hash is not None:
        payload["api_key_hash"] = api_key_hash

    response = (
        get_supabase()
        .table(_PARTNERS_TABLE)
        .update(payload)
        .eq("partner_id", str(partner_id))
        .execute()
    )
    rows_or_raise(response, "update partner")


__all__ = [
    "get_partner_by_key_hash",
    "get_partner_by_id",
    "update_partner_access",
]
