"""
Lead repository (persistence).

This module provides *only* persistence operations for the Lead and
ConsentRecord entities. No business rules (scoring, routing, ownership) belong
here.

The lead row, its consent row and the partner's submission counter are written
by a single Postgres function (`ingest_partner_lead`, see sql/) so that a lead
can never exist without its consent evidence.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.lead import ConsentRecord, Lead, LeadStatus
from repositories.client import get_supabase
from repositories.rows import (
    optional_iso_utc,
    parse_optional_utc,
    parse_optional_uuid,
    parse_utc_datetime,
    rows_or_raise,
    to_iso_utc,
)

# Supabase table names.
# Keep these aligned with your database schema.
_LEADS_TABLE: str = "leads"
_CONSENTS_TABLE: str = "lead_consents"
_INGEST_FUNCTION: str = "ingest_partner_lead"


def lead_to_row(lead: Lead) -> dict[str, Any]:
    """Convert a domain Lead to a Supabase row payload."""

    return {
        # Core identifiers
        "lead_id": str(lead.lead_id),
        "organization_id": str(lead.organization_id),
        "partner_id": str(lead.partner_id) if lead.partner_id else None,
        "site_id": str(lead.site_id) if lead.site_id else None,
        "status": lead.status.value,
        "score": lead.score,
        "created_at_utc": to_iso_utc(lead.created_at, name="created_at"),

        # Identity
        "first_name": lead.first_name,
        "last_name": lead.last_name,
        "email": lead.email,
        "phone": lead.phone,

        # Address
        "street_address": lead.street_address,
        "postal_code": lead.postal_code,
        "city": lead.city,

        # Request
        "desired_program": lead.desired_program,
        "message": lead.message,
        "response_date_utc": optional_iso_utc(lead.response_date, name="response_date"),

        # Provenance
        "source": lead.source,
        "source_ref": lead.source_ref,
        "source_url": lead.source_url,
    }


def consent_to_row(consent: ConsentRecord) -> dict[str, Any]:
    return {
        "lead_id": str(consent.lead_id),
        "consent_given": consent.consent_given,
        "consent_text": consent.consent_text,
        "legal_basis": consent.legal_basis,
        "collection_method": consent.collection_method,
        "collected_at_utc": to_iso_utc(consent.collected_at, name="collected_at"),
        "recorded_at_utc": to_iso_utc(consent.recorded_at, name="recorded_at"),
        "ip_address": consent.ip_address,
        "user_agent": consent.user_agent,
    }


def row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a Supabase row into a domain Lead."""

    score = row.get("score")
    return Lead(
        lead_id=UUID(str(row["lead_id"])),
        organization_id=UUID(str(row["organization_id"])),
        postal_code=str(row["postal_code"]),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        partner_id=parse_optional_uuid(row, "partner_id"),
        site_id=parse_optional_uuid(row, "site_id"),
        status=LeadStatus(str(row.get("status") or LeadStatus.RECEIVED.value)),
        score=int(score) if score is not None else None,
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        email=row.get("email") or "",
        phone=row.get("phone") or "",
        street_address=row.get("street_address") or "",
        city=row.get("city") or "",
        desired_program=row.get("desired_program") or "",
        message=row.get("message"),
        response_date=parse_optional_utc(row, "response_date_utc"),
        source=row.get("source") or "",
        source_ref=row.get("source_ref"),
        source_url=row.get("source_url"),
    )


def row_to_consent(row: Mapping[str, Any]) -> ConsentRecord:
    return ConsentRecord(
        lead_id=UUID(str(row["lead_id"])),
        consent_given=bool(row["consent_given"]),
        consent_text=str(row["consent_text"]),
        legal_basis=str(row["legal_basis"]),
        collection_method=str(row["collection_method"]),
        collected_at=parse_utc_datetime(row["collected_at_utc"]),
        recorded_at=parse_utc_datetime(row["recorded_at_utc"]),
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
    )


def persist_submission_atomic(lead: Lead, consent: ConsentRecord) -> None:
    """
    Insert lead + consent and increment the partner counter in one transaction.

    Calls ingest_partner_lead() which performs all three writes inside a single
    Postgres function body; any failure rolls the whole call back.

    Raises:
        RuntimeError: If the function reports failure or the RPC errors.
    """

    from postgrest.exceptions import APIError

    params = {
        "p_lead": lead_to_row(lead),
        "p_consent": consent_to_row(consent),
        "p_partner_id": str(lead.partner_id) if lead.partner_id else None,
    }

    try:
        response = get_supabase().rpc(_INGEST_FUNCTION, params).execute()
    except APIError as e:
        # supabase-py can surface a JSON function result as an APIError
        try:
            error_data = e.json() if callable(getattr(e, "json", None)) else {}
        except ValueError:
            error_data = {}
        if isinstance(error_data, dict) and error_data.get("success") is True:
            return
        raise RuntimeError(f"Failed to persist lead {lead.lead_id}: {e}") from e

    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to persist lead {lead.lead_id}: {error}")

    result = getattr(response, "data", None) or {}
    if not result.get("success"):
        raise RuntimeError(
            f"Failed to persist lead {lead.lead_id}: "
            f"{result.get('error', 'UNKNOWN')} {result.get('message', '')}".strip()
        )


def update_lead_score(lead_id: UUID, score: int) -> None:
    response = (
        get_supabase()
        .table(_LEADS_TABLE)
        .update({"score": score})
        .eq("lead_id", str(lead_id))
        .execute()
    )
    rows_or_raise(response, "update lead score")


def update_lead_assignment(lead_id: UUID, site_id: UUID, status: LeadStatus) -> None:
    """Assign the operational site. organization_id is deliberately left untouched."""

    response = (
        get_supabase()
        .table(_LEADS_TABLE)
        .update({"site_id": str(site_id), "status": status.value})
        .eq("lead_id", str(lead_id))
        .execute()
    )
    rows_or_raise(response, "update lead assignment")


def get_lead_by_id(lead_id: UUID) -> Lead | None:
    """
    Fetch a Lead by ID.

    Returns:
    - Lead if found
    - None if no record exists for the given ID
    """

    response = (
        get_supabase()
        .table(_LEADS_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .limit(1)
        .execute()
    )
    rows = rows_or_raise(response, "fetch lead")
    return row_to_lead(rows[0]) if rows else None


def get_consent_by_lead_id(lead_id: UUID) -> Optional[ConsentRecord]:
    response = (
        get_supabase()
        .table(_CONSENTS_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .limit(1)
        .execute()
    )
    rows = rows_or_raise(response, "fetch consent")
    return row_to_consent(rows[0]) if rows else None


def count_leads_with_email(organization_id: UUID, email: str) -> int:
    response = (
        get_supabase()
        .table(_LEADS_TABLE)
        .select("lead_id", count="exact")
        .eq("organization_id", str(organization_id))
        .eq("email", email)
        .execute()
    )
    rows_or_raise(response, "count leads")
    return int(getattr(response, "count", 0) or 0)


def list_leads(organization_id: Optional[UUID] = None, limit: int = 1000) -> List[Lead]:
    """
    List Leads, optionally restricted to one accountable organization.
    """

    query = get_supabase().table(_LEADS_TABLE).select("*")
    if organization_id is not None:
        query = query.eq("organization_id", str(organization_id))

    response = query.order("created_at_utc", desc=True).limit(limit).execute()
    rows = rows_or_raise(response, "list leads")
    return [row_to_lead(row) for row in rows]


__all__ = [
    "persist_submission_atomic",
    "update_lead_score",
    "update_lead_assignment",
    "get_lead_by_id",
    "get_consent_by_lead_id",
    "count_leads_with_email",
    "list_leads",
]
