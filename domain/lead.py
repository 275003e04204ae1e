"""
Domain: Lead and consent entities.

Contract rules implemented here:
- A Lead represents a single candidate submitted by a partner and is uniquely
  identified by lead_id (UUID).
- organization_id is the legally accountable organization. It never points at
  a FRANCHISE or BRANCH; site_id reflects the operational location instead.
- Identity fields are fixed at ingestion. Only status, site and score change
  afterwards, and each change produces a new instance.
- Every Lead has exactly one ConsentRecord, written in the same transaction and
  never modified.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp, require_utc_timestamp

PARTNER_API_SOURCE = "PARTNER_API"


class LeadStatus(str, Enum):
    RECEIVED = "RECEIVED"
    DISPATCHED = "DISPATCHED"


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Pure domain entity for a Lead.

    Immutability:
    - This entity is frozen; use `with_score` / `dispatched_to` to derive the
      updated record persisted by the repository.
    """

    lead_id: UUID
    organization_id: UUID
    postal_code: str
    created_at: datetime

    partner_id: Optional[UUID] = None
    site_id: Optional[UUID] = None
    status: LeadStatus = LeadStatus.RECEIVED
    score: Optional[int] = None

    # Identity
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    # Address
    street_address: str = ""
    city: str = ""

    # Request
    desired_program: str = ""
    message: Optional[str] = None
    response_date: Optional[datetime] = None

    # Provenance
    source: str = PARTNER_API_SOURCE
    source_ref: Optional[str] = None  # partner-side external id
    source_url: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_optional_utc_timestamp("response_date", self.response_date)
        if self.score is not None and not 0 <= self.score <= 100:
            raise ValueError("score must be between 0 and 100")

    def with_score(self, score: int) -> "Lead":
        return replace(self, score=score)

    def dispatched_to(self, site_id: UUID) -> "Lead":
        """Assign the operational site; the accountable organization is unchanged."""

        return replace(self, site_id=site_id, status=LeadStatus.DISPATCHED)


@dataclass(frozen=True, slots=True)
class ConsentRecord:
    """
    Immutable evidence of the candidate's consent to data processing.

    collected_at is when the partner collected consent; recorded_at is when the
    gateway stored it. ip_address / user_agent identify the submitting system.
    """

    lead_id: UUID
    consent_given: bool
    consent_text: str
    legal_basis: str
    collection_method: str
    collected_at: datetime
    recorded_at: datetime
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("collected_at", self.collected_at)
        require_utc_timestamp("recorded_at", self.recorded_at)
