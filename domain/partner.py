"""
Domain: Partner (lead provider) accounts.

Represents external systems allowed to submit leads on behalf of a sponsoring
head office. Partners start PENDING without a credential; an administrator
activates them once the contract and data-processing agreement are signed,
which mints the API key. Only the sha256 hash of that key is ever stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from .time import require_optional_utc_timestamp

DEFAULT_HOURLY_LIMIT = 100


class PartnerStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


@dataclass(frozen=True, slots=True)
class PartnerQualification:
    """
    Snapshot of the partner's quality qualification file.

    Maintained by the qualification workflow outside this service; the
    compliance gate only reads it.
    """

    convention_signed_at: Optional[datetime] = None
    convention_expires_at: Optional[datetime] = None
    qualification_score: int = 0
    is_qualified: bool = False

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("convention_signed_at", self.convention_signed_at)
        require_optional_utc_timestamp("convention_expires_at", self.convention_expires_at)


@dataclass(frozen=True, slots=True)
class Partner:
    """
    Partner account with credential and contractual state.

    Supports:
    - Status management (pending, active, suspended)
    - Hashed API credential lookup
    - Per-hour submission limit
    - Contract / DPA signature tracking for the compliance gate
    """

    partner_id: UUID
    organization_id: UUID  # sponsoring HEAD_OFFICE
    company_name: str
    status: PartnerStatus = PartnerStatus.PENDING

    api_key_hash: Optional[str] = None
    hourly_limit: int = DEFAULT_HOURLY_LIMIT

    # Contractual state
    contract_signed_at: Optional[datetime] = None
    contract_expires_at: Optional[datetime] = None
    dpa_signed_at: Optional[datetime] = None

    total_leads_submitted: int = 0
    qualification: Optional[PartnerQualification] = None

    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_optional_utc_timestamp("contract_signed_at", self.contract_signed_at)
        require_optional_utc_timestamp("contract_expires_at", self.contract_expires_at)
        require_optional_utc_timestamp("dpa_signed_at", self.dpa_signed_at)
        require_optional_utc_timestamp("created_at", self.created_at)
        if self.hourly_limit < 1:
            raise ValueError("hourly_limit must be >= 1")

    def is_active(self) -> bool:
        """Check if partner may submit leads."""
        return self.status == PartnerStatus.ACTIVE

    def contract_expired(self, as_of: datetime) -> bool:
        return self.contract_expires_at is not None and self.contract_expires_at < as_of

    @property
    def rate_limit_key(self) -> str:
        return f"partner:{self.partner_id}"
