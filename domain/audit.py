"""
Domain: Audit entries.

Append-only regulatory trail of partner-related actions. Entries are never
updated or deleted; compliance rejections are recorded even though the
submission itself is refused.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID, uuid4

from .time import require_utc_timestamp, utc_now


class AuditAction(str, Enum):
    CREATED = "CREATED"
    ACTIVATED = "ACTIVATED"
    SUSPENDED = "SUSPENDED"
    API_KEY_GENERATED = "API_KEY_GENERATED"
    LEAD_REJECTED_COMPLIANCE = "LEAD_REJECTED_COMPLIANCE"
    LEAD_SCORED = "LEAD_SCORED"
    LEAD_DISPATCHED = "LEAD_DISPATCHED"


@dataclass(frozen=True, slots=True)
class AuditEntry:
    partner_id: UUID
    organization_id: UUID
    action: AuditAction
    details: Optional[str] = None
    previous_value: Optional[Mapping[str, Any]] = None
    new_value: Optional[Mapping[str, Any]] = None
    performed_by: Optional[str] = None  # None means the system itself
    entry_id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
