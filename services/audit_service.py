"""
Audit trail writer and read helpers.

Writes are best-effort: a failing audit write is logged and never changes the
outcome of the operation being audited. Reads back the append-only log for
partner history and compliance reporting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from domain.audit import AuditAction, AuditEntry
from domain.partner import Partner, PartnerStatus
from domain.time import utc_now
from repositories.store import GatewayStore

logger = logging.getLogger(__name__)


def log_partner_action(store: GatewayStore, entry: AuditEntry) -> bool:
    """
    Append an audit entry, swallowing storage failures.

    Returns:
        True if the entry was written, False if the write failed
    """
    try:
        store.append_audit_entry(entry)
        return True
    except Exception:
        logger.exception(
            "Failed to write audit entry",
            extra={
                "partner_id": str(entry.partner_id),
                "audit_action": entry.action.value,
            },
        )
        return False


def log_compliance_rejection(store: GatewayStore, partner: Partner, code: str, reason: str) -> bool:
    return log_partner_action(
        store,
        AuditEntry(
            partner_id=partner.partner_id,
            organization_id=partner.organization_id,
            action=AuditAction.LEAD_REJECTED_COMPLIANCE,
            details=f"Lead rejected: {reason}",
            new_value={"rejection_code": code, "reason": reason},
        ),
    )


def get_partner_history(store: GatewayStore, partner_id: UUID, limit: int = 50) -> List[AuditEntry]:
    return store.list_audit_entries(partner_id=partner_id)[:limit]


def get_organization_history(
    store: GatewayStore,
    organization_id: UUID,
    action: Optional[AuditAction] = None,
    since: Optional[datetime] = None,
    limit: int = 100,
) -> List[AuditEntry]:
    return store.list_audit_entries(organization_id=organization_id, action=action, since=since)[:limit]


@dataclass(frozen=True, slots=True)
class ComplianceReport:
    """
    Compliance snapshot of one partner.

    rejection_count counts LEAD_REJECTED_COMPLIANCE entries since `since`
    (all time when None).
    """
    partner_id: UUID
    company_name: str
    status: PartnerStatus
    contract_signed: bool
    contract_expired: bool
    dpa_signed: bool
    total_leads_submitted: int
    rejection_count: int
    generated_at: datetime


def generate_compliance_report(
    store: GatewayStore,
    partner_id: UUID,
    since: Optional[datetime] = None,
) -> Optional[ComplianceReport]:
    partner = store.get_partner(partner_id)
    if partner is None:
        return None

    now = utc_now()
    rejections = store.list_audit_entries(
        partner_id=partner_id,
        action=AuditAction.LEAD_REJECTED_COMPLIANCE,
        since=since,
    )
    return ComplianceReport(
        partner_id=partner.partner_id,
        company_name=partner.company_name,
        status=partner.status,
        contract_signed=partner.contract_signed_at is not None,
        contract_expired=partner.contract_expired(now),
        dpa_signed=partner.dpa_signed_at is not None,
        total_leads_submitted=partner.total_leads_submitted,
        rejection_count=len(rejections),
        generated_at=now,
    )
