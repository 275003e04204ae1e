"""
Partner credential lifecycle.

API keys are random tokens shown to the administrator exactly once; only their
sha256 hex digest is stored. Activation requires a signed contract and DPA.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from domain.audit import AuditAction, AuditEntry
from domain.partner import PartnerStatus
from repositories.store import GatewayStore
from services.audit_service import log_partner_action
from services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "pk_live_"


class PartnerActivationError(Exception):
    """Raised when a partner cannot be activated or suspended."""
    pass


@dataclass(frozen=True, slots=True)
class GeneratedApiKey:
    plaintext: str
    key_hash: str


@dataclass(frozen=True, slots=True)
class ActivationResult:
    partner_id: UUID
    api_key: str  # plaintext, returned once
    status: PartnerStatus


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode("utf-8")).hexdigest()


def generate_api_key() -> GeneratedApiKey:
    plaintext = API_KEY_PREFIX + secrets.token_hex(24)
    return GeneratedApiKey(plaintext=plaintext, key_hash=hash_api_key(plaintext))


def activate_partner(
    store: GatewayStore,
    partner_id: UUID,
    performed_by: Optional[str] = None,
    rate_limiter: Optional[RateLimiter] = None,
) -> ActivationResult:
    """
    Mint a new API key and mark the partner ACTIVE.

    Any previous key stops working immediately.

    Raises:
        PartnerActivationError: If the partner is unknown, already active, or
            has not signed both its contract and the DPA
    """
    partner = store.get_partner(partner_id)
    if partner is None:
        raise PartnerActivationError(f"Partner not found: {partner_id}")
    if partner.status == PartnerStatus.ACTIVE:
        raise PartnerActivationError(f"Partner {partner_id} is already active")
    if partner.contract_signed_at is None:
        raise PartnerActivationError(f"Partner {partner_id} has not signed its contract")
    if partner.dpa_signed_at is None:
        raise PartnerActivationError(f"Partner {partner_id} has not signed the data processing agreement")

    key = generate_api_key()
    store.update_partner_access(partner_id, PartnerStatus.ACTIVE, api_key_hash=key.key_hash)
    if rate_limiter is not None:
        rate_limiter.reset(partner.rate_limit_key)

    log_partner_action(
        store,
        AuditEntry(
            partner_id=partner.partner_id,
            organization_id=partner.organization_id,
            action=AuditAction.API_KEY_GENERATED,
            details="API key generated",
            performed_by=performed_by,
        ),
    )
    log_partner_action(
        store,
        AuditEntry(
            partner_id=partner.partner_id,
            organization_id=partner.organization_id,
            action=AuditAction.ACTIVATED,
            details="Partner activated",
            previous_value={"status": partner.status.value},
            new_value={"status": PartnerStatus.ACTIVE.value},
            performed_by=performed_by,
        ),
    )
    logger.info("Partner activated", extra={"partner_id": str(partner_id)})
    return ActivationResult(partner_id=partner_id, api_key=key.plaintext, status=PartnerStatus.ACTIVE)


def suspend_partner(
    store: GatewayStore,
    partner_id: UUID,
    reason: str,
    performed_by: Optional[str] = None,
) -> None:
    partner = store.get_partner(partner_id)
    if partner is None:
        raise PartnerActivationError(f"Partner not found: {partner_id}")
    if partner.status == PartnerStatus.SUSPENDED:
        return

    store.update_partner_access(partner_id, PartnerStatus.SUSPENDED)
    log_partner_action(
        store,
        AuditEntry(
            partner_id=partner.partner_id,
            organization_id=partner.organization_id,
            action=AuditAction.SUSPENDED,
            details=f"Partner suspended: {reason}",
            previous_value={"status": partner.status.value},
            new_value={"status": PartnerStatus.SUSPENDED.value},
            performed_by=performed_by,
        ),
    )
    logger.info("Partner suspended", extra={"partner_id": str(partner_id)})
