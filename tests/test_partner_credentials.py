"""
Tests for `services/partner_credentials.py` and `services/audit_service.py`.
"""

from __future__ import annotations

import pytest

from conftest import PARTNER_ID, FakeClock, make_partner
from domain.audit import AuditAction
from domain.partner import PartnerStatus
from services.audit_service import generate_compliance_report, get_partner_history, log_compliance_rejection
from services.partner_credentials import (
    PartnerActivationError,
    activate_partner,
    generate_api_key,
    hash_api_key,
    suspend_partner,
)
from services.rate_limiter import RateLimiter


def test_generated_key_is_stored_only_as_hash() -> None:
    key = generate_api_key()
    assert key.key_hash == hash_api_key(key.plaintext)
    assert key.plaintext not in key.key_hash
    assert len(key.key_hash) == 64
    assert generate_api_key().plaintext != key.plaintext


def test_activate_pending_partner(store) -> None:
    store.add_partner(make_partner(status=PartnerStatus.PENDING, api_key_hash=None))
    limiter = RateLimiter(clock=FakeClock())
    limiter.admit(f"partner:{PARTNER_ID}", 1)

    result = activate_partner(store, PARTNER_ID, performed_by="admin@example.com", rate_limiter=limiter)

    partner = store.get_partner(PARTNER_ID)
    assert partner.status == PartnerStatus.ACTIVE
    assert partner.api_key_hash == hash_api_key(result.api_key)
    assert store.get_partner_by_key_hash(hash_api_key(result.api_key)) == partner
    assert limiter.admit(partner.rate_limit_key, 1).allowed

    actions = [e.action for e in store.list_audit_entries(partner_id=PARTNER_ID)]
    assert actions == [AuditAction.ACTIVATED, AuditAction.API_KEY_GENERATED]


def test_activation_requires_signed_documents(store) -> None:
    store.add_partner(make_partner(status=PartnerStatus.PENDING, dpa_signed_at=None))
    with pytest.raises(PartnerActivationError):
        activate_partner(store, PARTNER_ID)

    store.add_partner(make_partner(status=PartnerStatus.PENDING, contract_signed_at=None))
    with pytest.raises(PartnerActivationError):
        activate_partner(store, PARTNER_ID)


def test_activation_rejects_active_partner(store) -> None:
    with pytest.raises(PartnerActivationError):
        activate_partner(store, PARTNER_ID)


def test_suspend_partner(store) -> None:
    suspend_partner(store, PARTNER_ID, "DPA withdrawn")

    assert store.get_partner(PARTNER_ID).status == PartnerStatus.SUSPENDED
    entry = get_partner_history(store, PARTNER_ID)[0]
    assert entry.action == AuditAction.SUSPENDED
    assert entry.new_value == {"status": "SUSPENDED"}


def test_compliance_report(store) -> None:
    partner = store.get_partner(PARTNER_ID)
    log_compliance_rejection(store, partner, "COMPLIANCE_DPA_MISSING", "DPA missing")
    log_compliance_rejection(store, partner, "COMPLIANCE_DPA_MISSING", "DPA missing")

    report = generate_compliance_report(store, PARTNER_ID)

    assert report.rejection_count == 2
    assert report.dpa_signed is True
    assert report.contract_signed is True
    assert generate_compliance_report(store, make_partner().organization_id) is None
