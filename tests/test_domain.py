"""
Tests for the domain package.

Covers contract rules:
- Timestamps stored on entities must be timezone-aware UTC (offset 0).
- Entities are frozen; lead mutations produce new instances.
- FRANCHISE and BRANCH never hold legal accountability.
- Zone mapping prefixes are 1-5 digits; postal codes are whitespace-normalized.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from domain.lead import Lead, LeadStatus
from domain.organization import Organization, OrganizationRank, Site, pick_dispatch_site
from domain.partner import Partner
from domain.territory import Territory, ZoneMapping, normalize_postal_code
from domain.time import to_utc

LEAD_ID = UUID("00000000-0000-0000-0000-000000000001")
ORG_ID = UUID("00000000-0000-0000-0000-000000000002")
SITE_ID = UUID("00000000-0000-0000-0000-000000000003")
UTC_TS = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _lead(**overrides) -> Lead:
    values = dict(lead_id=LEAD_ID, organization_id=ORG_ID, postal_code="75001", created_at=UTC_TS)
    values.update(overrides)
    return Lead(**values)


def test_lead_created_at_must_be_utc() -> None:
    with pytest.raises(ValueError):
        _lead(created_at=datetime(2026, 1, 1))

    with pytest.raises(ValueError):
        _lead(created_at=datetime(2026, 1, 1, tzinfo=timezone(timedelta(hours=2))))


def test_lead_is_immutable() -> None:
    lead = _lead()
    with pytest.raises(FrozenInstanceError):
        lead.score = 50  # type: ignore[misc]


def test_lead_score_bounds() -> None:
    with pytest.raises(ValueError):
        _lead(score=101)
    assert _lead(score=0).score == 0


def test_dispatch_changes_site_and_status_but_not_owner() -> None:
    lead = _lead()
    dispatched = lead.dispatched_to(SITE_ID)

    assert dispatched.site_id == SITE_ID
    assert dispatched.status == LeadStatus.DISPATCHED
    assert dispatched.organization_id == ORG_ID
    assert lead.status == LeadStatus.RECEIVED
    assert lead.site_id is None


def test_to_utc_normalizes_offsets() -> None:
    paris = datetime(2026, 6, 1, 11, 30, tzinfo=timezone(timedelta(hours=2)))
    assert to_utc(paris) == datetime(2026, 6, 1, 9, 30, tzinfo=timezone.utc)
    assert to_utc(paris).utcoffset() == timedelta(0)

    with pytest.raises(ValueError):
        to_utc(datetime(2026, 6, 1))


@pytest.mark.parametrize(
    "rank, accountable",
    [
        (OrganizationRank.HEAD_OFFICE, True),
        (OrganizationRank.STANDALONE, True),
        (OrganizationRank.FRANCHISE, False),
        (OrganizationRank.BRANCH, False),
    ],
)
def test_rank_accountability(rank: OrganizationRank, accountable: bool) -> None:
    assert rank.holds_legal_accountability is accountable


def test_organization_cannot_parent_itself() -> None:
    with pytest.raises(ValueError):
        Organization(organization_id=ORG_ID, name="Loop", rank=OrganizationRank.FRANCHISE, parent_id=ORG_ID)


def test_pick_dispatch_site_prefers_active_headquarters() -> None:
    annex = Site(site_id=UUID(int=1), organization_id=ORG_ID, name="Annex")
    closed_hq = Site(site_id=UUID(int=2), organization_id=ORG_ID, name="Old HQ", is_headquarters=True, is_active=False)
    hq = Site(site_id=UUID(int=3), organization_id=ORG_ID, name="HQ", is_headquarters=True)

    assert pick_dispatch_site([annex, closed_hq, hq]) == hq
    assert pick_dispatch_site([annex, closed_hq]) == annex
    assert pick_dispatch_site([closed_hq]) is None


def test_postal_code_normalization() -> None:
    assert normalize_postal_code(" 69 100 ") == "69100"

    territory = Territory(territory_id=UUID(int=1), organization_id=ORG_ID, name="Lyon", postal_codes=frozenset({"69100"}))
    assert territory.covers("69 100")
    assert not territory.covers("69101")


@pytest.mark.parametrize("prefix", ["", "ab", "123456", "6 9", "\u0666\u0669"])
def test_zone_mapping_rejects_invalid_prefix(prefix: str) -> None:
    with pytest.raises(ValueError):
        ZoneMapping(mapping_id=UUID(int=1), organization_id=ORG_ID, prefix=prefix, site_id=SITE_ID)


def test_zone_mapping_stores_stripped_prefix() -> None:
    mapping = ZoneMapping(mapping_id=UUID(int=1), organization_id=ORG_ID, prefix=" 69  ", site_id=SITE_ID)

    assert mapping.prefix == "69"
    assert mapping.matches("69 100")


def test_partner_contract_expiry() -> None:
    partner = Partner(
        partner_id=UUID(int=1),
        organization_id=ORG_ID,
        company_name="Acme",
        contract_expires_at=UTC_TS,
    )
    assert partner.contract_expired(UTC_TS + timedelta(seconds=1))
    assert not partner.contract_expired(UTC_TS)
    assert partner.rate_limit_key == f"partner:{UUID(int=1)}"

    with pytest.raises(ValueError):
        Partner(partner_id=UUID(int=1), organization_id=ORG_ID, company_name="Acme", hourly_limit=0)
