"""
Tests for `services/territory_resolver.py`.

Covers:
- A single matching territory routes to its organization's headquarters site.
- Only head-office leads are routed; ownership never changes.
- No active site discards the match.
- Longest-prefix zone mapping.
- Overlap reporting.
"""

from __future__ import annotations

from uuid import UUID

import pytest

from conftest import (
    FRANCHISE_HQ_SITE_ID,
    FRANCHISE_ID,
    HEAD_OFFICE_ID,
    HEAD_OFFICE_SITE_ID,
    NOW,
    PARTNER_ID,
)
from domain.audit import AuditAction
from domain.lead import Lead, LeadStatus
from domain.organization import Organization, OrganizationRank, Site
from domain.territory import Territory, ZoneMapping
from services.territory_resolver import (
    auto_dispatch_lead,
    check_territory_conflicts,
    find_territory_overlaps,
    match_territory,
    resolve_zone,
    route_lead,
)

TERRITORY_ID = UUID("00000000-0000-0000-0000-0000000000d1")


def _territory(codes, organization_id=FRANCHISE_ID, territory_id=TERRITORY_ID, name="Lyon Nord", **kwargs):
    return Territory(
        territory_id=territory_id,
        organization_id=organization_id,
        name=name,
        postal_codes=frozenset(codes),
        **kwargs,
    )


def _persist_lead(store, postal_code: str, organization_id=HEAD_OFFICE_ID, partner_id=None) -> Lead:
    lead = Lead(
        lead_id=UUID(int=99),
        organization_id=organization_id,
        postal_code=postal_code,
        created_at=NOW,
        partner_id=partner_id,
    )
    store.leads[lead.lead_id] = lead
    return lead


def test_single_territory_routes_to_headquarters_site(store) -> None:
    store.add_territory(_territory({"69001", "69002"}))
    lead = _persist_lead(store, "69002")

    match = route_lead(store, lead)

    assert match is not None
    assert match.site_id == FRANCHISE_HQ_SITE_ID
    assert match.organization_name == "Formation Lyon Nord"
    routed = store.get_lead(lead.lead_id)
    assert routed.site_id == FRANCHISE_HQ_SITE_ID
    assert routed.status == LeadStatus.DISPATCHED
    assert routed.organization_id == HEAD_OFFICE_ID


def test_exact_code_only(store) -> None:
    store.add_territory(_territory({"69001"}))
    lead = _persist_lead(store, "69010")

    assert route_lead(store, lead) is None
    assert store.get_lead(lead.lead_id) == lead


def test_inactive_territory_or_owner_is_ignored(store) -> None:
    store.add_territory(_territory({"69001"}, is_active=False))
    organization = store.get_organization(HEAD_OFFICE_ID)
    assert match_territory(store, organization, "69001") is None

    store.add_territory(_territory({"69001"}))
    franchise = store.get_organization(FRANCHISE_ID)
    store.add_organization(
        Organization(
            organization_id=franchise.organization_id,
            name=franchise.name,
            rank=franchise.rank,
            parent_id=franchise.parent_id,
            is_active=False,
        )
    )
    assert match_territory(store, organization, "69001") is None


def test_only_head_office_leads_are_routed(store) -> None:
    store.add_territory(_territory({"69001"}))
    franchise = store.get_organization(FRANCHISE_ID)
    assert match_territory(store, franchise, "69001") is None


def test_match_without_active_site_is_discarded(store) -> None:
    other_id = UUID("00000000-0000-0000-0000-0000000000a3")
    store.add_organization(
        Organization(organization_id=other_id, name="Vide", rank=OrganizationRank.BRANCH, parent_id=HEAD_OFFICE_ID)
    )
    store.add_site(Site(site_id=UUID(int=7), organization_id=other_id, name="Fermé", is_active=False))
    store.add_territory(_territory({"13001"}, organization_id=other_id))
    lead = _persist_lead(store, "13001")

    assert route_lead(store, lead) is None
    assert store.get_lead(lead.lead_id).status == LeadStatus.RECEIVED


def test_overlapping_territories_still_dispatch(store) -> None:
    store.add_territory(_territory({"69001"}))
    store.add_territory(_territory({"69001"}, territory_id=UUID(int=5), name="Lyon Centre"))
    organization = store.get_organization(HEAD_OFFICE_ID)

    match = match_territory(store, organization, "69001")
    assert match is not None
    assert match.organization_id == FRANCHISE_ID


@pytest.fixture
def zone_store(store):
    site_a, site_b = HEAD_OFFICE_SITE_ID, UUID(int=42)
    store.add_site(Site(site_id=site_b, organization_id=HEAD_OFFICE_ID, name="Lyon"))
    store.add_zone_mapping(ZoneMapping(mapping_id=UUID(int=1), organization_id=HEAD_OFFICE_ID, prefix="69", site_id=site_a))
    store.add_zone_mapping(
        ZoneMapping(mapping_id=UUID(int=2), organization_id=HEAD_OFFICE_ID, prefix="691", site_id=site_b, label="Lyon 1")
    )
    return store


def test_longest_prefix_wins(zone_store) -> None:
    resolution = resolve_zone(zone_store, HEAD_OFFICE_ID, "69100")
    assert resolution.prefix == "691"
    assert resolution.site_id == UUID(int=42)

    assert resolve_zone(zone_store, HEAD_OFFICE_ID, "69 200").prefix == "69"
    assert resolve_zone(zone_store, HEAD_OFFICE_ID, "75001") is None
    assert resolve_zone(zone_store, FRANCHISE_ID, "69100") is None


def test_duplicate_prefix_rejected(zone_store) -> None:
    with pytest.raises(ValueError):
        zone_store.add_zone_mapping(
            ZoneMapping(mapping_id=UUID(int=3), organization_id=HEAD_OFFICE_ID, prefix="69", site_id=UUID(int=42))
        )
    with pytest.raises(ValueError):
        zone_store.add_zone_mapping(
            ZoneMapping(mapping_id=UUID(int=4), organization_id=HEAD_OFFICE_ID, prefix="69 ", site_id=UUID(int=42))
        )


def test_padded_prefix_does_not_outrank_longer_prefix(store) -> None:
    site_b = UUID(int=42)
    store.add_site(Site(site_id=site_b, organization_id=HEAD_OFFICE_ID, name="Lyon"))
    store.add_zone_mapping(
        ZoneMapping(mapping_id=UUID(int=1), organization_id=HEAD_OFFICE_ID, prefix="69  ", site_id=HEAD_OFFICE_SITE_ID)
    )
    store.add_zone_mapping(ZoneMapping(mapping_id=UUID(int=2), organization_id=HEAD_OFFICE_ID, prefix="691", site_id=site_b))

    resolution = resolve_zone(store, HEAD_OFFICE_ID, "69100")

    assert resolution.prefix == "691"
    assert resolution.site_id == site_b
    assert resolve_zone(store, HEAD_OFFICE_ID, "69200").prefix == "69"


def test_auto_dispatch_lead(zone_store) -> None:
    lead = _persist_lead(zone_store, "69100", partner_id=PARTNER_ID)

    resolution = auto_dispatch_lead(zone_store, lead.lead_id)

    updated = zone_store.get_lead(lead.lead_id)
    assert resolution.prefix == "691"
    assert updated.site_id == UUID(int=42)
    assert updated.status == LeadStatus.DISPATCHED
    assert updated.organization_id == HEAD_OFFICE_ID

    entries = zone_store.list_audit_entries(partner_id=PARTNER_ID)
    assert len(entries) == 1
    assert entries[0].action == AuditAction.LEAD_DISPATCHED
    assert entries[0].organization_id == HEAD_OFFICE_ID
    assert entries[0].previous_value == {"site_id": None, "status": LeadStatus.RECEIVED.value}
    assert entries[0].new_value == {"site_id": str(UUID(int=42)), "status": LeadStatus.DISPATCHED.value}

    with pytest.raises(ValueError):
        auto_dispatch_lead(zone_store, UUID(int=12345))


def test_no_match_in_either_mechanism_leaves_defaults(zone_store) -> None:
    lead = _persist_lead(zone_store, "13001")

    assert route_lead(zone_store, lead) is None
    assert auto_dispatch_lead(zone_store, lead.lead_id) is None
    assert zone_store.get_lead(lead.lead_id) == lead


def test_overlap_report(store) -> None:
    store.add_territory(_territory({"69001", "69002"}))
    store.add_territory(_territory({"69002", "69003"}, territory_id=UUID(int=5), name="Lyon Centre"))

    overlaps = find_territory_overlaps(store, ["69002", "75001"])
    assert {o.territory_name for o in overlaps} == {"Lyon Nord", "Lyon Centre"}

    conflicts = check_territory_conflicts(store)
    assert len(conflicts) == 2
    assert all(c.overlaps[0].overlapping_postal_codes == frozenset({"69002"}) for c in conflicts)
