"""
Territory resolver: geographic routing of leads.

Two independent policies, kept separate on purpose:

(a) Territory sets. A lead owned by a HEAD_OFFICE is dispatched to the
    headquarters site of the active FRANCHISE/BRANCH child whose territory
    contains the exact postal code. Only the assigned site and status change;
    the accountable organization never does.

(b) Zone mappings. Within one organization, the active mapping with the
    longest prefix of the postal code selects the target site
    ("69" and "691" configured, "69100" -> "691").

No match in either policy leaves the lead untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional
from uuid import UUID

from domain.audit import AuditAction, AuditEntry
from domain.lead import Lead, LeadStatus
from domain.organization import Organization, OrganizationRank, pick_dispatch_site
from domain.territory import TerritoryOverlap, normalize_postal_code
from repositories.store import GatewayStore
from services.audit_service import log_partner_action

logger = logging.getLogger(__name__)


# ============================================================================
# (a) Territory sets
# ============================================================================

@dataclass(frozen=True, slots=True)
class TerritoryMatch:
    territory_id: UUID
    organization_id: UUID
    organization_name: str
    site_id: UUID


def match_territory(store: GatewayStore, organization: Organization, postal_code: str) -> Optional[TerritoryMatch]:
    """
    Find the network child covering postal_code and its dispatch site.

    Returns None when the organization is not a head office, no territory
    matches, or the matched organization has no active site.
    """
    if organization.rank != OrganizationRank.HEAD_OFFICE:
        return None

    code = normalize_postal_code(postal_code)
    territories = store.find_child_territories_covering(organization.organization_id, code)
    if not territories:
        return None

    # Overlapping territories are allowed; the first returned wins.
    territory = territories[0]
    if len(territories) > 1:
        logger.warning(
            "Postal code covered by several territories",
            extra={"postal_code": code, "territory_ids": [str(t.territory_id) for t in territories]},
        )

    target = store.get_organization(territory.organization_id)
    site = pick_dispatch_site(store.list_active_sites(territory.organization_id))
    if target is None or site is None:
        logger.warning(
            "Matched territory has no active dispatch site",
            extra={"territory_id": str(territory.territory_id), "organization_id": str(territory.organization_id)},
        )
        return None

    return TerritoryMatch(
        territory_id=territory.territory_id,
        organization_id=target.organization_id,
        organization_name=target.name,
        site_id=site.site_id,
    )


def route_lead(store: GatewayStore, lead: Lead) -> Optional[TerritoryMatch]:
    """Apply policy (a) to a persisted lead and record the dispatch."""

    organization = store.get_organization(lead.organization_id)
    if organization is None:
        return None

    match = match_territory(store, organization, lead.postal_code)
    if match is None:
        return None

    store.assign_lead_site(lead.lead_id, match.site_id, LeadStatus.DISPATCHED)
    logger.info(
        "Lead dispatched by territory",
        extra={"lead_id": str(lead.lead_id), "site_id": str(match.site_id), "territory_id": str(match.territory_id)},
    )
    return match


# ============================================================================
# (b) Zone mappings
# ============================================================================

@dataclass(frozen=True, slots=True)
class ZoneResolution:
    mapping_id: UUID
    prefix: str
    site_id: UUID
    label: Optional[str]


def resolve_zone(store: GatewayStore, organization_id: UUID, postal_code: str) -> Optional[ZoneResolution]:
    """Longest-prefix lookup among the organization's active zone mappings."""

    code = normalize_postal_code(postal_code)
    if not code:
        return None

    best = None
    for mapping in store.list_active_zone_mappings(organization_id):
        if mapping.matches(code) and (best is None or len(mapping.prefix) > len(best.prefix)):
            best = mapping

    if best is None:
        return None
    return ZoneResolution(mapping_id=best.mapping_id, prefix=best.prefix, site_id=best.site_id, label=best.label)


def auto_dispatch_lead(store: GatewayStore, lead_id: UUID) -> Optional[ZoneResolution]:
    """
    Assign a lead's site from its organization's zone mappings.

    Raises:
        ValueError: If the lead does not exist
    """
    lead = store.get_lead(lead_id)
    if lead is None:
        raise ValueError(f"Lead not found: {lead_id}")

    resolution = resolve_zone(store, lead.organization_id, lead.postal_code)
    if resolution is None:
        return None

    store.assign_lead_site(lead.lead_id, resolution.site_id, LeadStatus.DISPATCHED)

    if lead.partner_id is None:
        logger.warning(
            "Zone dispatch of a lead without partner; no audit entry written",
            extra={"lead_id": str(lead.lead_id), "site_id": str(resolution.site_id)},
        )
        return resolution

    log_partner_action(
        store,
        AuditEntry(
            partner_id=lead.partner_id,
            organization_id=lead.organization_id,
            action=AuditAction.LEAD_DISPATCHED,
            details=f"Lead {lead.lead_id} dispatched by zone prefix {resolution.prefix}",
            previous_value={
                "site_id": str(lead.site_id) if lead.site_id else None,
                "status": lead.status.value,
            },
            new_value={"site_id": str(resolution.site_id), "status": LeadStatus.DISPATCHED.value},
        ),
    )
    return resolution


# ============================================================================
# Data-quality reports
# ============================================================================

def find_territory_overlaps(
    store: GatewayStore,
    postal_codes: Iterable[str],
    exclude_territory_id: Optional[UUID] = None,
) -> List[TerritoryOverlap]:
    """Active territories sharing any of postal_codes. Reported, never rejected."""

    wanted = {normalize_postal_code(code) for code in postal_codes}
    overlaps = []
    for territory in store.list_active_territories():
        if territory.territory_id == exclude_territory_id:
            continue
        shared = territory.postal_codes & wanted
        if shared:
            overlaps.append(
                TerritoryOverlap(
                    territory_id=territory.territory_id,
                    territory_name=territory.name,
                    organization_id=territory.organization_id,
                    overlapping_postal_codes=frozenset(shared),
                )
            )
    return overlaps


@dataclass(frozen=True, slots=True)
class TerritoryConflict:
    territory_id: UUID
    territory_name: str
    overlaps: List[TerritoryOverlap]


def check_territory_conflicts(store: GatewayStore) -> List[TerritoryConflict]:
    conflicts = []
    for territory in store.list_active_territories():
        overlaps = find_territory_overlaps(store, territory.postal_codes, exclude_territory_id=territory.territory_id)
        if overlaps:
            conflicts.append(TerritoryConflict(territory.territory_id, territory.name, overlaps))
    return conflicts
