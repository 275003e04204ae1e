"""
Ownership resolver: finds the legally accountable organization for a record.

FRANCHISE and BRANCH organizations operate sites but never hold legal
accountability; a record originating at one of their sites belongs to their
direct parent. Any other rank owns its own records.

The walk is exactly one level. Hierarchy defects (missing site, missing parent
link, parent row absent) raise OwnershipIntegrityError instead of falling back
to a default, because silently assigning the wrong legal owner is worse than
failing the operation.

All functions here are read-only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional
from uuid import UUID

from domain.organization import Organization
from repositories.store import GatewayStore

logger = logging.getLogger(__name__)


class OwnershipIntegrityError(Exception):
    """Raised when the organization tree cannot yield an accountable owner."""
    pass


@dataclass(frozen=True, slots=True)
class OwnershipResolution:
    """
    organization_*: the accountable owner
    was_resolved: True when the owner is the originating organization's parent
    """
    organization_id: UUID
    organization_name: str
    authorization_number: Optional[str]
    was_resolved: bool
    originating_organization_id: UUID


def _resolve(store: GatewayStore, origin: Organization) -> OwnershipResolution:
    if not origin.rank.is_network_member:
        return OwnershipResolution(
            organization_id=origin.organization_id,
            organization_name=origin.name,
            authorization_number=origin.authorization_number,
            was_resolved=False,
            originating_organization_id=origin.organization_id,
        )

    if origin.parent_id is None:
        raise OwnershipIntegrityError(
            f"{origin.rank.value} organization {origin.organization_id} ({origin.name}) "
            f"has no parent organization"
        )

    parent = store.get_organization(origin.parent_id)
    if parent is None:
        raise OwnershipIntegrityError(
            f"Parent organization {origin.parent_id} of {origin.organization_id} not found"
        )

    return OwnershipResolution(
        organization_id=parent.organization_id,
        organization_name=parent.name,
        authorization_number=parent.authorization_number,
        was_resolved=True,
        originating_organization_id=origin.organization_id,
    )


def resolve_owner_for_organization(store: GatewayStore, organization_id: UUID) -> OwnershipResolution:
    organization = store.get_organization(organization_id)
    if organization is None:
        raise OwnershipIntegrityError(f"Organization {organization_id} not found")
    return _resolve(store, organization)


def resolve_owner(store: GatewayStore, site_id: UUID) -> OwnershipResolution:
    """
    Resolve the accountable owner of records created at a site.

    Raises:
        OwnershipIntegrityError: If the site, its organization, or the required
            parent organization cannot be found
    """
    site = store.get_site(site_id)
    if site is None:
        raise OwnershipIntegrityError(f"Site {site_id} not found")
    return resolve_owner_for_organization(store, site.organization_id)


@dataclass(frozen=True, slots=True)
class OwnershipViolation:
    lead_id: UUID
    organization_id: UUID
    issues: List[str]


@dataclass(frozen=True, slots=True)
class OwnershipAuditReport:
    leads_checked: int
    violations: List[OwnershipViolation] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.violations


def validate_lead_ownership(store: GatewayStore, lead_id: UUID) -> List[str]:
    """
    Re-check a persisted lead's owner.

    Returns:
        List of issues (empty when the ownership is valid)
    """
    lead = store.get_lead(lead_id)
    if lead is None:
        return [f"Lead {lead_id} not found"]

    owner = store.get_organization(lead.organization_id)
    if owner is None:
        return [f"Owner organization {lead.organization_id} not found"]

    issues = []
    if not owner.rank.holds_legal_accountability:
        issues.append(f"Owner {owner.name} has rank {owner.rank.value} and cannot hold legal accountability")
    if not owner.authorization_number:
        issues.append(f"Owner {owner.name} has no legal authorization number")
    return issues


def audit_ownership_invariants(store: GatewayStore, organization_id: Optional[UUID] = None) -> OwnershipAuditReport:
    leads = store.list_leads(organization_id)
    violations = []
    for lead in leads:
        issues = validate_lead_ownership(store, lead.lead_id)
        if issues:
            violations.append(OwnershipViolation(lead.lead_id, lead.organization_id, issues))

    if violations:
        logger.warning(
            "Ownership invariant violations found",
            extra={"leads_checked": len(leads), "violations": len(violations)},
        )
    return OwnershipAuditReport(leads_checked=len(leads), violations=violations)
