"""
GatewayStore: the persistence seam used by the services layer.

Services depend on this protocol rather than on repository modules directly,
so the ingestion pipeline can run against Supabase in production and against
`InMemoryGatewayStore` (repositories/memory_store.py) in tests and local demos.

`SupabaseGatewayStore` is a thin delegation onto the per-table repository
functions; it adds no rules of its own.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable
from uuid import UUID

from domain.audit import AuditAction, AuditEntry
from domain.lead import ConsentRecord, Lead, LeadStatus
from domain.organization import Organization, Site
from domain.partner import Partner, PartnerStatus
from domain.territory import Territory, ZoneMapping


@runtime_checkable
class GatewayStore(Protocol):
    """Storage operations required by the gateway services."""

    # Partners
    def get_partner_by_key_hash(self, api_key_hash: str) -> Optional[Partner]: ...

    def get_partner(self, partner_id: UUID) -> Optional[Partner]: ...

    def update_partner_access(
        self, partner_id: UUID, status: PartnerStatus, api_key_hash: Optional[str] = None
    ) -> None: ...

    # Organization tree
    def get_organization(self, organization_id: UUID) -> Optional[Organization]: ...

    def get_site(self, site_id: UUID) -> Optional[Site]: ...

    def list_active_sites(self, organization_id: UUID) -> List[Site]: ...

    # Routing reference data
    def find_child_territories_covering(self, parent_id: UUID, postal_code: str) -> List[Territory]: ...

    def list_active_territories(self) -> List[Territory]: ...

    def list_active_zone_mappings(self, organization_id: UUID) -> List[ZoneMapping]: ...

    # Leads
    def persist_submission(self, lead: Lead, consent: ConsentRecord) -> None:
        """Write lead + consent + partner counter increment all-or-nothing."""
        ...

    def update_lead_score(self, lead_id: UUID, score: int) -> None: ...

    def assign_lead_site(self, lead_id: UUID, site_id: UUID, status: LeadStatus) -> None: ...

    def get_lead(self, lead_id: UUID) -> Optional[Lead]: ...

    def list_leads(self, organization_id: Optional[UUID] = None) -> List[Lead]: ...

    def get_consent(self, lead_id: UUID) -> Optional[ConsentRecord]: ...

    def count_leads_with_email(self, organization_id: UUID, email: str) -> int: ...

    # Audit
    def append_audit_entry(self, entry: AuditEntry) -> None: ...

    def list_audit_entries(
        self,
        partner_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        action: Optional[AuditAction] = None,
        since: Optional[datetime] = None,
    ) -> List[AuditEntry]: ...


class SupabaseGatewayStore:
    """GatewayStore backed by the Supabase repository modules."""

    def get_partner_by_key_hash(self, api_key_hash: str) -> Optional[Partner]:
        from repositories.partner_repository import get_partner_by_key_hash

        return get_partner_by_key_hash(api_key_hash)

    def get_partner(self, partner_id: UUID) -> Optional[Partner]:
        from repositories.partner_repository import get_partner_by_id

        return get_partner_by_id(partner_id)

    def update_partner_access(
        self, partner_id: UUID, status: PartnerStatus, api_key_hash: Optional[str] = None
    ) -> None:
        from repositories.partner_repository import update_partner_access

        update_partner_access(partner_id, status, api_key_hash)

    def get_organization(self, organization_id: UUID) -> Optional[Organization]:
        from repositories.organization_repository import get_organization_by_id

        return get_organization_by_id(organization_id)

    def get_site(self, site_id: UUID) -> Optional[Site]:
        from repositories.organization_repository import get_site_by_id

        return get_site_by_id(site_id)

    def list_active_sites(self, organization_id: UUID) -> List[Site]:
        from repositories.organization_repository import list_active_sites

        return list_active_sites(organization_id)

    def find_child_territories_covering(self, parent_id: UUID, postal_code: str) -> List[Territory]:
        from repositories.territory_repository import find_child_territories_covering

        return find_child_territories_covering(parent_id, postal_code)

    def list_active_territories(self) -> List[Territory]:
        from repositories.territory_repository import list_active_territories

        return list_active_territories()

    def list_active_zone_mappings(self, organization_id: UUID) -> List[ZoneMapping]:
        from repositories.territory_repository import list_active_zone_mappings

        return list_active_zone_mappings(organization_id)

    def persist_submission(self, lead: Lead, consent: ConsentRecord) -> None:
        from repositories.lead_repository import persist_submission_atomic

        persist_submission_atomic(lead, consent)

    def update_lead_score(self, lead_id: UUID, score: int) -> None:
        from repositories.lead_repository import update_lead_score

        update_lead_score(lead_id, score)

    def assign_lead_site(self, lead_id: UUID, site_id: UUID, status: LeadStatus) -> None:
        from repositories.lead_repository import update_lead_assignment

        update_lead_assignment(lead_id, site_id, status)

    def get_lead(self, lead_id: UUID) -> Optional[Lead]:
        from repositories.lead_repository import get_lead_by_id

        return get_lead_by_id(lead_id)

    def list_leads(self, organization_id: Optional[UUID] = None) -> List[Lead]:
        from repositories.lead_repository import list_leads

        return list_leads(organization_id)

    def get_consent(self, lead_id: UUID) -> Optional[ConsentRecord]:
        from repositories.lead_repository import get_consent_by_lead_id

        return get_consent_by_lead_id(lead_id)

    def count_leads_with_email(self, organization_id: UUID, email: str) -> int:
        from repositories.lead_repository import count_leads_with_email

        return count_leads_with_email(organization_id, email)

    def append_audit_entry(self, entry: AuditEntry) -> None:
        from repositories.audit_repository import insert_audit_entry

        insert_audit_entry(entry)

    def list_audit_entries(
        self,
        partner_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        action: Optional[AuditAction] = None,
        since: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        from repositories.audit_repository import list_audit_entries

        return list_audit_entries(
            partner_id=partner_id, organization_id=organization_id, action=action, since=since
        )


__all__ = ["GatewayStore", "SupabaseGatewayStore"]
