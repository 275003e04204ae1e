"""
In-memory GatewayStore.

Used by the test-suite and by `GATEWAY_STORE_BACKEND=memory` for local demos.
All access is serialized with a re-entrant lock. Multi-write operations run
inside `_transaction()`, which snapshots every table and restores it if the
body raises, giving the same all-or-nothing behaviour as the Postgres function.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterator, List, Optional
from uuid import UUID

from domain.audit import AuditAction, AuditEntry
from domain.lead import ConsentRecord, Lead, LeadStatus
from domain.organization import Organization, Site
from domain.partner import Partner, PartnerStatus
from domain.territory import Territory, ZoneMapping, normalize_postal_code


class InMemoryGatewayStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.organizations: Dict[UUID, Organization] = {}
        self.sites: Dict[UUID, Site] = {}
        self.territories: Dict[UUID, Territory] = {}
        self.zone_mappings: Dict[UUID, ZoneMapping] = {}
        self.partners: Dict[UUID, Partner] = {}
        self.leads: Dict[UUID, Lead] = {}
        self.consents: Dict[UUID, ConsentRecord] = {}
        self.audit_entries: List[AuditEntry] = []

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def add_organization(self, organization: Organization) -> Organization:
        with self._lock:
            self.organizations[organization.organization_id] = organization
        return organization

    def add_site(self, site: Site) -> Site:
        with self._lock:
            self.sites[site.site_id] = site
        return site

    def add_territory(self, territory: Territory) -> Territory:
        with self._lock:
            self.territories[territory.territory_id] = territory
        return territory

    def add_zone_mapping(self, mapping: ZoneMapping) -> ZoneMapping:
        with self._lock:
            for existing in self.zone_mappings.values():
                if (
                    existing.organization_id == mapping.organization_id
                    and existing.prefix == mapping.prefix
                    and existing.mapping_id != mapping.mapping_id
                ):
                    raise ValueError(
                        f"Zone mapping for prefix {mapping.prefix} already exists "
                        f"in organization {mapping.organization_id}"
                    )
            self.zone_mappings[mapping.mapping_id] = mapping
        return mapping

    def add_partner(self, partner: Partner) -> Partner:
        with self._lock:
            self.partners[partner.partner_id] = partner
        return partner

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        with self._lock:
            snapshot = (
                dict(self.partners),
                dict(self.leads),
                dict(self.consents),
                list(self.audit_entries),
            )
            try:
                yield
            except BaseException:
                self.partners, self.leads, self.consents, self.audit_entries = snapshot
                raise

    def _insert_lead(self, lead: Lead) -> None:
        if lead.lead_id in self.leads:
            raise RuntimeError(f"Failed to insert lead: duplicate lead_id {lead.lead_id}")
        self.leads[lead.lead_id] = lead

    def _insert_consent(self, consent: ConsentRecord) -> None:
        if consent.lead_id in self.consents:
            raise RuntimeError(f"Failed to insert consent: lead {consent.lead_id} already has one")
        if consent.lead_id not in self.leads:
            raise RuntimeError(f"Failed to insert consent: unknown lead {consent.lead_id}")
        self.consents[consent.lead_id] = consent

    def _increment_partner_counter(self, partner_id: UUID) -> None:
        partner = self.partners.get(partner_id)
        if partner is None:
            raise RuntimeError(f"Failed to increment counter: unknown partner {partner_id}")
        self.partners[partner_id] = replace(
            partner, total_leads_submitted=partner.total_leads_submitted + 1
        )

    # ------------------------------------------------------------------
    # Partners
    # ------------------------------------------------------------------

    def get_partner_by_key_hash(self, api_key_hash: str) -> Optional[Partner]:
        with self._lock:
            for partner in self.partners.values():
                if partner.api_key_hash and partner.api_key_hash == api_key_hash:
                    return partner
        return None

    def get_partner(self, partner_id: UUID) -> Optional[Partner]:
        with self._lock:
            return self.partners.get(partner_id)

    def update_partner_access(
        self, partner_id: UUID, status: PartnerStatus, api_key_hash: Optional[str] = None
    ) -> None:
        with self._lock:
            partner = self.partners.get(partner_id)
            if partner is None:
                raise RuntimeError(f"Failed to update partner: unknown partner {partner_id}")
            updated = replace(partner, status=status)
            if api_key_hash is not None:
                updated = replace(updated, api_key_hash=api_key_hash)
            self.partners[partner_id] = updated

    # ------------------------------------------------------------------
    # Organization tree
    # ------------------------------------------------------------------

    def get_organization(self, organization_id: UUID) -> Optional[Organization]:
        with self._lock:
            return self.organizations.get(organization_id)

    def get_site(self, site_id: UUID) -> Optional[Site]:
        with self._lock:
            return self.sites.get(site_id)

    def list_active_sites(self, organization_id: UUID) -> List[Site]:
        with self._lock:
            sites = [
                site
                for site in self.sites.values()
                if site.organization_id == organization_id and site.is_active
            ]
        # stable sort keeps insertion order within each group
        return sorted(sites, key=lambda site: not site.is_headquarters)

    # ------------------------------------------------------------------
    # Routing reference data
    # ------------------------------------------------------------------

    def find_child_territories_covering(self, parent_id: UUID, postal_code: str) -> List[Territory]:
        code = normalize_postal_code(postal_code)
        with self._lock:
            matches = []
            for territory in self.territories.values():
                if not territory.is_active or code not in territory.postal_codes:
                    continue
                owner = self.organizations.get(territory.organization_id)
                if (
                    owner is not None
                    and owner.is_active
                    and owner.parent_id == parent_id
                    and owner.rank.is_network_member
                ):
                    matches.append(territory)
        return matches

    def list_active_territories(self) -> List[Territory]:
        with self._lock:
            return [t for t in self.territories.values() if t.is_active]

    def list_active_zone_mappings(self, organization_id: UUID) -> List[ZoneMapping]:
        with self._lock:
            return [
                m
                for m in self.zone_mappings.values()
                if m.organization_id == organization_id and m.is_active
            ]

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------

    def persist_submission(self, lead: Lead, consent: ConsentRecord) -> None:
        with self._transaction():
            self._insert_lead(lead)
            self._insert_consent(consent)
            if lead.partner_id is not None:
                self._increment_partner_counter(lead.partner_id)

    def update_lead_score(self, lead_id: UUID, score: int) -> None:
        with self._lock:
            lead = self._require_lead(lead_id)
            self.leads[lead_id] = lead.with_score(score)

    def assign_lead_site(self, lead_id: UUID, site_id: UUID, status: LeadStatus) -> None:
        with self._lock:
            lead = self._require_lead(lead_id)
            self.leads[lead_id] = replace(lead, site_id=site_id, status=status)

    def _require_lead(self, lead_id: UUID) -> Lead:
        lead = self.leads.get(lead_id)
        if lead is None:
            raise RuntimeError(f"Failed to update lead: unknown lead {lead_id}")
        return lead

    def get_lead(self, lead_id: UUID) -> Optional[Lead]:
        with self._lock:
            return self.leads.get(lead_id)

    def list_leads(self, organization_id: Optional[UUID] = None) -> List[Lead]:
        with self._lock:
            leads = list(self.leads.values())
        if organization_id is not None:
            leads = [lead for lead in leads if lead.organization_id == organization_id]
        return sorted(leads, key=lambda lead: lead.created_at, reverse=True)

    def get_consent(self, lead_id: UUID) -> Optional[ConsentRecord]:
        with self._lock:
            return self.consents.get(lead_id)

    def count_leads_with_email(self, organization_id: UUID, email: str) -> int:
        with self._lock:
            return sum(
                1
                for lead in self.leads.values()
                if lead.organization_id == organization_id and lead.email == email
            )

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def append_audit_entry(self, entry: AuditEntry) -> None:
        with self._lock:
            self.audit_entries.append(entry)

    def list_audit_entries(
        self,
        partner_id: Optional[UUID] = None,
        organization_id: Optional[UUID] = None,
        action: Optional[AuditAction] = None,
        since: Optional[datetime] = None,
    ) -> List[AuditEntry]:
        with self._lock:
            entries = list(self.audit_entries)
        if partner_id is not None:
            entries = [e for e in entries if e.partner_id == partner_id]
        if organization_id is not None:
            entries = [e for e in entries if e.organization_id == organization_id]
        if action is not None:
            entries = [e for e in entries if e.action == action]
        if since is not None:
            entries = [e for e in entries if e.created_at >= since]
        return list(reversed(entries))


__all__ = ["InMemoryGatewayStore"]
