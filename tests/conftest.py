"""
Pytest configuration and shared fixtures.

Adds the project root to the Python path so tests can import domain,
repositories, services and api, and seeds an in-memory store with a small
organization network:

    Head office (HEAD_OFFICE, authorized)
    ├── Lyon franchise (FRANCHISE) - HQ site + secondary site
    └── (partner "Acme Leads" sponsored by the head office)
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import UUID

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.organization import Organization, OrganizationRank, Site  # noqa: E402
from domain.partner import Partner, PartnerStatus  # noqa: E402
from repositories.memory_store import InMemoryGatewayStore  # noqa: E402
from services.partner_credentials import hash_api_key  # noqa: E402

HEAD_OFFICE_ID = UUID("00000000-0000-0000-0000-0000000000a1")
HEAD_OFFICE_SITE_ID = UUID("00000000-0000-0000-0000-0000000000b1")
FRANCHISE_ID = UUID("00000000-0000-0000-0000-0000000000a2")
FRANCHISE_HQ_SITE_ID = UUID("00000000-0000-0000-0000-0000000000b2")
FRANCHISE_ANNEX_SITE_ID = UUID("00000000-0000-0000-0000-0000000000b3")
PARTNER_ID = UUID("00000000-0000-0000-0000-0000000000c1")

API_KEY = "pk_live_test_key_0123456789"
SIGNED_AT = datetime(2026, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2026, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; call to read, advance() to move forward."""

    def __init__(self, start: datetime = NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def make_partner(**overrides) -> Partner:
    values = dict(
        partner_id=PARTNER_ID,
        organization_id=HEAD_OFFICE_ID,
        company_name="Acme Leads",
        status=PartnerStatus.ACTIVE,
        api_key_hash=hash_api_key(API_KEY),
        hourly_limit=100,
        contract_signed_at=SIGNED_AT,
        contract_expires_at=SIGNED_AT + timedelta(days=365),
        dpa_signed_at=SIGNED_AT,
    )
    values.update(overrides)
    return Partner(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryGatewayStore:
    store = InMemoryGatewayStore()
    store.add_organization(
        Organization(
            organization_id=HEAD_OFFICE_ID,
            name="Formation Siège",
            rank=OrganizationRank.HEAD_OFFICE,
            authorization_number="11 75 12345 75",
        )
    )
    store.add_organization(
        Organization(
            organization_id=FRANCHISE_ID,
            name="Formation Lyon Nord",
            rank=OrganizationRank.FRANCHISE,
            parent_id=HEAD_OFFICE_ID,
        )
    )
    store.add_site(Site(site_id=HEAD_OFFICE_SITE_ID, organization_id=HEAD_OFFICE_ID, name="Paris", is_headquarters=True))
    # Annex inserted first so headquarters precedence is exercised
    store.add_site(Site(site_id=FRANCHISE_ANNEX_SITE_ID, organization_id=FRANCHISE_ID, name="Lyon Annexe"))
    store.add_site(
        Site(site_id=FRANCHISE_HQ_SITE_ID, organization_id=FRANCHISE_ID, name="Lyon Centre", is_headquarters=True)
    )
    store.add_partner(make_partner())
    return store


@pytest.fixture
def valid_payload() -> dict:
    return {
        "first_name": "Camille",
        "last_name": "Durand",
        "email": "camille.durand@entreprise.fr",
        "phone": "06 12 34 56 78",
        "street_address": "12 rue de la Paix",
        "postal_code": "75001",
        "city": "Paris",
        "desired_program": "Certificat bureautique avancée",
        "source_url": "https://partner.example.com/formulaire",
        "consent_date": "2026-06-01T11:30:00+02:00",
        "consent_text": "J'accepte que mes données soient transmises à un organisme de formation partenaire.",
        "external_id": "ACME-0001",
    }
