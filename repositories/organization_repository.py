"""
Organization repository (persistence).

Read access to the organization tree and the sites each organization operates.
No hierarchy rules live here; ownership resolution is a service concern.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional
from uuid import UUID

from domain.organization import Organization, OrganizationRank, Site
from repositories.client import get_supabase
from repositories.rows import parse_optional_uuid, rows_or_raise

_ORGANIZATIONS_TABLE: str = "organizations"
_SITES_TABLE: str = "sites"


def row_to_organization(row: Mapping[str, Any]) -> Organization:
    return Organization(
        organization_id=UUID(str(row["organization_id"])),
        name=str(row["name"]),
        rank=OrganizationRank(str(row.get("rank") or OrganizationRank.STANDALONE.value)),
        parent_id=parse_optional_uuid(row, "parent_id"),
        authorization_number=row.get("authorization_number") or None,
        is_active=bool(row.get("is_active", True)),
    )


def row_to_site(row: Mapping[str, Any]) -> Site:
    return Site(
        site_id=UUID(str(row["site_id"])),
        organization_id=UUID(str(row["organization_id"])),
        name=str(row["name"]),
        is_headquarters=bool(row.get("is_headquarters", False)),
        is_active=bool(row.get("is_active", True)),
    )


def get_organization_by_id(organization_id: UUID) -> Optional[Organization]:
    response = (
        get_supabase()
        .table(_ORGANIZATIONS_TABLE)
        .select("*")
        .eq("organization_id", str(organization_id))
        .limit(1)
        .execute()
    )
    rows = rows_or_raise(response, "fetch organization")
    return row_to_organization(rows[0]) if rows else None


def get_site_by_id(site_id: UUID) -> Optional[Site]:
    response = (
        get_supabase()
        .table(_SITES_TABLE)
        .select("*")
        .eq("site_id", str(site_id))
        .limit(1)
        .execute()
    )
    rows = rows_or_raise(response, "fetch site")
    return row_to_site(rows[0]) if rows else None


def list_active_sites(organization_id: UUID) -> List[Site]:
    """
    List active sites of an organization, headquarters first.
    """

    response = (
        get_supabase()
        .table(_SITES_TABLE)
        .select("*")
        .eq("organization_id", str(organization_id))
        .eq("is_active", True)
        .order("is_headquarters", desc=True)
        .execute()
    )
    rows = rows_or_raise(response, "list sites")
    return [row_to_site(row) for row in rows]


__all__ = [
    "get_organization_by_id",
    "get_site_by_id",
    "list_active_sites",
    "row_to_organization",
    "row_to_site",
]
