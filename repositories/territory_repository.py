"""
Territory and zone-mapping repository (persistence).

Read-only access to routing reference data. Matching rules (exact territory
membership, longest prefix) live in services/territory_resolver.py.
"""

from __future__ import annotations

from typing import Any, List, Mapping
from uuid import UUID

from domain.organization import OrganizationRank
from domain.territory import Territory, ZoneMapping
from repositories.client import get_supabase
from repositories.rows import rows_or_raise

_TERRITORIES_TABLE: str = "territories"
_ZONE_MAPPINGS_TABLE: str = "zone_mappings"

_NETWORK_RANKS = [OrganizationRank.FRANCHISE.value, OrganizationRank.BRANCH.value]


def row_to_territory(row: Mapping[str, Any]) -> Territory:
    return Territory(
        territory_id=UUID(str(row["territory_id"])),
        organization_id=UUID(str(row["organization_id"])),
        name=str(row["name"]),
        postal_codes=frozenset(str(code) for code in (row.get("postal_codes") or [])),
        is_exclusive=bool(row.get("is_exclusive", False)),
        is_active=bool(row.get("is_active", True)),
    )


def row_to_zone_mapping(row: Mapping[str, Any]) -> ZoneMapping:
    return ZoneMapping(
        mapping_id=UUID(str(row["mapping_id"])),
        organization_id=UUID(str(row["organization_id"])),
        prefix=str(row["prefix"]).strip(),
        site_id=UUID(str(row["site_id"])),
        label=row.get("label") or None,
        is_active=bool(row.get("is_active", True)),
    )


def find_child_territories_covering(parent_id: UUID, postal_code: str) -> List[Territory]:
    """
    Active territories containing postal_code whose owner is an active
    FRANCHISE/BRANCH child of parent_id.

    Result order is the database's; callers must not assume precedence.
    """

    response = (
        get_supabase()
        .table(_TERRITORIES_TABLE)
        .select("*, organizations!inner(organization_id, parent_id, rank, is_active)")
        .eq("is_active", True)
        .contains("postal_codes", [postal_code])
        .eq("organizations.parent_id", str(parent_id))
        .eq("organizations.is_active", True)
        .in_("organizations.rank", _NETWORK_RANKS)
        .execute()
    )
    rows = rows_or_raise(response, "find territories")
    return [row_to_territory(row) for row in rows]


def list_active_territories() -> List[Territory]:
    response = get_supabase().table(_TERRITORIES_TABLE).select("*").eq("is_active", True).execute()
    rows = rows_or_raise(response, "list territories")
    return [row_to_territory(row) for row in rows]


def list_active_zone_mappings(organization_id: UUID) -> List[ZoneMapping]:
    response = (
        get_supabase()
        .table(_ZONE_MAPPINGS_TABLE)
        .select("*")
        .eq("organization_id", str(organization_id))
        .eq("is_active", True)
        .execute()
    )
    rows = rows_or_raise(response, "list zone mappings")
    return [row_to_zone_mapping(row) for row in rows]


__all__ = [
    "find_child_territories_covering",
    "list_active_territories",
    "list_active_zone_mappings",
]
