"""
Domain: Routing reference data.

Two independent structures route leads geographically:
- Territory: an admin-curated set of exact postal codes owned by a franchise
  or branch.
- ZoneMapping: a numeric postal-code prefix mapped to a target site inside one
  organization ("longest prefix wins").

Both are read-mostly reference data. Overlapping postal codes across
territories are allowed and reported as data-quality warnings, never rejected.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Optional
from uuid import UUID

_PREFIX_PATTERN = re.compile(r"^[0-9]{1,5}$")


def normalize_postal_code(value: str) -> str:
    """Strip all whitespace ("69 100" -> "69100")."""

    return re.sub(r"\s", "", value or "")


@dataclass(frozen=True, slots=True)
class Territory:
    territory_id: UUID
    organization_id: UUID
    name: str
    postal_codes: FrozenSet[str] = field(default_factory=frozenset)
    is_exclusive: bool = False
    is_active: bool = True

    def covers(self, postal_code: str) -> bool:
        return normalize_postal_code(postal_code) in self.postal_codes


@dataclass(frozen=True, slots=True)
class ZoneMapping:
    mapping_id: UUID
    organization_id: UUID
    prefix: str
    site_id: UUID
    label: Optional[str] = None
    is_active: bool = True

    def __post_init__(self) -> None:
        prefix = (self.prefix or "").strip()
        if not _PREFIX_PATTERN.match(prefix):
            raise ValueError(f"prefix must be 1-5 digits, got {self.prefix!r}")
        # Stored stripped so length comparisons and uniqueness see the digits only
        object.__setattr__(self, "prefix", prefix)

    def matches(self, postal_code: str) -> bool:
        return normalize_postal_code(postal_code).startswith(self.prefix)


@dataclass(frozen=True, slots=True)
class TerritoryOverlap:
    """Postal codes shared between a candidate territory and an existing one."""

    territory_id: UUID
    territory_name: str
    organization_id: UUID
    overlapping_postal_codes: FrozenSet[str]
