"""
Domain: Organizations and sites.

An organization network is a tree:
- HEAD_OFFICE nodes sponsor partners and hold the legal authorization number.
- FRANCHISE and BRANCH nodes operate sites but never hold legal accountability;
  records created at their sites belong to their parent.
- STANDALONE organizations sit outside any network and own their own records.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID


class OrganizationRank(str, Enum):
    HEAD_OFFICE = "HEAD_OFFICE"
    FRANCHISE = "FRANCHISE"
    BRANCH = "BRANCH"
    STANDALONE = "STANDALONE"

    @property
    def holds_legal_accountability(self) -> bool:
        """FRANCHISE and BRANCH delegate accountability to their parent."""

        return self not in (OrganizationRank.FRANCHISE, OrganizationRank.BRANCH)

    @property
    def is_network_member(self) -> bool:
        return self in (OrganizationRank.FRANCHISE, OrganizationRank.BRANCH)


@dataclass(frozen=True, slots=True)
class Organization:
    organization_id: UUID
    name: str
    rank: OrganizationRank
    parent_id: Optional[UUID] = None
    authorization_number: Optional[str] = None  # legal registration held by the accountable node
    is_active: bool = True

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name must not be empty")
        if self.parent_id is not None and self.parent_id == self.organization_id:
            raise ValueError("organization cannot be its own parent")


@dataclass(frozen=True, slots=True)
class Site:
    """
    Physical location operated by an organization.

    The headquarters flag decides which site receives routed leads when an
    organization operates several active sites.
    """

    site_id: UUID
    organization_id: UUID
    name: str
    is_headquarters: bool = False
    is_active: bool = True


def pick_dispatch_site(sites: list[Site]) -> Optional[Site]:
    """
    Return the active site a routed lead should land on.

    Headquarters sites take precedence; otherwise the first active site in the
    given order is used. Returns None when the organization has no active site.
    """

    active = [site for site in sites if site.is_active]
    for site in active:
        if site.is_headquarters:
            return site
    return active[0] if active else None
