#!/usr/bin/env python3
"""
Ownership Invariant Audit

Re-checks persisted leads: every lead must belong to an organization able to
hold legal accountability, and that owner should carry an authorization
number. Exits non-zero when violations are found.

Usage:
    python audit_ownership.py
    python audit_ownership.py --organization <org_id>
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional
from uuid import UUID

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.store import SupabaseGatewayStore
from services.ownership_resolver import audit_ownership_invariants


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Audit lead ownership invariants")
    parser.add_argument("--organization", "-o", type=UUID, help="Restrict to one owner organization")
    args = parser.parse_args(argv)

    try:
        report = audit_ownership_invariants(SupabaseGatewayStore(), args.organization)
    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1

    print("=" * 60)
    print("OWNERSHIP AUDIT")
    print("=" * 60)
    print(f"Leads checked: {report.leads_checked}")
    print(f"Violations:    {len(report.violations)}")
    for violation in report.violations:
        print(f"\n  Lead {violation.lead_id} (owner {violation.organization_id})")
        for issue in violation.issues:
            print(f"    - {issue}")
    print("=" * 60)

    return 0 if report.is_clean else 2


if __name__ == "__main__":
    sys.exit(main())
