#!/usr/bin/env python3
"""
Territory Overlap Report

Lists active territories sharing postal codes. Overlaps are allowed but make
routing depend on database order, so they are worth reviewing.

Usage:
    python check_territory_overlaps.py
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.store import SupabaseGatewayStore
from services.territory_resolver import check_territory_conflicts


def main() -> int:
    try:
        conflicts = check_territory_conflicts(SupabaseGatewayStore())
    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1

    if not conflicts:
        print("No overlapping territories")
        return 0

    print(f"[WARNING] {len(conflicts)} territories overlap with others")
    for conflict in conflicts:
        print(f"\n  {conflict.territory_name} ({conflict.territory_id})")
        for overlap in conflict.overlaps:
            codes = ", ".join(sorted(overlap.overlapping_postal_codes))
            print(f"    shares with {overlap.territory_name}: {codes}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
