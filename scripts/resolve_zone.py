#!/usr/bin/env python3
"""
Zone Resolution Script

Shows which site an organization's zone mappings select for a postal code,
and optionally assigns a lead to its zone site.

Usage:
    python resolve_zone.py --organization <org_id> --postal-code 69100
    python resolve_zone.py --dispatch-lead <lead_id>
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
from services.territory_resolver import auto_dispatch_lead, resolve_zone


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Resolve postal codes against zone mappings")
    parser.add_argument("--organization", "-o", type=UUID, help="Organization UUID")
    parser.add_argument("--postal-code", "-p", help="Postal code to resolve")
    parser.add_argument("--dispatch-lead", type=UUID, help="Assign this lead to its zone site")

    args = parser.parse_args(argv)
    store = SupabaseGatewayStore()

    try:
        if args.dispatch_lead:
            resolution = auto_dispatch_lead(store, args.dispatch_lead)
            if resolution is None:
                print(f"No zone mapping matches lead {args.dispatch_lead}; left unassigned")
                return 1
            print(f"Lead {args.dispatch_lead} dispatched to site {resolution.site_id} (prefix {resolution.prefix})")
            return 0

        if not args.organization or not args.postal_code:
            parser.error("--organization and --postal-code are required unless --dispatch-lead is given")

        resolution = resolve_zone(store, args.organization, args.postal_code)
        if resolution is None:
            print(f"No zone mapping matches {args.postal_code}")
            return 1

        print(f"Postal code: {args.postal_code}")
        print(f"  Prefix:  {resolution.prefix}")
        print(f"  Site:    {resolution.site_id}")
        print(f"  Label:   {resolution.label or '-'}")
        return 0

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
