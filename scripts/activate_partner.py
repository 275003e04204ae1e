#!/usr/bin/env python3
"""
Partner Activation Script

Activates a partner (minting a new API key) or suspends it. The API key is
printed exactly once; only its hash is stored.

Usage:
    python activate_partner.py <partner_id>
    python activate_partner.py <partner_id> --suspend --reason "Contract terminated"
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
from services.partner_credentials import PartnerActivationError, activate_partner, suspend_partner


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Activate or suspend a lead partner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Activate a partner and print its new API key
  python activate_partner.py 123e4567-e89b-12d3-a456-426614174002

  # Suspend a partner
  python activate_partner.py 123e4567-e89b-12d3-a456-426614174002 --suspend --reason "DPA withdrawn"
        """
    )

    parser.add_argument("partner_id", type=UUID, help="Partner UUID")
    parser.add_argument("--suspend", action="store_true", help="Suspend instead of activating")
    parser.add_argument("--reason", default="Suspended by administrator", help="Suspension reason")
    parser.add_argument("--performed-by", default=None, help="Administrator identifier for the audit trail")

    args = parser.parse_args(argv)
    store = SupabaseGatewayStore()

    try:
        if args.suspend:
            suspend_partner(store, args.partner_id, args.reason, performed_by=args.performed_by)
            print(f"[SUCCESS] Partner {args.partner_id} suspended")
            return 0

        result = activate_partner(store, args.partner_id, performed_by=args.performed_by)
        print(f"[SUCCESS] Partner {result.partner_id} activated")
        print()
        print("=" * 60)
        print(f"API key: {result.api_key}")
        print("Store it now: it cannot be displayed again.")
        print("=" * 60)
        return 0

    except PartnerActivationError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
