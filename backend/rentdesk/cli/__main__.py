# backend/rentdesk/cli/__main__.py
from __future__ import annotations

import argparse

from rentdesk.cli.seed_demo import seed_demo


def main() -> None:
    p = argparse.ArgumentParser(prog="python -m rentdesk.cli", description="Seed a demo landlord portfolio.")
    p.add_argument("--landlord-email", default="landlord@demo.local")
    p.add_argument("--landlord-name", default="Demo Landlord")
    p.add_argument("--password", default="demo-password")
    p.add_argument("--property-name", default="Sunset Apartments")
    p.add_argument("--property-address", default="123 Sunset Blvd")
    p.add_argument("--unit", dest="units", action="append", default=None, help="repeatable; defaults to 101 102 203")
    args = p.parse_args()

    out = seed_demo(
        landlord_email=args.landlord_email,
        landlord_name=args.landlord_name,
        password=args.password,
        property_name=args.property_name,
        property_address=args.property_address,
        unit_numbers=args.units or ["101", "102", "203"],
    )
    print(
        {
            "ok": True,
            "landlord_id": out.landlord_id,
            "property_id": out.property_id,
            "unit_numbers": out.unit_numbers,
            "tenant_ids": out.tenant_ids,
        }
    )


if __name__ == "__main__":
    main()
