"""Seed script for initial tax rules.

Run with:
    python scripts/seed_tax_rules.py

This creates the tables if needed, then the NDFL rule and the numbering rule
used for calculation records.
"""

from __future__ import annotations

import asyncio

from hr_payroll.config import get_settings
from hr_payroll.database import Database
from hr_payroll.seed import seed_defaults


async def main() -> None:
    """Run all seed functions."""
    database = Database.from_settings(get_settings())
    try:
        await database.create_all()
        async with database.session() as session:
            created = await seed_defaults(session, user_id="seed-script")
        for code in created:
            print(f"Created rule {code}")
        print("Seed complete!")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(main())
