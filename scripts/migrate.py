#!/usr/bin/env python
"""Create the rota payroll schema from ORM metadata.

Usage:
    python scripts/migrate.py
    python scripts/migrate.py --database-url postgresql+asyncpg://...
    python scripts/migrate.py --dry-run
"""

import argparse
import asyncio
import sys

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.schema import CreateTable

from rota_payroll.config import get_settings
from rota_payroll.database import create_schema
from rota_payroll.models import Base


async def migrate(database_url: str) -> None:
    engine = create_async_engine(database_url)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Create rota payroll tables")
    parser.add_argument("--database-url", help="Database URL (default: DATABASE_URL)")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print DDL without executing"
    )
    args = parser.parse_args()

    if args.dry_run:
        for table in Base.metadata.sorted_tables:
            print(f"{CreateTable(table)};")
        return 0

    database_url = args.database_url or get_settings().database_url
    print(f"Creating tables on {database_url.split('@')[-1]}")
    asyncio.run(migrate(database_url))
    print(f"Created {len(Base.metadata.sorted_tables)} tables.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
