"""Create the pay run engine schema.

Usage:
    python -m scripts.init_db [--database-url URL] [--drop]

Creates every table, index and constraint declared on the ORM models.
With ``--drop`` existing tables are dropped first.
"""

from __future__ import annotations

import argparse
import asyncio

from payrun_engine.config import get_settings
from payrun_engine.database import get_engine
from payrun_engine.models import Base


def _target(database_url: str) -> str:
    return database_url.split("@")[1] if "@" in database_url else database_url


async def init_db(database_url: str, drop: bool = False) -> None:
    """Create (optionally recreate) all tables."""
    print(f"Target database: {_target(database_url)}")

    engine = get_engine(database_url)
    try:
        async with engine.begin() as conn:
            if drop:
                print("Dropping existing tables...")
                await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        print(f"Schema ready: {', '.join(sorted(Base.metadata.tables))}")
    finally:
        await engine.dispose()


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Create the pay run engine schema")
    parser.add_argument(
        "--database-url",
        type=str,
        default=get_settings().database_url,
        help="Database URL (default: from settings)",
    )
    parser.add_argument(
        "--drop",
        action="store_true",
        help="Drop existing tables before creating them",
    )

    args = parser.parse_args()

    asyncio.run(init_db(args.database_url, drop=args.drop))


if __name__ == "__main__":
    main()
