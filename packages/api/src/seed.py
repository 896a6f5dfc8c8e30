# This project was developed with assistance from AI tools.
"""CLI entrypoint for task catalog seeding.

Usage:
    python -m src.seed                # Seed the task catalog
    python -m src.seed --create-all   # Create missing tables first
"""

import argparse
import asyncio
import json

from db import DatabaseService

from .core.config import settings
from .services.seed.seeder import seed_task_templates


async def main(create_all: bool = False) -> None:
    """Run catalog seeding against DATABASE_URL."""
    db_service = DatabaseService(settings.DATABASE_URL)
    try:
        if create_all:
            await db_service.create_all()
        async with db_service.session() as session:
            result = await seed_task_templates(session)
            print(json.dumps(result, indent=2, default=str))
    finally:
        await db_service.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Keystone Closings task catalog")
    parser.add_argument(
        "--create-all",
        action="store_true",
        help="Create missing tables before seeding",
    )
    args = parser.parse_args()
    asyncio.run(main(create_all=args.create_all))
