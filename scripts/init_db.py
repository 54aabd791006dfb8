"""Script to initialize the database.

Usage:
    python scripts/init_db.py            # create tables
    python scripts/init_db.py --seed     # create tables and a sample doctor/queue
"""

import argparse
import asyncio

from mediqueue.database import engine
from mediqueue.middleware.logging import configure_logging
from mediqueue.seed import create_tables, seed_sample_data


async def init_db(seed: bool) -> None:
    """Create all tables, optionally adding sample data."""
    await create_tables()
    if seed:
        await seed_sample_data()
    await engine.dispose()

    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the MediQueue database")
    parser.add_argument("--seed", action="store_true", help="insert a sample doctor and queue")
    args = parser.parse_args()

    configure_logging()
    asyncio.run(init_db(args.seed))
