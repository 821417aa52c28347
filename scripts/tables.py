import argparse
import asyncio
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pinchat.core.log_config import setup_logging
from pinchat.database.postgres import dispose_db, engine, initialize_db
from pinchat.models.base import Base


async def create_tables(reset: bool = False):
    """
    Create the chat tables, optionally dropping existing ones (and every
    account, room and message in them) first.
    """
    if reset:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await initialize_db()
    await dispose_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create the pinchat database tables.")
    parser.add_argument("--reset", action="store_true", help="drop all tables before creating them")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(create_tables(reset=args.reset))
