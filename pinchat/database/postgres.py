from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker

from pinchat.core.config import settings
from pinchat.core.log_config import logger
from pinchat.models.base import Base

# Register every table on Base.metadata before create_all runs
from pinchat.models import message, room, room_membership, user  # noqa: F401

engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_size=settings.database_pool_size,
    pool_pre_ping=True,
)

# Objects stay usable after commit; services return them to the API layer
async_session = sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_db_session():
    """
    Yield one session per request.

    Services commit their own writes; anything still pending when the route
    returns is committed here, and an error rolls the whole request back.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

async def initialize_db():
    """Create the users, rooms, memberships and messages tables if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready ({len(Base.metadata.tables)} tables)")

async def dispose_db():
    await engine.dispose()
    logger.info("Database connections closed")
