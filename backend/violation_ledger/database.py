"""Async database engine and session management.

Provides the declarative ``Base`` for all ORM models, the application-wide
engine and session factory shared by the storage services, and the
table bootstrap and shutdown hooks used by the app lifespan.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from violation_ledger.config import get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base class for all ORM models."""


settings = get_settings()

engine: AsyncEngine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_db(bind: Optional[AsyncEngine] = None) -> None:
    """Create all tables that do not exist yet.

    Intended for development and tests; production schemas are managed by
    Alembic migrations.
    """
    # Import models so they are registered on Base.metadata
    import violation_ledger.models  # noqa: F401

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def close_db() -> None:
    """Dispose of the engine's connection pool."""
    await engine.dispose()
    logger.info("Database connections closed")
