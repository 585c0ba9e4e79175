"""Database engine and session factory."""

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import get_settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the engine on first use."""
    settings = get_settings()
    options = {"echo": settings.db_echo}
    if not settings.database_url.startswith("sqlite"):
        options.update(pool_size=settings.db_pool_size, max_overflow=10)
    return create_async_engine(settings.database_url, **options)


@lru_cache()
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for one request."""
    async with get_session_maker()() as session:
        try:
            yield session
        except SQLAlchemyError as e:
            logger.error(f"Database session error: {e}")
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables that do not exist yet."""
    try:
        from .models import Base

        async with get_engine().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise


async def close_db() -> None:
    """Dispose of pooled connections."""
    await get_engine().dispose()
    logger.info("Database connections closed")
