"""
Database Module

Async SQLAlchemy engine, session factory and the declarative Base.

Usage in FastAPI endpoints:
    @router.get("/")
    async def my_endpoint(db: AsyncSession = Depends(get_db)):
        ...
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from zord.core.config import settings

logger = logging.getLogger(__name__)


# ============================================================
# Engine
# ============================================================

def _engine_kwargs() -> dict:
    """Pool sizing is only meaningful for server databases."""
    kwargs = {"echo": settings.SQLALCHEMY_ECHO, "pool_pre_ping": True}
    if settings.DB_POOL_MIN_SIZE:
        kwargs["pool_size"] = settings.DB_POOL_MIN_SIZE
    if settings.DB_POOL_MAX_SIZE:
        min_size = settings.DB_POOL_MIN_SIZE or 5
        kwargs["max_overflow"] = max(0, settings.DB_POOL_MAX_SIZE - min_size)
    return kwargs


engine = create_async_engine(str(settings.DATABASE_URL), **_engine_kwargs())

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


# ============================================================
# Session Dependency
# ============================================================

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield a database session for one request.

    Uncommitted work is rolled back if the request fails.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ============================================================
# Health Check
# ============================================================

async def check_db_connection() -> bool:
    """
    Check if the database is reachable.

    Returns:
        True if a trivial query succeeds, False otherwise
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def close_db_engine() -> None:
    """Dispose the engine's connection pool during shutdown."""
    await engine.dispose()
    logger.info("Database engine disposed")
