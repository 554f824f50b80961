"""
Database Connection Management

Async database engine and session factory with SQLAlchemy 2.0.
Implements startup verification, optional schema creation, health checks,
and graceful shutdown.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
import time

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from sqlalchemy import text

from dashboard_analytics.config import get_settings
from dashboard_analytics.database.models import Base

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global engine and session factory
_engine: Optional[AsyncEngine] = None
_async_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseNotInitializedError(RuntimeError):
    """Raised when a session is requested before init_database()"""


async def init_database(
    url: Optional[str] = None,
    create_schema: Optional[bool] = None,
) -> AsyncEngine:
    """
    Initialize the database engine.

    Args:
        url: Override the configured async database URL
        create_schema: Create tables and indexes if missing (defaults to settings)

    Returns:
        AsyncEngine: The initialized database engine
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    # AsyncPG and aiosqlite manage their own connections
    _engine = create_async_engine(
        url or settings.database.async_url,
        echo=settings.database.echo,
        pool_pre_ping=True,
        poolclass=NullPool,
    )

    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    if create_schema is None:
        create_schema = settings.database.create_schema

    try:
        async with _engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if create_schema:
                await conn.run_sync(Base.metadata.create_all)
        logger.info(
            "Database connection established",
            dialect=_engine.dialect.name,
            schema_created=create_schema,
        )
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        raise

    return _engine


async def close_database() -> None:
    """Dispose of the database engine."""
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database connection pool closed")


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    Context manager that provides a database session and handles
    commit/rollback/close automatically.

    Yields:
        AsyncSession: Database session

    Example:
        async with get_db() as db:
            result = await db.execute(query)
    """
    if _async_session_factory is None:
        logger.error("Database not initialized when get_db() called")
        raise DatabaseNotInitializedError("Database not initialized. Call init_database() first.")

    session = _async_session_factory()
    try:
        yield session
        await session.commit()
    except Exception as e:
        logger.error("Database session error, rolling back", error=str(e), error_type=type(e).__name__)
        await session.rollback()
        raise
    finally:
        await session.close()


async def check_database_health() -> dict:
    """
    Check database health status.

    Returns:
        dict: Health status with latency information
    """
    try:
        start = time.perf_counter()
        async with get_db() as db:
            await db.execute(text("SELECT 1"))
        latency_ms = (time.perf_counter() - start) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(latency_ms, 2),
        }
    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
        }
