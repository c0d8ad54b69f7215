"""
Database engine management.

Provides the SQLAlchemy engines that own the connection pools:
- a sync engine (psycopg) used by migrations and scripts
- an async engine (asyncpg) handed to repositories

Both are created lazily and cached per process.
"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from labelstore.core.config import settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_async_engine: AsyncEngine | None = None


def get_engine() -> Engine:
    """
    Create and configure the sync SQLAlchemy engine.

    Uses psycopg driver for sync operations (migrations, scripts).
    Connection health checks via pool_pre_ping.

    Returns:
        Configured SQLAlchemy engine
    """
    global _engine

    if _engine is not None:
        return _engine

    url = settings.sync_url
    if not url:
        raise RuntimeError("DATABASE_URL is required")

    _engine = create_engine(
        url,
        pool_size=5,
        max_overflow=0,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        connect_args={"connect_timeout": settings.db_connect_timeout},
        echo=False,
    )
    return _engine


def dispose_engine() -> None:
    """Dispose the sync engine and forget it."""
    global _engine

    if _engine is not None:
        _engine.dispose()
    _engine = None


# ============================================================================
# Async Database Support
# ============================================================================


def create_fresh_async_engine() -> AsyncEngine:
    """Create a fresh async engine without caching.

    Used for tests to ensure each test gets its own engine bound to its event loop.
    """
    url = settings.async_url
    if not url:
        raise RuntimeError("DATABASE_URL is required")

    return create_async_engine(
        url,
        pool_size=5,
        max_overflow=5,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        echo=False,
        connect_args={
            "server_settings": {"timezone": "UTC"},
            "timeout": settings.db_connect_timeout,
        },
    )


def get_async_engine() -> AsyncEngine:
    """
    Create and configure the async SQLAlchemy engine.

    Uses asyncpg driver. The engine is the connection pool shared by every
    repository in the process; pool limits come from settings.

    Returns:
        Configured async SQLAlchemy engine
    """
    global _async_engine

    if _async_engine is not None:
        return _async_engine

    url = settings.async_url
    if not url:
        raise RuntimeError("DATABASE_URL is required")

    _async_engine = create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        echo=False,
        connect_args={
            "server_settings": {"timezone": "UTC"},
            "timeout": settings.db_connect_timeout,
        },
    )
    logger.debug(
        "Created async engine",
        extra={"pool_size": settings.db_pool_size, "max_overflow": settings.db_max_overflow},
    )
    return _async_engine


async def reset_async_engine() -> None:
    """Reset the async database engine.

    Useful for tests to ensure fresh connections on new event loops.
    """
    global _async_engine

    if _async_engine is not None:
        await _async_engine.dispose()
    _async_engine = None
