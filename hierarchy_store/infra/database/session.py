"""Async engine and session management.

The engine is created lazily from DatabaseSettings the first time it is
needed, so importing this module never opens a connection.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy import make_url, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hierarchy_store.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from hierarchy_store.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def safe_url(dsn: str) -> str:
    """Render a database URL with the password masked, for logs."""
    return make_url(dsn).render_as_string(hide_password=True)


def create_engine_from_settings(settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Create a new async engine from database settings.

    Args:
        settings: Database settings; loaded via get_db_settings() when omitted.

    Returns:
        A fresh AsyncEngine. The caller owns it and must dispose it.
    """
    db_settings = settings or get_db_settings()
    kwargs = db_settings.sqlalchemy_engine_kwargs()
    logger.debug("Creating database engine", extra={"url": safe_url(db_settings.dsn)})
    return create_async_engine(db_settings.dsn, **kwargs)


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine_from_settings()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory bound to get_engine()."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            tree = NestedSetTree(SQLAlchemyStore(session), "categories")
            await tree.rebuild()
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_database() -> None:
    """Check that the configured database accepts connections.

    Raises:
        sqlalchemy.exc.OperationalError: If the database can't be reached.
    """
    url = safe_url(get_db_settings().dsn)
    logger.info("Initializing database connection", extra={"url": url})
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Failed to connect to database", extra={"url": url, "error": str(e)})
        raise
    logger.info("Database connection established successfully", extra={"url": url})


async def close_database() -> None:
    """Dispose the process-wide engine and forget the session factory.

    This should be called during shutdown. Safe to call when no engine
    was ever created.
    """
    global _engine, _session_factory
    if _engine is None:
        return

    logger.info("Closing database connection")
    try:
        await _engine.dispose()
        logger.info("Database connection closed successfully")
    except Exception as e:
        logger.exception("Error closing database connection", extra={"error": str(e)})
    finally:
        _engine = None
        _session_factory = None


__all__ = [
    "close_database",
    "create_engine_from_settings",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
    "safe_url",
]
