# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification database connection management using SQLAlchemy async.

This module provides async database connections for the notification
database: notifications, preferences, rules and recipients.

Uses SQLAlchemy 2.0 async API with asyncpg driver.

Two access patterns are supported:
- Application process: init_database() once at startup, then
  get_sessionmaker() / get_session().
- Dramatiq worker threads: get_worker_sessionmaker(), which keeps one
  engine per thread because async engines are bound to the event loop
  they were created on.

Example:
    from src.infrastructure.database.connection import (
        init_database,
        get_session,
    )

    # Initialize at application startup
    await init_database(settings)

    async with get_session() as session:
        result = await session.execute(select(NotificationRecord))
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, AsyncIterator, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from src.core.config.settings import Settings

logger = logging.getLogger(__name__)

# Module-level state for the application process
_engine: Optional[AsyncEngine] = None
_sessionmaker: Optional[async_sessionmaker[AsyncSession]] = None

# Per-thread state for worker threads
_thread_local = threading.local()


class DatabaseError(Exception):
    """Base exception for database operations.

    Attributes:
        message: Human-readable error description.
        original_error: The underlying SQLAlchemy or database error.
    """

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        """Initialize the database error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception that caused this error.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def create_engine(settings: "Settings") -> AsyncEngine:
    """Create an async engine from database settings.

    SQLite URLs (used in tests and local runs) get no pool sizing.

    Args:
        settings: Application settings containing database configuration.

    Returns:
        A new AsyncEngine.
    """
    db = settings.database
    if db.url.startswith("sqlite"):
        return create_async_engine(db.url, echo=db.echo)
    return create_async_engine(
        db.url,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
        echo=db.echo,
    )


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create the sessionmaker used by all repositories."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_database(settings: "Settings") -> None:
    """Initialize the database connection pool.

    This should be called once at application startup.

    Args:
        settings: Application settings containing database configuration.

    Raises:
        DatabaseError: If connection pool creation fails.
    """
    global _engine, _sessionmaker

    try:
        _engine = create_engine(settings)
        _sessionmaker = create_sessionmaker(_engine)
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to initialize database connection", e) from e


async def close_database() -> None:
    """Close the database connection pool.

    This should be called at application shutdown to properly
    close all connections in the pool.
    """
    global _engine, _sessionmaker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _sessionmaker = None


def get_engine() -> AsyncEngine:
    """Get the database async engine.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _engine is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the database sessionmaker.

    Raises:
        DatabaseError: If the database has not been initialized.
    """
    if _sessionmaker is None:
        raise DatabaseError("Database not initialized. Call init_database() first.")
    return _sessionmaker


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    """Get an async session for the notification database.

    The session is automatically committed on success and rolled back
    on exception.

    Yields:
        AsyncSession for database operations.

    Raises:
        DatabaseError: If the database has not been initialized or
            if a database operation fails.
    """
    sessionmaker = get_sessionmaker()

    async with sessionmaker() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise DatabaseError("Database operation failed", e) from e
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Check if the database is reachable.

    Returns:
        True if the database is reachable, False otherwise.
    """
    if _engine is None:
        return False

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


def get_worker_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Get the sessionmaker for the current worker thread.

    Each Dramatiq worker thread gets its own engine and sessionmaker,
    created on first use and bound to that thread's event loop.

    Returns:
        Thread-local sessionmaker.
    """
    sessionmaker = getattr(_thread_local, "sessionmaker", None)

    if sessionmaker is None:
        from src.core.config import get_settings

        engine = create_engine(get_settings())
        sessionmaker = create_sessionmaker(engine)
        _thread_local.engine = engine
        _thread_local.sessionmaker = sessionmaker
        logger.debug("Created worker database engine for thread %s", threading.get_ident())

    return sessionmaker


def clear_worker_database() -> None:
    """Forget the current thread's engine and sessionmaker.

    Called by run_async() when a new event loop is created for a thread,
    so the next access builds an engine bound to the new loop. Safe to
    call when nothing was created.
    """
    _thread_local.engine = None
    _thread_local.sessionmaker = None
