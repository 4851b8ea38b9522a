"""
Database Persistence Layer - Core Engine.

============================================================
ASYNC DATABASE PERSISTENCE
============================================================

This module owns the SQLAlchemy async engine, the
declarative base and session management.

Requirements:
- SQLAlchemy 2.x async ORM
- PostgreSQL (asyncpg) in production, SQLite (aiosqlite)
  for local runs and tests
- Explicit transaction management
- Hard failures on persistence errors

============================================================
"""

import os
import logging
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from dotenv import load_dotenv

from core.exceptions import PersistenceError

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# =============================================================
# DECLARATIVE BASE
# =============================================================

Base = declarative_base()

# =============================================================
# DATABASE ENGINE
# =============================================================

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./maintenance.db"

_engine: Optional[AsyncEngine] = None
_SessionFactory: Optional[async_sessionmaker] = None


def get_database_url() -> str:
    """Get async database URL from environment."""
    url = os.getenv("DATABASE_URL")

    if url and url.startswith("postgresql://"):
        # Plain URLs are upgraded to the async driver
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    if not url:
        url = DEFAULT_DATABASE_URL
        logger.warning(f"DATABASE_URL not set, using default: {url}")

    return url


def create_database_engine(
    database_url: Optional[str] = None,
    pool_size: int = 10,
    max_overflow: int = 20,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> AsyncEngine:
    """
    Create an async SQLAlchemy engine.

    Pool options only apply to server databases; SQLite uses
    the driver default pool.

    Args:
        database_url: Override for DATABASE_URL
        pool_size: Number of connections to keep in pool
        max_overflow: Max connections beyond pool_size
        pool_timeout: Seconds to wait for available connection
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements

    Returns:
        SQLAlchemy AsyncEngine
    """
    url = database_url or get_database_url()

    logger.info(f"Creating database engine for: {url.split('@')[-1]}")

    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,
        echo=echo,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Build a session factory bound to engine."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine() -> AsyncEngine:
    """Get the process-wide engine, creating if necessary."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def get_session_factory() -> async_sessionmaker:
    """Get the process-wide session factory, creating if necessary."""
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = create_session_factory(get_engine())
    return _SessionFactory


# =============================================================
# SESSION MANAGEMENT
# =============================================================


@asynccontextmanager
async def transaction_scope(
    session_factory: Optional[async_sessionmaker] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Context manager for explicit transaction boundaries.

    Commits only if no exception occurs.
    Rolls back on ANY exception.

    Usage:
        async with transaction_scope(factory) as session:
            session.add(record)
            # Commits automatically at end
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
            logger.debug("Database transaction committed successfully")
        except SQLAlchemyError as e:
            logger.error(f"Database transaction failed, rolling back: {e}")
            await session.rollback()
            raise PersistenceError(f"Transaction failed: {e}", cause=e) from e
        except Exception:
            await session.rollback()
            raise


# =============================================================
# DATABASE INITIALIZATION
# =============================================================


async def verify_database_connection(engine: Optional[AsyncEngine] = None) -> bool:
    """
    Verify database connection is working.

    Raises:
        PersistenceError if connection fails
    """
    engine = engine or get_engine()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection verified successfully")
        return True
    except OperationalError as e:
        logger.error(f"Database connection failed: {e}")
        raise PersistenceError(f"Cannot connect to database: {e}", cause=e) from e


async def create_all_tables(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all tables defined in ORM models.

    Imports the model modules so they register with Base.
    """
    # Register models with Base
    from . import models  # noqa: F401
    from predictive_maintenance import models as alert_models  # noqa: F401

    engine = engine or get_engine()

    try:
        logger.info("Creating database tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.error(f"Failed to create database tables: {e}")
        raise PersistenceError(f"Table creation failed: {e}", operation="create_all", cause=e) from e


async def initialize_database(engine: Optional[AsyncEngine] = None) -> None:
    """
    Full database initialization sequence.

    1. Verify connection
    2. Create tables if not exist
    """
    logger.info("=" * 60)
    logger.info("INITIALIZING MAINTENANCE DATABASE")
    logger.info("=" * 60)

    await verify_database_connection(engine)
    await create_all_tables(engine)

    logger.info("DATABASE INITIALIZATION COMPLETE")


async def dispose_engine() -> None:
    """Dispose of the process-wide engine."""
    global _engine, _SessionFactory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _SessionFactory = None


__all__ = [
    "Base",
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "create_database_engine",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "transaction_scope",
    "verify_database_connection",
    "create_all_tables",
    "initialize_database",
    "dispose_engine",
]
