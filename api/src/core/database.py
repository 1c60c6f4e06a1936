"""
Database Connection Management

Async SQLAlchemy engine and session handling.

Provides:
- get_db: FastAPI dependency yielding a request-scoped session
- get_db_context: async context manager for workers and background jobs
- init_db / close_db: lifecycle hooks for the API and worker processes
"""

import logging
from contextlib import asynccontextmanager
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config import get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get (or lazily create) the global async engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            echo=settings.debug,
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get (or lazily create) the global session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for a request-scoped session.

    The whole request runs in one transaction: committed when the handler
    returns, rolled back if it raises.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session context manager for code running outside a request.

    Usage:
        async with get_db_context() as db:
            ...
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create the engine and verify connectivity."""
    engine = get_engine()
    async with engine.connect() as conn:
        await conn.exec_driver_sql("SELECT 1")
    logger.info("Database engine initialized")


async def close_db() -> None:
    """Dispose of the engine and its pooled connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database engine disposed")


def reset_db_state() -> None:
    """Forget the global engine without disposing it (tests switch settings)."""
    global _engine, _session_factory
    _engine = None
    _session_factory = None


DbSession = Annotated[AsyncSession, Depends(get_db)]
