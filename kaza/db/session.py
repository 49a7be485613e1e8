"""
Async database engine and session factory.

Request handlers get a session through get_db; startup code and live views
use get_db_context (handed to WebSocket routes by get_session_factory).
Both commit on success and roll back on any error.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from kaza.config import settings

logger = logging.getLogger(__name__)

# Connections are pooled by the database-side transaction pooler, which
# also rules out asyncpg's prepared statement cache
engine = create_async_engine(
    settings.database_url,
    poolclass=NullPool,
    echo=not settings.is_production,
    connect_args={"statement_cache_size": 0},
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session scope for code running outside a request.

    Usage:
        async with get_db_context() as db:
            await calculate_manager_commission(db, manager_id, month, year)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            logger.warning("Database error, session rolled back")
            raise
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, committed when the handler returns."""
    async with get_db_context() as session:
        yield session


def get_session_factory():
    """FastAPI dependency for long-lived handlers that open a session per unit of work."""
    return get_db_context
