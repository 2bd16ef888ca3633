# src/tezeus/shared/database/database.py
"""
Async SQLAlchemy engine & session factory.

This module owns:
  - Creating & caching the global AsyncEngine
  - Exposing an async session context manager (`get_async_session`)
  - Safe engine disposal for shutdown hooks and tests

Workspace scoping is applied in repositories (every query filters on
workspace_id); keep this layer infra-only.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from tezeus.config import get_settings
from tezeus.shared.logging import get_logger

logger = get_logger(__name__)

# ---- Globals ---------------------------------------------------------------

_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


# ---- Engine lifecycle ------------------------------------------------------

def _engine_kwargs(database_url: str) -> Dict[str, Any]:
    settings = get_settings()
    if database_url.startswith("sqlite"):
        return {"poolclass": NullPool, "connect_args": {"timeout": 30}}
    if settings.TESTING:
        return {"poolclass": NullPool}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "connect_args": {
            "server_settings": {
                "application_name": f"tezeus-api-{settings.ENVIRONMENT}",
                "statement_timeout": "30000",  # 30s
            }
        },
    }


async def create_database_engine(database_url: Optional[str] = None, *, smoke_test: bool = True) -> AsyncEngine:
    """
    Create and configure the async engine with safe pooling and connection args.
    """
    global _engine, _session_factory
    url = database_url or get_settings().effective_database_url

    _engine = create_async_engine(url, **_engine_kwargs(url))
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    if smoke_test:
        try:
            async with _engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            logger.info("Database connection established")
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise

    return _engine


async def close_database_engine() -> None:
    """Dispose engine and reset factories."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        logger.info("Database engine disposed")
    _engine = None
    _session_factory = None


def get_engine() -> AsyncEngine:
    """Return initialized engine or raise."""
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call create_database_engine first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _session_factory is None:
        raise RuntimeError("Session factory not initialized. Call create_database_engine first.")
    return _session_factory


# ---- Sessions --------------------------------------------------------------

@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession with automatic rollback on error and proper close.
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
