from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import get_settings

logger = logging.getLogger(__name__)

_SETTINGS = get_settings()
_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> Dict[str, Any]:
    """Driver specific engine arguments: SQLite runs on one file, PostgreSQL gets a sized pool."""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_size": _SETTINGS.DB_POOL_SIZE,
        "max_overflow": _SETTINGS.DB_MAX_OVERFLOW,
    }


def _session_maker() -> async_sessionmaker[AsyncSession]:
    global _ENGINE, _SESSION_MAKER
    if _SESSION_MAKER is None:
        url = _SETTINGS.async_database_url
        _ENGINE = create_async_engine(url, echo=_SETTINGS.SQL_ECHO, **_engine_options(url))
        _SESSION_MAKER = async_sessionmaker(bind=_ENGINE, expire_on_commit=False, autoflush=False)
        logger.info("Database engine created for %s", _ENGINE.url.render_as_string(hide_password=True))
    return _SESSION_MAKER


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the process-wide AsyncEngine, creating it on first use."""
    _session_maker()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
async def dispose_engine() -> None:
    """Close pooled connections; the next session recreates the engine."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one AsyncSession per request (FastAPI dependency)."""
    async with _session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
@asynccontextmanager
async def session_scope() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for scripts outside the request cycle (seeding).

    Commits on success and rolls back if the body raises.
    """
    async with _session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
