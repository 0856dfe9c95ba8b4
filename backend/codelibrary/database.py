"""
Code Library Backend — Database Engine Management
==================================================

What:  Async SQLAlchemy engine/session factories and the declarative Base.
How:   `build_engine()` creates an async engine with pool settings suited to the
       URL's dialect; `build_session_factory()` wraps it. The SQL key-value
       adapter owns one engine for its lifetime and disposes it on shutdown.
Who:   Used by storage.sql_store.SQLKVStore and by Alembic (Base.metadata).

Connection Pooling:
    PostgreSQL (asyncpg) gets a QueuePool sized from settings with pre-ping and
    hourly recycling. SQLite (aiosqlite) keeps SQLAlchemy's default pool, which
    rejects the sizing arguments.
"""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from codelibrary.config import Settings, settings as default_settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for the kv_store table.
    """
    pass


def _engine_kwargs(url: str, cfg: Settings) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {"echo": cfg.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=cfg.db_pool_size,
            max_overflow=cfg.db_max_overflow,
            pool_pre_ping=cfg.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return kwargs


def build_engine(url: Optional[str] = None, cfg: Optional[Settings] = None) -> AsyncEngine:
    """
    Create an async engine for `url` (defaults to settings.database_url).

    Creating the engine does not open a connection; the first query does.
    """
    cfg = cfg or default_settings
    url = url or cfg.database_url
    return create_async_engine(url, **_engine_kwargs(url, cfg))


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to `engine`.

    expire_on_commit=False keeps loaded attributes readable after commit.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def dispose_engine(engine: AsyncEngine) -> None:
    """Gracefully closes all connections in the engine's pool."""
    await engine.dispose()
