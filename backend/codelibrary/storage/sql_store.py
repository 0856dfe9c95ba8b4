"""
Code Library Backend — SQL Key-Value Adapter
=============================================

What:  KVStore implementation over a single `kv_store` table (key TEXT, value JSON).
How:   Async SQLAlchemy; one short-lived session per operation.
Who:   Selected when KV_BACKEND=sql. PostgreSQL (asyncpg) in production,
       SQLite (aiosqlite) for local runs and tests.

Query plans:
    get:            SELECT value FROM kv_store WHERE key = :key          (PK lookup)
    set:            INSERT ... ON CONFLICT (key) DO UPDATE SET value = excluded.value
    delete:         DELETE FROM kv_store WHERE key = :key
    scan_by_prefix: SELECT value FROM kv_store WHERE key LIKE :prefix% ESCAPE '/'
                    ORDER BY key

Error policy:
    Every SQLAlchemyError or OSError raised while talking to the database is
    logged and re-raised as StorageUnavailableError. Nothing is retried here.
"""

import logging
from typing import Any, List, NoReturn, Optional

from sqlalchemy import delete, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from codelibrary.database import Base, build_session_factory, dispose_engine
from codelibrary.exceptions import StorageUnavailableError
from codelibrary.models.kv_entry import KVEntry
from codelibrary.storage.base import KVStore

logger = logging.getLogger(__name__)

# Driver-level faults arrive wrapped as SQLAlchemyError; socket failures as OSError.
STORE_ERRORS = (SQLAlchemyError, OSError)


class SQLKVStore(KVStore):
    """
    Key-value adapter persisting to the kv_store table.

    Owns its engine: `close()` disposes the connection pool.
    """

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_factory = build_session_factory(engine)

    # ── Schema ────────────────────────────────────────────────────────────

    async def create_schema(self) -> None:
        """Create the kv_store table if it does not exist (dev/test bootstrap)."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all, tables=[KVEntry.__table__])
        except STORE_ERRORS as e:
            self._fail("create_schema", None, e)
        logger.info("Key-value table '%s' is ready", KVEntry.__tablename__)

    # ── KVStore contract ──────────────────────────────────────────────────

    async def get(self, key: str) -> Optional[Any]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(KVEntry.value).where(KVEntry.key == key)
                )
                return result.scalar_one_or_none()
        except STORE_ERRORS as e:
            self._fail("get", key, e)

    async def set(self, key: str, value: Any) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(self._upsert_statement(key, value))
                await session.commit()
        except STORE_ERRORS as e:
            self._fail("set", key, e)

    async def delete(self, key: str) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(delete(KVEntry).where(KVEntry.key == key))
                await session.commit()
        except STORE_ERRORS as e:
            self._fail("delete", key, e)

    async def scan_by_prefix(self, prefix: str) -> List[Any]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(KVEntry.value)
                    .where(KVEntry.key.startswith(prefix, autoescape=True))
                    .order_by(KVEntry.key)
                )
                return list(result.scalars().all())
        except STORE_ERRORS as e:
            self._fail("scan_by_prefix", prefix, e)

    async def health_check(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except STORE_ERRORS as e:
            logger.warning("Key-value store health check failed: %s", str(e))
            return False

    async def close(self) -> None:
        await dispose_engine(self.engine)

    # ── Helpers ───────────────────────────────────────────────────────────

    def _upsert_statement(self, key: str, value: Any):
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(KVEntry).values(key=key, value=value)
        elif dialect == "sqlite":
            stmt = sqlite.insert(KVEntry).values(key=key, value=value)
        else:
            raise NotImplementedError(f"Unsupported dialect for upsert: {dialect}")
        return stmt.on_conflict_do_update(
            index_elements=[KVEntry.key],
            set_={"value": stmt.excluded.value},
        )

    def _fail(self, operation: str, key: Optional[str], error: Exception) -> NoReturn:
        logger.error(
            "Key-value %s failed for key=%r: %s: %s",
            operation,
            key,
            type(error).__name__,
            str(error),
        )
        raise StorageUnavailableError(
            context={
                "operation": operation,
                "key": key,
                "error_type": type(error).__name__,
            },
        ) from error
