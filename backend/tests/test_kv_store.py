"""
Code Library Backend — Key-Value Adapter Tests
===============================================

What:  Contract tests for InMemoryKVStore and SQLKVStore.
How:   The SQL adapter runs against a temporary SQLite file through aiosqlite,
       so no PostgreSQL server is needed.
"""

import pytest
import pytest_asyncio

from codelibrary.config import Settings
from codelibrary.database import build_engine
from codelibrary.exceptions import StorageUnavailableError
from codelibrary.storage import InMemoryKVStore, build_kv_store
from codelibrary.storage.sql_store import SQLKVStore


@pytest_asyncio.fixture
async def sql_store(tmp_path):
    store = SQLKVStore(build_engine(f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}"))
    await store.create_schema()
    yield store
    await store.close()


class TestInMemoryKVStore:

    def setup_method(self):
        self.store = InMemoryKVStore()

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self):
        assert await self.store.get("snippet:nope") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self):
        await self.store.set("snippet:1", {"title": "Btn"})
        assert await self.store.get("snippet:1") == {"title": "Btn"}

    @pytest.mark.asyncio
    async def test_set_overwrites(self):
        await self.store.set("snippet:1", {"title": "Old"})
        await self.store.set("snippet:1", {"title": "New"})
        assert await self.store.get("snippet:1") == {"title": "New"}
        assert len(self.store) == 1

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        """Mutating a value after set/get must not change what is stored."""
        record = {"tags": ["ui"]}
        await self.store.set("snippet:1", record)
        record["tags"].append("leaked")

        fetched = await self.store.get("snippet:1")
        fetched["tags"].append("leaked-again")

        assert await self.store.get("snippet:1") == {"tags": ["ui"]}

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self):
        await self.store.delete("snippet:nope")
        assert len(self.store) == 0

    @pytest.mark.asyncio
    async def test_scan_by_prefix_filters_keys(self):
        await self.store.set("snippet:1", {"n": 1})
        await self.store.set("user:1", {"n": 2})
        await self.store.set("snippet:2", {"n": 3})

        values = await self.store.scan_by_prefix("snippet:")

        assert sorted(v["n"] for v in values) == [1, 3]

    @pytest.mark.asyncio
    async def test_scan_with_no_match_is_empty(self):
        assert await self.store.scan_by_prefix("snippet:") == []


class TestSQLKVStore:

    @pytest.mark.asyncio
    async def test_set_get_roundtrip_preserves_json(self, sql_store):
        record = {"title": "Btn", "tags": ["ui", "material"], "userId": None}
        await sql_store.set("snippet:1", record)
        assert await sql_store.get("snippet:1") == record

    @pytest.mark.asyncio
    async def test_get_missing_key_returns_none(self, sql_store):
        assert await sql_store.get("snippet:nope") is None

    @pytest.mark.asyncio
    async def test_set_is_upsert(self, sql_store):
        await sql_store.set("snippet:1", {"title": "Old"})
        await sql_store.set("snippet:1", {"title": "New"})

        assert await sql_store.get("snippet:1") == {"title": "New"}
        assert await sql_store.scan_by_prefix("snippet:") == [{"title": "New"}]

    @pytest.mark.asyncio
    async def test_delete(self, sql_store):
        await sql_store.set("snippet:1", {"title": "Btn"})
        await sql_store.delete("snippet:1")
        await sql_store.delete("snippet:1")
        assert await sql_store.get("snippet:1") is None

    @pytest.mark.asyncio
    async def test_scan_by_prefix_orders_by_key(self, sql_store):
        await sql_store.set("snippet:b", {"k": "b"})
        await sql_store.set("other:a", {"k": "x"})
        await sql_store.set("snippet:a", {"k": "a"})

        assert await sql_store.scan_by_prefix("snippet:") == [{"k": "a"}, {"k": "b"}]

    @pytest.mark.asyncio
    async def test_scan_treats_like_wildcards_literally(self, sql_store):
        await sql_store.set("a_1", {"k": "underscore"})
        await sql_store.set("ab1", {"k": "letter"})
        await sql_store.set("50%:1", {"k": "percent"})
        await sql_store.set("500:1", {"k": "digit"})

        assert await sql_store.scan_by_prefix("a_") == [{"k": "underscore"}]
        assert await sql_store.scan_by_prefix("50%") == [{"k": "percent"}]

    @pytest.mark.asyncio
    async def test_health_check(self, sql_store):
        assert await sql_store.health_check() is True

    @pytest.mark.asyncio
    async def test_unreachable_database_raises_storage_unavailable(self, tmp_path):
        missing_dir = tmp_path / "does-not-exist" / "kv.db"
        store = SQLKVStore(build_engine(f"sqlite+aiosqlite:///{missing_dir}"))
        try:
            with pytest.raises(StorageUnavailableError) as exc_info:
                await store.get("snippet:1")
            assert exc_info.value.context["operation"] == "get"
            assert exc_info.value.context["key"] == "snippet:1"
            assert await store.health_check() is False
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_missing_table_raises_storage_unavailable(self, tmp_path):
        store = SQLKVStore(build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}"))
        try:
            with pytest.raises(StorageUnavailableError):
                await store.scan_by_prefix("snippet:")
        finally:
            await store.close()


class TestBuildKVStore:

    def test_memory_backend(self):
        assert isinstance(build_kv_store(Settings(kv_backend="memory")), InMemoryKVStore)

    @pytest.mark.asyncio
    async def test_sql_backend(self, tmp_path):
        cfg = Settings(kv_backend="sql", database_url=f"sqlite+aiosqlite:///{tmp_path / 'kv.db'}")
        store = build_kv_store(cfg)
        assert isinstance(store, SQLKVStore)
        await store.close()
