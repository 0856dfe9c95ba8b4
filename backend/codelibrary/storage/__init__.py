"""
Code Library Backend — Key-Value Storage Package
=================================================

What:  The storage port (KVStore) and its adapters.

Adapter Inventory:
    - KVStore (abstract): get / set / delete / scan_by_prefix contract
    - InMemoryKVStore: process-local dict (development, tests)
    - SQLKVStore: kv_store table via async SQLAlchemy (PostgreSQL, SQLite)

`build_kv_store(settings)` picks the adapter named by KV_BACKEND.
"""

from typing import Optional

from codelibrary.config import Settings, settings as default_settings
from codelibrary.storage.base import KVStore
from codelibrary.storage.memory_store import InMemoryKVStore


def build_kv_store(cfg: Optional[Settings] = None) -> KVStore:
    """Instantiate the configured key-value adapter. No connection is opened here."""
    cfg = cfg or default_settings
    if cfg.kv_backend == "sql":
        from codelibrary.database import build_engine
        from codelibrary.storage.sql_store import SQLKVStore

        return SQLKVStore(build_engine(cfg.database_url, cfg))
    return InMemoryKVStore()


__all__ = ["KVStore", "InMemoryKVStore", "build_kv_store"]
