"""
Code Library Backend — Key-Value Entry SQLAlchemy Model
========================================================

What:  ORM model for the `kv_store` table backing the SQL key-value adapter.
How:   One row per key. `value` is JSONB on PostgreSQL and JSON elsewhere.
Who:   Used by SQLKVStore for reads/writes and by Alembic for the schema.

Table Design:
    - key TEXT PRIMARY KEY: opaque string keys such as "snippet:<uuid>".
      The primary key index also serves prefix scans (key LIKE 'snippet:%').
    - value JSON/JSONB: the record exactly as handed to set(); the adapter
      never inspects it.
"""

from typing import Any

from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from codelibrary.config import settings
from codelibrary.database import Base


class KVEntry(Base):
    """A single key → JSON value pair."""

    __tablename__ = settings.kv_table_name

    key: Mapped[str] = mapped_column(
        Text,
        primary_key=True,
        comment="Opaque key, e.g. snippet:<id>",
    )

    value: Mapped[Any] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        comment="JSON-serializable record stored under the key",
    )

    def __repr__(self) -> str:
        return f"<KVEntry(key='{self.key}')>"
