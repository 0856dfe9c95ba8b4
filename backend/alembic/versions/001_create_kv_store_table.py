"""Create kv_store table

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  The single key-value table backing every stored record. Snippets live
       under keys `snippet:{id}` with their JSON record as the value.
How:   JSONB on PostgreSQL, JSON elsewhere. The text primary key serves both
       point lookups and `LIKE 'prefix%'` scans (text_pattern_ops index on
       PostgreSQL so prefix scans can use it under non-C collations).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from codelibrary.config import settings

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TABLE = settings.kv_table_name
PREFIX_INDEX = f"idx_{TABLE}_key_prefix"


def upgrade() -> None:
    op.create_table(
        TABLE,
        sa.Column(
            "key",
            sa.Text(),
            nullable=False,
            comment="Namespaced record key, e.g. snippet:<uuid>",
        ),
        sa.Column(
            "value",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
            comment="JSON record stored under the key",
        ),
        sa.PrimaryKeyConstraint("key"),
    )

    if op.get_context().dialect.name == "postgresql":
        op.create_index(
            PREFIX_INDEX,
            TABLE,
            [sa.text("key text_pattern_ops")],
        )


def downgrade() -> None:
    """Drops every stored record."""
    if op.get_context().dialect.name == "postgresql":
        op.drop_index(PREFIX_INDEX, table_name=TABLE)
    op.drop_table(TABLE)
