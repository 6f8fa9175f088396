"""Create kv_entries table

Revision ID: 5c2e9d1f7a30
Revises:
Create Date: 2026-10-19 09:45:12.118204

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e9d1f7a30'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the single key-value table every collection lives in."""
    op.create_table(
        "kv_entries",
        sa.Column("collection", sa.String(64), primary_key=True),
        sa.Column("key", sa.String(255), primary_key=True),
        sa.Column(
            "value",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=True,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_kv_entries_updated_at", "kv_entries", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_kv_entries_updated_at", table_name="kv_entries")
    op.drop_table("kv_entries")
