"""Create the media table

- media.seq: insertion order, tie-breaker for created_at ordering
- media.id: opaque public id
- media.status: pending | approved | rejected
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_0001_create_media"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "media",
        sa.Column("seq", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("id", sa.String(64), nullable=False, unique=True),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("author", sa.String(255), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="ck_media_status"),
    )
    op.create_index("ix_media_status_created_at", "media", ["status", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_media_status_created_at", table_name="media")
    op.drop_table("media")
