"""add publish ban fields to decks

Revision ID: 9d3f6a1e2b57
Revises: 4b8e2d7c1a90
Create Date: 2026-04-14 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "9d3f6a1e2b57"
down_revision = "4b8e2d7c1a90"
branch_labels = None
depends_on = None


def _has_column(inspector, table_name: str, column_name: str) -> bool:
    return any(col["name"] == column_name for col in inspector.get_columns(table_name))


def upgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _has_column(inspector, "decks", "publish_banned"):
        op.add_column(
            "decks",
            sa.Column("publish_banned", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        )

    if not _has_column(inspector, "decks", "publish_banned_reason"):
        op.add_column(
            "decks", sa.Column("publish_banned_reason", sa.String(length=255), nullable=True)
        )


def downgrade():
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    with op.batch_alter_table("decks") as batch_op:
        if _has_column(inspector, "decks", "publish_banned_reason"):
            batch_op.drop_column("publish_banned_reason")
        if _has_column(inspector, "decks", "publish_banned"):
            batch_op.drop_column("publish_banned")
