"""initial deck, card and community catalog schema

Revision ID: 4b8e2d7c1a90
Revises:
Create Date: 2026-03-02 10:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "4b8e2d7c1a90"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    ]


def _card_columns():
    return [
        sa.Column("card_type", sa.String(length=32), nullable=False),
        sa.Column("front", sa.Text(), nullable=True),
        sa.Column("back", sa.Text(), nullable=True),
        sa.Column("correct_answers", sa.JSON(), nullable=True),
        sa.Column("incorrect_answers", sa.JSON(), nullable=True),
        sa.Column("accepted_answers", sa.JSON(), nullable=True),
        sa.Column("front_image_url", sa.String(length=1024), nullable=True),
        sa.Column("back_image_url", sa.String(length=1024), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=64), nullable=True),
        sa.Column("display_name", sa.String(length=128), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=32), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("is_root", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=True)

    op.create_table(
        "decks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("creator_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("emoji", sa.String(length=16), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("category", sa.String(length=128), nullable=True),
        sa.Column("subtopic", sa.String(length=128), nullable=True),
        sa.Column("difficulty", sa.String(length=32), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "content_updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_community", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("source_community_deck_id", sa.Integer(), nullable=True),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("imported_from_version", sa.Integer(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "user_id", "source_community_deck_id", name="uq_decks_user_import"
        ),
    )
    op.create_index(op.f("ix_decks_user_id"), "decks", ["user_id"])
    op.create_index(op.f("ix_decks_creator_id"), "decks", ["creator_id"])
    op.create_index(op.f("ix_decks_source_community_deck_id"), "decks", ["source_community_deck_id"])
    op.create_index(op.f("ix_decks_is_deleted"), "decks", ["is_deleted"])

    op.create_table(
        "cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("deck_id", sa.Integer(), sa.ForeignKey("decks.id"), nullable=False),
        *_card_columns(),
        sa.Column("front_audio", sa.String(length=1024), nullable=True),
        sa.Column("back_audio", sa.String(length=1024), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(op.f("ix_cards_deck_id"), "cards", ["deck_id"])

    op.create_table(
        "community_decks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("original_deck_id", sa.Integer(), sa.ForeignKey("decks.id"), nullable=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("owner_display_name", sa.String(length=128), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("emoji", sa.String(length=16), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("category", sa.String(length=128), nullable=True),
        sa.Column("subtopic", sa.String(length=128), nullable=True),
        sa.Column("difficulty", sa.String(length=32), nullable=True),
        sa.Column("card_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("source_content_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("download_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("original_deck_id", name="uq_community_decks_original_deck_id"),
    )
    op.create_index(op.f("ix_community_decks_owner_id"), "community_decks", ["owner_id"])
    op.create_index(op.f("ix_community_decks_is_published"), "community_decks", ["is_published"])

    op.create_table(
        "community_cards",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "community_deck_id",
            sa.Integer(),
            sa.ForeignKey("community_decks.id"),
            nullable=False,
        ),
        *_card_columns(),
        sa.Column("audio_url", sa.String(length=1024), nullable=True),
        sa.Column("back_audio_url", sa.String(length=1024), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index(
        op.f("ix_community_cards_community_deck_id"), "community_cards", ["community_deck_id"]
    )

    # decks <-> community_decks reference each other; close the cycle last.
    with op.batch_alter_table("decks") as batch_op:
        batch_op.create_foreign_key(
            "fk_decks_source_community_deck_id_community_decks",
            "community_decks",
            ["source_community_deck_id"],
            ["id"],
        )


def downgrade():
    with op.batch_alter_table("decks") as batch_op:
        batch_op.drop_constraint(
            "fk_decks_source_community_deck_id_community_decks", type_="foreignkey"
        )
    op.drop_index(op.f("ix_community_cards_community_deck_id"), table_name="community_cards")
    op.drop_table("community_cards")
    op.drop_index(op.f("ix_community_decks_is_published"), table_name="community_decks")
    op.drop_index(op.f("ix_community_decks_owner_id"), table_name="community_decks")
    op.drop_table("community_decks")
    op.drop_index(op.f("ix_cards_deck_id"), table_name="cards")
    op.drop_table("cards")
    op.drop_index(op.f("ix_decks_is_deleted"), table_name="decks")
    op.drop_index(op.f("ix_decks_source_community_deck_id"), table_name="decks")
    op.drop_index(op.f("ix_decks_creator_id"), table_name="decks")
    op.drop_index(op.f("ix_decks_user_id"), table_name="decks")
    op.drop_table("decks")
    op.drop_index(op.f("ix_users_username"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")
