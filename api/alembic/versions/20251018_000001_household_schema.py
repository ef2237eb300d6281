"""household schema

Revision ID: 20251018_000001
Revises: 
Create Date: 2025-10-18 00:00:01.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20251018_000001"
down_revision = None
branch_labels = None
depends_on = None


chat_role_enum = postgresql.ENUM("user", "assistant", "system", name="chat_role", create_type=False)


def upgrade() -> None:
    """Create household, preference, chat and watch tables."""
    chat_role_enum.create(op.get_bind(), checkfirst=True)

    op.create_table(
        "households",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("views_revision", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    )

    op.create_table(
        "household_members",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "household_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("households.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("user_email", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("birthday", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_household_members_household_id", "household_members", ["household_id"])
    op.create_index("ix_household_members_user_id", "household_members", ["user_id"])
    op.create_index("ix_household_members_created_at", "household_members", ["created_at"])

    op.create_table(
        "content_label_dictionary",
        sa.Column("key", sa.String(length=128), primary_key=True),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.bulk_insert(
        sa.table("content_label_dictionary", sa.column("key", sa.String), sa.column("label", sa.String)),
        [
            {"key": "language", "label": "Language"},
            {"key": "mature_themes", "label": "Mature Themes"},
            {"key": "scary", "label": "Scary"},
            {"key": "sex_nudity", "label": "Sex & Nudity"},
            {"key": "substance", "label": "Substance"},
            {"key": "violence", "label": "Violence"},
        ],
    )

    op.create_table(
        "household_filter_limits",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "household_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("households.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "label_key",
            sa.String(length=128),
            sa.ForeignKey("content_label_dictionary.key", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("max_intensity", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("hard_no", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
        sa.UniqueConstraint("household_id", "label_key", name="uq_household_filter_label"),
        sa.CheckConstraint(
            "max_intensity >= 0 AND max_intensity <= 10",
            name="ck_household_filter_limits_max_intensity_range",
        ),
        sa.CheckConstraint(
            "NOT hard_no OR max_intensity = 0",
            name="ck_household_filter_limits_hard_no_zero_intensity",
        ),
    )

    op.create_table(
        "household_chat_messages",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "household_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("households.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", chat_role_enum, nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("user_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_household_chat_messages_household_id", "household_chat_messages", ["household_id"])
    op.create_index("ix_household_chat_messages_created_at", "household_chat_messages", ["created_at"])

    op.create_table(
        "household_watch_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "household_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("households.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("movie_id", sa.String(length=255), nullable=False),
        sa.Column("watch_date", sa.Date(), nullable=True),
        sa.Column("watched_by", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("rating", sa.Float(), nullable=True),
        sa.Column("logged_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "rating IS NULL OR (rating >= 0 AND rating <= 10)",
            name="ck_household_watch_logs_rating_range",
        ),
    )
    op.create_index("ix_household_watch_logs_household_id", "household_watch_logs", ["household_id"])
    op.create_index("ix_household_watch_logs_created_at", "household_watch_logs", ["created_at"])

    op.create_table(
        "household_blocked_movies",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "household_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("households.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("movie_id", sa.String(length=255), nullable=False),
        sa.Column("blocked_by", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("household_id", "movie_id", name="uq_household_blocked_movie"),
    )


def downgrade() -> None:
    """Drop household tables and the chat role enum."""
    op.drop_table("household_blocked_movies")
    op.drop_index("ix_household_watch_logs_created_at", table_name="household_watch_logs")
    op.drop_index("ix_household_watch_logs_household_id", table_name="household_watch_logs")
    op.drop_table("household_watch_logs")
    op.drop_index("ix_household_chat_messages_created_at", table_name="household_chat_messages")
    op.drop_index("ix_household_chat_messages_household_id", table_name="household_chat_messages")
    op.drop_table("household_chat_messages")
    op.drop_table("household_filter_limits")
    op.drop_table("content_label_dictionary")
    op.drop_index("ix_household_members_created_at", table_name="household_members")
    op.drop_index("ix_household_members_user_id", table_name="household_members")
    op.drop_index("ix_household_members_household_id", table_name="household_members")
    op.drop_table("household_members")
    chat_role_enum.drop(op.get_bind(), checkfirst=True)
