"""Core schema: users, refresh tokens, profiles and topics.

Revision ID: 001_core_schema
Revises: None
Create Date: 2026-10-17
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

revision: str = "001_core_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

experience_level_enum = sa.Enum("beginner", "intermediate", "advanced", "expert", name="experience_level_enum")
topic_status_enum = sa.Enum("to_do", "in_progress", "completed", name="topic_status_enum")


def upgrade() -> None:
    """Create all tables, indexes and check constraints."""
    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("login_count", sa.Integer(), server_default="0", nullable=False),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    # --- refresh_tokens ---
    op.create_table(
        "refresh_tokens",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(128), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_revoked", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("replaced_by", sa.String(36), nullable=True),
    )
    op.create_index("ix_refresh_tokens_user_id", "refresh_tokens", ["user_id"])

    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("experience_level", experience_level_enum, nullable=False),
        sa.Column("years_away", sa.SmallInteger(), nullable=False),
        sa.Column("activity_streak", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("years_away BETWEEN 0 AND 60", name="ck_profiles_years_away"),
        sa.CheckConstraint("activity_streak >= 0", name="ck_profiles_activity_streak"),
    )

    # --- topics ---
    op.create_table(
        "topics",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("parent_id", sa.Uuid(), sa.ForeignKey("topics.id", ondelete="CASCADE"), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", topic_status_enum, server_default="to_do", nullable=False),
        sa.Column("technology", sa.Text(), nullable=False),
        sa.Column(
            "leetcode_links",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            server_default="[]",
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("parent_id IS NULL OR parent_id <> id", name="ck_topics_not_own_parent"),
    )
    op.create_index("idx_topics_user_parent", "topics", ["user_id", "parent_id"])
    op.create_index("idx_topics_user_status", "topics", ["user_id", "status"])
    op.create_index("idx_topics_user_technology", "topics", ["user_id", "technology"])
    op.create_index("idx_topics_user_created", "topics", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_table("topics")
    op.drop_table("profiles")
    op.drop_table("refresh_tokens")
    op.drop_table("users")
    topic_status_enum.drop(op.get_bind(), checkfirst=True)
    experience_level_enum.drop(op.get_bind(), checkfirst=True)
