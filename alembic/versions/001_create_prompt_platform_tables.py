"""create_prompt_platform_tables

Revision ID: 001
Revises: 
Create Date: 2025-06-02 09:00:00.000000

- users with monetization flag, denormalized stats and pinned prompt
- prompts with the ciphertext envelope column and moderation fields
- social records: follows, likes, comments, ratings, saved_prompts
- pool_votes, cleaned up together with prompts
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, postgresql.UUID(as_uuid=True), **kwargs)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def upgrade() -> None:
    """Create user, prompt and social tables."""
    op.create_table(
        "users",
        _uuid("id", primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True, index=True),
        sa.Column("username", sa.String(30), nullable=False, unique=True, index=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("monetization_unlocked", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("stats_total_prompts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("stats_total_copies", sa.Integer, nullable=False, server_default="0"),
        _uuid("pinned_prompt_id", nullable=True),
        _created_at(),
        _updated_at(),
    )

    op.create_table(
        "prompts",
        _uuid("id", primary_key=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.String(1000), nullable=False),
        sa.Column("prompt_text", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, index=True),
        sa.Column("tags", postgresql.ARRAY(sa.String(30)), nullable=False, server_default="{}"),
        sa.Column("proof_images", postgresql.ARRAY(sa.Text), nullable=False, server_default="{}"),
        sa.Column("proof_type", sa.String(10), nullable=False, server_default="text"),
        sa.Column("ai_platform", sa.String(50), nullable=True),
        _uuid(
            "creator_id",
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("stats_views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("stats_copies", sa.Integer, nullable=False, server_default="0"),
        sa.Column("stats_likes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("stats_comments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("stats_shares", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rating_average", sa.Float, nullable=False, server_default="0"),
        sa.Column("rating_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("privacy", sa.String(10), nullable=False, server_default="public"),
        sa.Column("is_paid", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("is_featured", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default="true"),
        sa.Column("moderation_reason", sa.Text, nullable=True),
        _uuid("moderated_by", nullable=True),
        sa.Column("moderated_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
    )
    op.create_index("idx_prompts_creator_created", "prompts", ["creator_id", "created_at"])
    op.create_index(
        "idx_prompts_listing",
        "prompts",
        ["privacy", "is_approved", "is_active", "created_at"],
    )

    op.create_table(
        "follows",
        _uuid("id", primary_key=True),
        _uuid("follower_id", nullable=False, index=True),
        _uuid("following_id", nullable=False, index=True),
        _created_at(),
        sa.UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
    )

    op.create_table(
        "likes",
        _uuid("id", primary_key=True),
        _uuid("user_id", nullable=False, index=True),
        _uuid("prompt_id", nullable=False, index=True),
        _created_at(),
        sa.UniqueConstraint("user_id", "prompt_id", name="uq_likes_user_prompt"),
    )

    op.create_table(
        "comments",
        _uuid("id", primary_key=True),
        _uuid("user_id", nullable=False, index=True),
        _uuid("prompt_id", nullable=False),
        sa.Column("content", sa.String(1000), nullable=False),
        _created_at(),
    )
    op.create_index("idx_comments_prompt_created", "comments", ["prompt_id", "created_at"])

    op.create_table(
        "ratings",
        _uuid("id", primary_key=True),
        _uuid("user_id", nullable=False, index=True),
        _uuid("prompt_id", nullable=False, index=True),
        sa.Column("rating", sa.Integer, nullable=False),
        sa.Column("review", sa.String(500), nullable=False, server_default=""),
        _created_at(),
        sa.UniqueConstraint("user_id", "prompt_id", name="uq_ratings_user_prompt"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_ratings_range"),
    )

    op.create_table(
        "saved_prompts",
        _uuid("id", primary_key=True),
        _uuid("user_id", nullable=False, index=True),
        _uuid("prompt_id", nullable=False, index=True),
        sa.Column("collection_name", sa.String(100), nullable=False, server_default="Saved"),
        sa.Column("notes", sa.String(500), nullable=False, server_default=""),
        _created_at(),
        sa.UniqueConstraint("user_id", "prompt_id", "collection_name", name="uq_saved_collection"),
    )

    op.create_table(
        "pool_votes",
        _uuid("id", primary_key=True),
        _uuid("pool_id", nullable=False, index=True),
        _uuid("prompt_id", nullable=False, index=True),
        _uuid("user_id", nullable=False),
        _created_at(),
    )


def downgrade() -> None:
    """Drop every table created above, dependents first."""
    op.drop_table("pool_votes")
    op.drop_table("saved_prompts")
    op.drop_table("ratings")
    op.drop_index("idx_comments_prompt_created", table_name="comments")
    op.drop_table("comments")
    op.drop_table("likes")
    op.drop_table("follows")
    op.drop_index("idx_prompts_listing", table_name="prompts")
    op.drop_index("idx_prompts_creator_created", table_name="prompts")
    op.drop_table("prompts")
    op.drop_table("users")
