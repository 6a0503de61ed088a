"""
Database Schema: SQLAlchemy Core Table Definitions

Defines database tables using SQLAlchemy Core for type-safe query building.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

metadata = MetaData()

users_table = Table(
    "users",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("email", String(255), nullable=False, unique=True, index=True),
    Column("username", String(30), nullable=False, unique=True, index=True),
    Column("hashed_password", String(255), nullable=False),
    Column("full_name", String(255)),
    Column("role", String(20), nullable=False, server_default="user"),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    Column("monetization_unlocked", Boolean, nullable=False, server_default="false"),
    Column("stats_total_prompts", Integer, nullable=False, server_default="0"),
    Column("stats_total_copies", Integer, nullable=False, server_default="0"),
    Column("pinned_prompt_id", PG_UUID(as_uuid=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
)

# prompt_text holds the ciphertext envelope, never plaintext
prompts_table = Table(
    "prompts",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("title", String(200), nullable=False),
    Column("description", String(1000), nullable=False),
    Column("prompt_text", Text, nullable=False),
    Column("category", String(50), nullable=False, index=True),
    Column("tags", ARRAY(String(30)), nullable=False, server_default="{}"),
    Column("proof_images", ARRAY(Text), nullable=False, server_default="{}"),
    Column("proof_type", String(10), nullable=False, server_default="text"),
    Column("ai_platform", String(50)),
    Column(
        "creator_id",
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("stats_views", Integer, nullable=False, server_default="0"),
    Column("stats_copies", Integer, nullable=False, server_default="0"),
    Column("stats_likes", Integer, nullable=False, server_default="0"),
    Column("stats_comments", Integer, nullable=False, server_default="0"),
    Column("stats_shares", Integer, nullable=False, server_default="0"),
    Column("rating_average", Float, nullable=False, server_default="0"),
    Column("rating_count", Integer, nullable=False, server_default="0"),
    Column("privacy", String(10), nullable=False, server_default="public"),
    Column("is_paid", Boolean, nullable=False, server_default="false"),
    Column("price", Numeric(10, 2), nullable=False, server_default="0"),
    Column("is_approved", Boolean, nullable=False, server_default="true"),
    Column("is_featured", Boolean, nullable=False, server_default="false"),
    Column("is_active", Boolean, nullable=False, server_default="true"),
    Column("moderation_reason", Text),
    Column("moderated_by", PG_UUID(as_uuid=True)),
    Column("moderated_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    ),
    Index("idx_prompts_creator_created", "creator_id", "created_at"),
    Index("idx_prompts_listing", "privacy", "is_approved", "is_active", "created_at"),
)

follows_table = Table(
    "follows",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("follower_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("following_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("follower_id", "following_id", name="uq_follows_pair"),
)

likes_table = Table(
    "likes",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("user_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("prompt_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("user_id", "prompt_id", name="uq_likes_user_prompt"),
)

comments_table = Table(
    "comments",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("user_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("prompt_id", PG_UUID(as_uuid=True), nullable=False),
    Column("parent_comment_id", PG_UUID(as_uuid=True), nullable=True),
    Column("content", String(1000), nullable=False),
    Column("is_deleted", Boolean, nullable=False, server_default="false"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Index("idx_comments_prompt_created", "prompt_id", "created_at"),
    Index("idx_comments_parent_created", "parent_comment_id", "created_at"),
)

ratings_table = Table(
    "ratings",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("user_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("prompt_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("rating", Integer, nullable=False),
    Column("review", String(500), nullable=False, server_default=""),
    Column("helpful_votes", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("user_id", "prompt_id", name="uq_ratings_user_prompt"),
)

# One helpful vote per user and review; removed with the review
helpful_votes_table = Table(
    "review_helpful_votes",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column(
        "rating_id",
        PG_UUID(as_uuid=True),
        ForeignKey("ratings.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("user_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("rating_id", "user_id", name="uq_helpful_votes_rating_user"),
)

saved_prompts_table = Table(
    "saved_prompts",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("user_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("prompt_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("collection_name", String(100), nullable=False, server_default="Saved"),
    Column("notes", String(500), nullable=False, server_default=""),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    UniqueConstraint("user_id", "prompt_id", "collection_name", name="uq_saved_collection"),
)

# Pool votes reference prompts submitted to community pools
pool_votes_table = Table(
    "pool_votes",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("pool_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("prompt_id", PG_UUID(as_uuid=True), nullable=False, index=True),
    Column("user_id", PG_UUID(as_uuid=True), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

# Dependent records removed, best effort, when a prompt is deleted
PROMPT_DEPENDENT_TABLES = (
    likes_table,
    comments_table,
    ratings_table,
    saved_prompts_table,
    pool_votes_table,
)
