"""comment_threads_and_helpful_votes

Revision ID: 002
Revises: 001
Create Date: 2025-06-16 10:30:00.000000

- comments gain parent_comment_id (one level of replies) and a soft-delete flag
- ratings gain a denormalized helpful_votes counter
- review_helpful_votes records one vote per user and review
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("comments", sa.Column("parent_comment_id", postgresql.UUID(as_uuid=True), nullable=True))
    op.add_column(
        "comments", sa.Column("is_deleted", sa.Boolean, nullable=False, server_default="false")
    )
    op.create_index("idx_comments_parent_created", "comments", ["parent_comment_id", "created_at"])

    op.add_column(
        "ratings", sa.Column("helpful_votes", sa.Integer, nullable=False, server_default="0")
    )

    op.create_table(
        "review_helpful_votes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "rating_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("ratings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("rating_id", "user_id", name="uq_helpful_votes_rating_user"),
    )


def downgrade() -> None:
    op.drop_table("review_helpful_votes")
    op.drop_column("ratings", "helpful_votes")
    op.drop_index("idx_comments_parent_created", table_name="comments")
    op.drop_column("comments", "is_deleted")
    op.drop_column("comments", "parent_comment_id")
