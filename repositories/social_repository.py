"""
Social Repository: follows, likes, saves, comments and ratings.

Engagement counters on the prompt row are kept in step by the service
layer through `PromptRepository.increment_stat`.
"""

from typing import Optional
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import and_, delete, exc as sa_exc, insert, select, update

from core.exceptions import ValidationError
from config.constants import CONTENT_LIMITS
from core.models import Comment, Rating, SaveRequest, utcnow
from infrastructure.database import DatabaseManager
from infrastructure.schema import (
    comments_table,
    follows_table,
    helpful_votes_table,
    likes_table,
    ratings_table,
    saved_prompts_table,
)


class SocialRepository:
    def __init__(self, database_manager: DatabaseManager):
        self.database_manager = database_manager

    async def _insert_unique(self, table, values: dict, duplicate_message: str, duplicate_error: str):
        """Insert a relationship row; the unique constraint reports duplicates."""
        values = {"id": uuid4(), "created_at": utcnow(), **values}
        try:
            async with self.database_manager.session() as session:
                row = (await session.execute(insert(table).values(**values).returning(table))).fetchone()
        except sa_exc.IntegrityError as e:
            raise ValidationError(duplicate_message, errors=[duplicate_error], cause=e)
        return row._asdict()

    async def _delete_where(self, table, *conditions) -> bool:
        async with self.database_manager.session() as session:
            result = await session.execute(delete(table).where(and_(*conditions)))
        return result.rowcount > 0

    # =========================================================================
    # FOLLOWS
    # =========================================================================

    async def follow(self, follower_id: UUID, following_id: UUID) -> None:
        await self._insert_unique(
            follows_table,
            {"follower_id": follower_id, "following_id": following_id},
            "Already following",
            "You are already following this user",
        )

    async def unfollow(self, follower_id: UUID, following_id: UUID) -> bool:
        return await self._delete_where(
            follows_table,
            follows_table.c.follower_id == follower_id,
            follows_table.c.following_id == following_id,
        )

    async def is_following(self, follower_id: UUID, following_id: UUID) -> bool:
        query = select(follows_table.c.id).where(
            follows_table.c.follower_id == follower_id,
            follows_table.c.following_id == following_id,
        )
        async with self.database_manager.session() as session:
            return (await session.execute(query)).first() is not None

    # =========================================================================
    # LIKES & SAVES
    # =========================================================================

    async def like(self, user_id: UUID, prompt_id: UUID) -> None:
        await self._insert_unique(
            likes_table,
            {"user_id": user_id, "prompt_id": prompt_id},
            "Already liked",
            "You have already liked this prompt",
        )

    async def unlike(self, user_id: UUID, prompt_id: UUID) -> bool:
        return await self._delete_where(
            likes_table, likes_table.c.user_id == user_id, likes_table.c.prompt_id == prompt_id
        )

    async def save(self, user_id: UUID, prompt_id: UUID, request: SaveRequest) -> None:
        await self._insert_unique(
            saved_prompts_table,
            {
                "user_id": user_id,
                "prompt_id": prompt_id,
                "collection_name": request.collection_name,
                "notes": request.notes,
            },
            "Already saved",
            "Prompt is already saved to this collection",
        )

    async def unsave(self, user_id: UUID, prompt_id: UUID, collection_name: Optional[str] = None) -> bool:
        conditions = [saved_prompts_table.c.user_id == user_id, saved_prompts_table.c.prompt_id == prompt_id]
        if collection_name:
            conditions.append(saved_prompts_table.c.collection_name == collection_name)
        return await self._delete_where(saved_prompts_table, *conditions)

    # =========================================================================
    # COMMENTS & RATINGS
    # =========================================================================

    async def add_comment(
        self, user_id: UUID, prompt_id: UUID, content: str, parent_comment_id: Optional[UUID] = None
    ) -> Comment:
        values = {
            "id": uuid4(),
            "user_id": user_id,
            "prompt_id": prompt_id,
            "parent_comment_id": parent_comment_id,
            "content": content,
            "created_at": utcnow(),
        }
        async with self.database_manager.session() as session:
            row = (
                await session.execute(insert(comments_table).values(**values).returning(comments_table))
            ).fetchone()
        return Comment(**row._asdict())

    async def get_comment(self, comment_id: UUID) -> Optional[Comment]:
        query = select(comments_table).where(
            comments_table.c.id == comment_id, comments_table.c.is_deleted.is_(False)
        )
        async with self.database_manager.session() as session:
            row = (await session.execute(query)).fetchone()
        return Comment(**row._asdict()) if row else None

    async def list_comments(self, prompt_id: UUID, offset: int, limit: int) -> list[Comment]:
        """
        Top-level comments, newest first, each carrying its first replies
        (oldest first) and the total number of live replies.
        """
        query = (
            select(comments_table)
            .where(
                comments_table.c.prompt_id == prompt_id,
                comments_table.c.parent_comment_id.is_(None),
                comments_table.c.is_deleted.is_(False),
            )
            .order_by(comments_table.c.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        async with self.database_manager.session() as session:
            comments = [Comment(**row._asdict()) for row in (await session.execute(query)).fetchall()]
            if not comments:
                return []
            replies_query = (
                select(comments_table)
                .where(
                    comments_table.c.parent_comment_id.in_([c.id for c in comments]),
                    comments_table.c.is_deleted.is_(False),
                )
                .order_by(comments_table.c.created_at.asc())
            )
            replies = [Comment(**row._asdict()) for row in (await session.execute(replies_query)).fetchall()]

        by_parent: dict[UUID, list[Comment]] = {}
        for reply in replies:
            by_parent.setdefault(reply.parent_comment_id, []).append(reply)
        for comment in comments:
            thread = by_parent.get(comment.id, [])
            comment.replies = thread[: CONTENT_LIMITS.REPLY_PREVIEW]
            comment.replies_count = len(thread)
        return comments

    async def delete_comment(self, comment_id: UUID) -> bool:
        """Soft delete; the row stays but drops out of every listing."""
        query = (
            update(comments_table)
            .where(comments_table.c.id == comment_id, comments_table.c.is_deleted.is_(False))
            .values(is_deleted=True)
        )
        async with self.database_manager.session() as session:
            result = await session.execute(query)
        return result.rowcount > 0

    async def add_rating(self, user_id: UUID, prompt_id: UUID, rating: int, review: str) -> Rating:
        row = await self._insert_unique(
            ratings_table,
            {"user_id": user_id, "prompt_id": prompt_id, "rating": rating, "review": review},
            "Already rated",
            "You have already rated this prompt",
        )
        return Rating(**row)

    async def update_rating(
        self, user_id: UUID, prompt_id: UUID, rating: Optional[int], review: Optional[str]
    ) -> Optional[Rating]:
        values = {}
        if rating is not None:
            values["rating"] = rating
        if review is not None:
            values["review"] = review
        where = and_(ratings_table.c.user_id == user_id, ratings_table.c.prompt_id == prompt_id)
        async with self.database_manager.session() as session:
            if values:
                query = update(ratings_table).where(where).values(**values).returning(ratings_table)
            else:
                query = select(ratings_table).where(where)
            row = (await session.execute(query)).fetchone()
        return Rating(**row._asdict()) if row else None

    async def delete_rating(self, user_id: UUID, prompt_id: UUID) -> bool:
        return await self._delete_where(
            ratings_table, ratings_table.c.user_id == user_id, ratings_table.c.prompt_id == prompt_id
        )

    async def list_ratings(self, prompt_id: UUID, offset: int, limit: int) -> list[Rating]:
        query = (
            select(ratings_table)
            .where(ratings_table.c.prompt_id == prompt_id)
            .order_by(ratings_table.c.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        async with self.database_manager.session() as session:
            rows = (await session.execute(query)).fetchall()
        return [Rating(**row._asdict()) for row in rows]

    async def get_rating(self, rating_id: UUID) -> Optional[Rating]:
        async with self.database_manager.session() as session:
            row = (await session.execute(select(ratings_table).where(ratings_table.c.id == rating_id))).fetchone()
        return Rating(**row._asdict()) if row else None

    async def add_helpful_vote(self, rating_id: UUID, user_id: UUID) -> int:
        """Record the user's vote and return the review's new helpful count."""
        vote = {"id": uuid4(), "rating_id": rating_id, "user_id": user_id, "created_at": utcnow()}
        bump = (
            update(ratings_table)
            .where(ratings_table.c.id == rating_id)
            .values(helpful_votes=ratings_table.c.helpful_votes + 1)
            .returning(ratings_table.c.helpful_votes)
        )
        try:
            async with self.database_manager.session() as session:
                await session.execute(insert(helpful_votes_table).values(**vote))
                return (await session.execute(bump)).scalar_one()
        except sa_exc.IntegrityError as e:
            raise ValidationError(
                "Already marked helpful", errors=["You have already marked this review as helpful"], cause=e
            )

    async def rating_values(self, prompt_id: UUID) -> list[int]:
        query = select(ratings_table.c.rating).where(ratings_table.c.prompt_id == prompt_id)
        async with self.database_manager.session() as session:
            return list((await session.execute(query)).scalars().all())

    async def delete_user_records(self, user_id: UUID) -> None:
        """Best-effort removal of a deleted user's social rows."""
        cleanups = [
            (follows_table, follows_table.c.follower_id == user_id),
            (follows_table, follows_table.c.following_id == user_id),
            (likes_table, likes_table.c.user_id == user_id),
            (comments_table, comments_table.c.user_id == user_id),
            (ratings_table, ratings_table.c.user_id == user_id),
            (saved_prompts_table, saved_prompts_table.c.user_id == user_id),
            (helpful_votes_table, helpful_votes_table.c.user_id == user_id),
        ]
        for table, condition in cleanups:
            try:
                await self._delete_where(table, condition)
            except Exception as e:
                logger.warning(f"Cleanup of {table.name} failed for deleted user {user_id}: {e}")
