"""
Social Service: likes, follows, saves, comments and ratings.

Each mutation keeps the prompt's engagement counters in step and
invalidates the caches that could list the affected prompt or user.
"""

from typing import Optional
from uuid import UUID

from loguru import logger

from core.enums import PrivacyLevel, PromptStat
from core.exceptions import NotFoundError, PromptNotFoundError, UserNotFoundError, ValidationError
from core.models import (
    Comment,
    CommentCreate,
    Prompt,
    Rating,
    RatingAggregate,
    RatingCreate,
    RatingUpdate,
    SaveRequest,
    User,
)
from core.result import unwrap
from repositories.prompt_repository import PromptRepository
from repositories.social_repository import SocialRepository
from repositories.user_repository import UserRepository
from services.access_control import can_delete_comment, can_view
from services.cache_service import CacheKeys, CacheService


class SocialService:
    def __init__(
        self,
        social_repository: SocialRepository,
        prompt_repository: PromptRepository,
        user_repository: UserRepository,
        cache: CacheService,
    ):
        self.social = social_repository
        self.prompts = prompt_repository
        self.users = user_repository
        self.cache = cache

    async def _visible_prompt(self, prompt_id: UUID, user: Optional[User]) -> Prompt:
        """A prompt the user is allowed to see; engagement and its listings follow the view rule."""
        prompt = await self.prompts.get(prompt_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        is_follower = (
            user is not None
            and prompt.privacy is PrivacyLevel.FOLLOWERS
            and await self.social.is_following(user.id, prompt.creator_id)
        )
        unwrap(can_view(prompt, user, is_follower=is_follower))
        return prompt

    # =========================================================================
    # FOLLOWS
    # =========================================================================

    async def follow(self, user: User, target_id: UUID) -> None:
        if target_id == user.id:
            raise ValidationError("Invalid action", errors=["You cannot follow yourself"])
        if await self.users.get_by_id(target_id) is None:
            raise UserNotFoundError(target_id)

        await self.social.follow(user.id, target_id)
        logger.info(f"{user.id} followed {target_id}")
        await self.cache.invalidate_user_caches(user.id)
        await self.cache.invalidate_user_caches(target_id)

    async def unfollow(self, user: User, target_id: UUID) -> None:
        if not await self.social.unfollow(user.id, target_id):
            raise NotFoundError(
                "Follow", target_id, message="Follow relationship not found",
                errors=["You are not following this user"],
            )
        await self.cache.invalidate_user_caches(user.id)
        await self.cache.invalidate_user_caches(target_id)

    # =========================================================================
    # LIKES
    # =========================================================================

    async def like(self, user: User, prompt_id: UUID) -> None:
        await self._visible_prompt(prompt_id, user)
        await self.social.like(user.id, prompt_id)
        await self.prompts.increment_stat(prompt_id, PromptStat.LIKES)
        await self.cache.invalidate_prompt_caches(prompt_id)

    async def unlike(self, user: User, prompt_id: UUID) -> None:
        if not await self.social.unlike(user.id, prompt_id):
            raise NotFoundError(
                "Like", prompt_id, message="Like not found", errors=["You have not liked this prompt"]
            )
        await self.prompts.increment_stat(prompt_id, PromptStat.LIKES, -1)
        await self.cache.invalidate_prompt_caches(prompt_id)

    # =========================================================================
    # SAVES
    # =========================================================================

    async def save(self, user: User, prompt_id: UUID, request: SaveRequest) -> None:
        await self._visible_prompt(prompt_id, user)
        await self.social.save(user.id, prompt_id, request)
        await self.cache.delete_pattern(f"{CacheKeys.saved(user.id)}*")

    async def unsave(self, user: User, prompt_id: UUID, collection_name: Optional[str] = None) -> None:
        if not await self.social.unsave(user.id, prompt_id, collection_name):
            raise NotFoundError(
                "Saved prompt", prompt_id, message="Saved prompt not found",
                errors=["Prompt is not in your saved list"],
            )
        await self.cache.delete_pattern(f"{CacheKeys.saved(user.id)}*")

    # =========================================================================
    # COMMENTS
    # =========================================================================

    async def add_comment(self, user: User, prompt_id: UUID, data: CommentCreate) -> Comment:
        """
        Comment on a prompt, or reply to one of its top-level comments.

        Raises:
            NotFoundError: the parent comment is missing, deleted or on another prompt
            ValidationError: the parent is itself a reply
        """
        await self._visible_prompt(prompt_id, user)
        if data.parent_comment_id is not None:
            parent = await self.social.get_comment(data.parent_comment_id)
            if parent is None or parent.prompt_id != prompt_id:
                raise NotFoundError(
                    "Comment", data.parent_comment_id, message="Parent comment not found",
                    errors=["Parent comment does not exist"],
                )
            if parent.parent_comment_id is not None:
                raise ValidationError("Invalid input", errors=["Replies cannot be nested"])

        comment = await self.social.add_comment(user.id, prompt_id, data.content, data.parent_comment_id)
        await self.prompts.increment_stat(prompt_id, PromptStat.COMMENTS)
        await self.cache.invalidate_prompt_caches(prompt_id)
        return comment

    async def delete_comment(self, user: User, comment_id: UUID) -> None:
        comment = await self.social.get_comment(comment_id)
        if comment is None:
            raise NotFoundError(
                "Comment", comment_id, message="Comment not found", errors=["Comment does not exist"]
            )
        unwrap(can_delete_comment(comment, user))

        await self.social.delete_comment(comment_id)
        await self.prompts.increment_stat(comment.prompt_id, PromptStat.COMMENTS, -1)
        await self.cache.invalidate_prompt_caches(comment.prompt_id)
        logger.info(f"Comment {comment_id} removed by {user.id}")

    async def list_comments(
        self, prompt_id: UUID, requester: Optional[User] = None, page: int = 1, limit: int = 20
    ) -> list[Comment]:
        """Top-level comments newest first, with their replies; cached per page."""
        await self._visible_prompt(prompt_id, requester)

        key = f"{CacheKeys.comments(prompt_id, page)}:{limit}"
        cached = await self.cache.get(key)
        if cached is not None:
            return [Comment.model_validate(item) for item in cached]

        comments = await self.social.list_comments(prompt_id, (page - 1) * limit, limit)
        await self.cache.set(key, [c.model_dump(mode="json") for c in comments])
        return comments

    # =========================================================================
    # RATINGS
    # =========================================================================

    async def _refresh_aggregate(self, prompt_id: UUID, user_id: UUID) -> RatingAggregate:
        aggregate = RatingAggregate.from_values(await self.social.rating_values(prompt_id))
        await self.prompts.set_rating_aggregate(prompt_id, aggregate)
        await self.cache.invalidate_prompt_caches(prompt_id)
        await self.cache.delete_pattern(f"{CacheKeys.user_ratings(user_id)}*")
        return aggregate

    async def rate(self, user: User, prompt_id: UUID, data: RatingCreate) -> tuple[Rating, RatingAggregate]:
        """
        Record the user's single rating for a prompt and recompute the
        aggregate from every stored rating.

        Raises:
            ValidationError: the user already rated this prompt
        """
        await self._visible_prompt(prompt_id, user)
        rating = await self.social.add_rating(user.id, prompt_id, data.rating, data.review.strip())
        return rating, await self._refresh_aggregate(prompt_id, user.id)

    async def update_rating(
        self, user: User, prompt_id: UUID, data: RatingUpdate
    ) -> tuple[Rating, RatingAggregate]:
        review = data.review.strip() if data.review is not None else None
        rating = await self.social.update_rating(user.id, prompt_id, data.rating, review)
        if rating is None:
            raise NotFoundError(
                "Rating", prompt_id, message="Rating not found", errors=["You have not rated this prompt yet"]
            )
        return rating, await self._refresh_aggregate(prompt_id, user.id)

    async def delete_rating(self, user: User, prompt_id: UUID) -> RatingAggregate:
        if not await self.social.delete_rating(user.id, prompt_id):
            raise NotFoundError(
                "Rating", prompt_id, message="Rating not found", errors=["You have not rated this prompt"]
            )
        return await self._refresh_aggregate(prompt_id, user.id)

    async def list_ratings(
        self, prompt_id: UUID, requester: Optional[User] = None, page: int = 1, limit: int = 10
    ) -> list[Rating]:
        await self._visible_prompt(prompt_id, requester)

        key = f"{CacheKeys.prompt_ratings(prompt_id)}:{page}:{limit}"
        cached = await self.cache.get(key)
        if cached is not None:
            return [Rating.model_validate(item) for item in cached]

        ratings = await self.social.list_ratings(prompt_id, (page - 1) * limit, limit)
        await self.cache.set(key, [r.model_dump(mode="json") for r in ratings])
        return ratings

    async def mark_review_helpful(self, user: User, rating_id: UUID) -> int:
        """
        Count the user's helpful vote on a review, once per user.

        Returns:
            The review's helpful vote total
        """
        rating = await self.social.get_rating(rating_id)
        if rating is None:
            raise NotFoundError("Rating", rating_id, message="Rating not found", errors=["Rating does not exist"])
        await self._visible_prompt(rating.prompt_id, user)

        votes = await self.social.add_helpful_vote(rating_id, user.id)
        await self.cache.delete_pattern(f"{CacheKeys.prompt_ratings(rating.prompt_id)}*")
        return votes
