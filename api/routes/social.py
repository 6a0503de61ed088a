"""
Social Routes: likes, follows, saves, comments and ratings.

Mutations sit behind the `social` limit; comments behind `comment`.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.caching import invalidate_routes
from api.dependencies import (
    get_cache,
    get_current_user,
    get_optional_user,
    get_social_service,
    parse_identifier,
)
from api.rate_limit import RateLimitDependency
from api.schemas import success
from config.constants import RATE_LIMITS
from core.models import CommentCreate, RatingAggregate, RatingCreate, RatingUpdate, SaveRequest, User
from services.cache_service import CacheService
from services.social_service import SocialService

router = APIRouter(prefix="/api/social", tags=["Social"])

social_limit = RateLimitDependency(RATE_LIMITS.SOCIAL)
comment_limit = RateLimitDependency(RATE_LIMITS.COMMENT)


def aggregate_payload(aggregate: RatingAggregate) -> dict:
    return {"averageRating": aggregate.average, "totalRatings": aggregate.count}


# =============================================================================
# LIKES
# =============================================================================


@router.post("/prompts/{prompt_id}/like", dependencies=[Depends(social_limit)])
async def like_prompt(
    prompt_id: str,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    await social.like(user, parse_identifier(prompt_id))
    return success(None, "Prompt liked successfully")


@router.delete("/prompts/{prompt_id}/like", dependencies=[Depends(social_limit)])
async def unlike_prompt(
    prompt_id: str,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    await social.unlike(user, parse_identifier(prompt_id))
    return success(None, "Prompt unliked successfully")


# =============================================================================
# FOLLOWS
# =============================================================================


@router.post("/users/{user_id}/follow", dependencies=[Depends(social_limit)])
async def follow_user(
    user_id: str,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    await social.follow(user, parse_identifier(user_id))
    return success(None, "User followed successfully")


@router.delete("/users/{user_id}/follow", dependencies=[Depends(social_limit)])
async def unfollow_user(
    user_id: str,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    await social.unfollow(user, parse_identifier(user_id))
    return success(None, "User unfollowed successfully")


# =============================================================================
# SAVES
# =============================================================================


@router.post("/prompts/{prompt_id}/save", dependencies=[Depends(social_limit)])
async def save_prompt(
    prompt_id: str,
    body: Optional[SaveRequest] = None,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
    cache: CacheService = Depends(get_cache),
):
    await social.save(user, parse_identifier(prompt_id), body or SaveRequest())
    await invalidate_routes(cache, user.id)
    return success(None, "Prompt saved successfully")


@router.delete("/prompts/{prompt_id}/save", dependencies=[Depends(social_limit)])
async def unsave_prompt(
    prompt_id: str,
    collection: Optional[str] = Query(None, max_length=100),
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
    cache: CacheService = Depends(get_cache),
):
    await social.unsave(user, parse_identifier(prompt_id), collection)
    await invalidate_routes(cache, user.id)
    return success(None, "Prompt removed from saved")


# =============================================================================
# COMMENTS
# =============================================================================


@router.post(
    "/prompts/{prompt_id}/comments",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(comment_limit)],
)
async def add_comment(
    prompt_id: str,
    data: CommentCreate,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    comment = await social.add_comment(user, parse_identifier(prompt_id), data)
    return success({"comment": comment.model_dump(mode="json")}, "Comment added successfully")


@router.get("/prompts/{prompt_id}/comments")
async def list_comments(
    prompt_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: Optional[User] = Depends(get_optional_user),
    social: SocialService = Depends(get_social_service),
):
    comments = await social.list_comments(parse_identifier(prompt_id), user, page, limit)
    return success({"comments": [c.model_dump(mode="json") for c in comments]})


@router.delete("/comments/{comment_id}", dependencies=[Depends(social_limit)])
async def delete_comment(
    comment_id: str,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    await social.delete_comment(user, parse_identifier(comment_id))
    return success(None, "Comment deleted successfully")


# =============================================================================
# RATINGS
# =============================================================================


@router.post(
    "/prompts/{prompt_id}/rating",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(social_limit)],
)
async def rate_prompt(
    prompt_id: str,
    data: RatingCreate,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    rating, aggregate = await social.rate(user, parse_identifier(prompt_id), data)
    return success(
        {"rating": rating.model_dump(mode="json"), "promptStats": aggregate_payload(aggregate)},
        "Rating added successfully",
    )


@router.put("/prompts/{prompt_id}/rating", dependencies=[Depends(social_limit)])
async def update_rating(
    prompt_id: str,
    data: RatingUpdate,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    rating, aggregate = await social.update_rating(user, parse_identifier(prompt_id), data)
    return success(
        {"rating": rating.model_dump(mode="json"), "promptStats": aggregate_payload(aggregate)},
        "Rating updated successfully",
    )


@router.delete("/prompts/{prompt_id}/rating", dependencies=[Depends(social_limit)])
async def delete_rating(
    prompt_id: str,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    aggregate = await social.delete_rating(user, parse_identifier(prompt_id))
    return success({"promptStats": aggregate_payload(aggregate)}, "Rating deleted successfully")


@router.get("/prompts/{prompt_id}/ratings")
async def list_ratings(
    prompt_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: Optional[User] = Depends(get_optional_user),
    social: SocialService = Depends(get_social_service),
):
    ratings = await social.list_ratings(parse_identifier(prompt_id), user, page, limit)
    return success({"ratings": [r.model_dump(mode="json") for r in ratings]})


@router.post("/ratings/{rating_id}/helpful", dependencies=[Depends(social_limit)])
async def mark_review_helpful(
    rating_id: str,
    user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
):
    votes = await social.mark_review_helpful(user, parse_identifier(rating_id))
    return success({"helpfulVotes": votes}, "Review marked as helpful")
