"""
Unit Tests for SocialService: follows, likes, saves, comments, ratings.
"""

from uuid import uuid4

import pytest

from core.exceptions import (
    AccessDeniedError,
    NotFoundError,
    PromptNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from core.models import CommentCreate, RatingCreate, RatingUpdate, SaveRequest

pytestmark = pytest.mark.unit


@pytest.fixture
async def prompt(prompt_service, alice, make_prompt):
    return await prompt_service.create_prompt(alice, make_prompt())


class TestFollows:
    @pytest.mark.asyncio
    async def test_follow_and_unfollow(self, social_service, social_repo, alice, bob):
        await social_service.follow(bob, alice.id)
        assert await social_repo.is_following(bob.id, alice.id)

        await social_service.unfollow(bob, alice.id)
        assert not await social_repo.is_following(bob.id, alice.id)

    @pytest.mark.asyncio
    async def test_cannot_follow_self(self, social_service, alice):
        with pytest.raises(ValidationError) as exc_info:
            await social_service.follow(alice, alice.id)
        assert exc_info.value.errors == ["You cannot follow yourself"]

    @pytest.mark.asyncio
    async def test_unknown_target(self, social_service, alice):
        with pytest.raises(UserNotFoundError):
            await social_service.follow(alice, uuid4())

    @pytest.mark.asyncio
    async def test_duplicate_follow_is_a_client_error(self, social_service, alice, bob):
        await social_service.follow(bob, alice.id)
        with pytest.raises(ValidationError) as exc_info:
            await social_service.follow(bob, alice.id)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unfollow_without_follow(self, social_service, alice, bob):
        with pytest.raises(NotFoundError):
            await social_service.unfollow(bob, alice.id)


class TestLikes:
    @pytest.mark.asyncio
    async def test_like_counts_and_duplicate_rejected(self, social_service, prompt_repo, prompt, bob):
        await social_service.like(bob, prompt.id)
        assert prompt_repo.rows[prompt.id].stats.likes == 1

        with pytest.raises(ValidationError) as exc_info:
            await social_service.like(bob, prompt.id)
        assert exc_info.value.message == "Already liked"
        assert prompt_repo.rows[prompt.id].stats.likes == 1

    @pytest.mark.asyncio
    async def test_unlike(self, social_service, prompt_repo, prompt, bob):
        await social_service.like(bob, prompt.id)
        await social_service.unlike(bob, prompt.id)
        assert prompt_repo.rows[prompt.id].stats.likes == 0

        with pytest.raises(NotFoundError) as exc_info:
            await social_service.unlike(bob, prompt.id)
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_like_follows_view_rule(
        self, social_service, prompt_service, alice, bob, make_prompt
    ):
        hidden = await prompt_service.create_prompt(alice, make_prompt(privacy="followers"))
        with pytest.raises(AccessDeniedError):
            await social_service.like(bob, hidden.id)

        await social_service.follow(bob, alice.id)
        await social_service.like(bob, hidden.id)

    @pytest.mark.asyncio
    async def test_like_invalidates_prompt_cache(self, social_service, store, prompt, bob):
        store.data[f"prompt:{prompt.id}"] = "{}"
        await social_service.like(bob, prompt.id)
        assert f"prompt:{prompt.id}" not in store.data


class TestSavesAndComments:
    @pytest.mark.asyncio
    async def test_save_per_collection(self, social_service, prompt, bob):
        await social_service.save(bob, prompt.id, SaveRequest())
        await social_service.save(bob, prompt.id, SaveRequest(collection_name="Favorites"))
        with pytest.raises(ValidationError):
            await social_service.save(bob, prompt.id, SaveRequest())

        await social_service.unsave(bob, prompt.id)
        with pytest.raises(NotFoundError):
            await social_service.unsave(bob, prompt.id)

    @pytest.mark.asyncio
    async def test_comments_newest_first(self, social_service, prompt_repo, prompt, bob):
        await social_service.add_comment(bob, prompt.id, CommentCreate(content="First"))
        await social_service.add_comment(bob, prompt.id, CommentCreate(content="Second"))

        comments = await social_service.list_comments(prompt.id)
        assert [c.content for c in comments] == ["Second", "First"]
        assert prompt_repo.rows[prompt.id].stats.comments == 2

    @pytest.mark.asyncio
    async def test_new_comment_invalidates_cached_page(self, social_service, prompt, bob):
        assert await social_service.list_comments(prompt.id) == []
        await social_service.add_comment(bob, prompt.id, CommentCreate(content="Fresh"))
        assert len(await social_service.list_comments(prompt.id)) == 1


class TestCommentVisibility:
    @pytest.mark.asyncio
    async def test_private_prompt_comments_hidden_from_others(
        self, social_service, prompt_service, alice, bob, make_prompt
    ):
        hidden = await prompt_service.create_prompt(alice, make_prompt(privacy="private"))
        await social_service.add_comment(alice, hidden.id, CommentCreate(content="my secret note"))

        with pytest.raises(AccessDeniedError):
            await social_service.list_comments(hidden.id)
        with pytest.raises(AccessDeniedError):
            await social_service.list_comments(hidden.id, bob)
        with pytest.raises(AccessDeniedError):
            await social_service.list_ratings(hidden.id, bob)

        assert len(await social_service.list_comments(hidden.id, alice)) == 1

    @pytest.mark.asyncio
    async def test_cached_page_still_checks_access(
        self, social_service, prompt_service, alice, bob, make_prompt
    ):
        hidden = await prompt_service.create_prompt(alice, make_prompt(privacy="followers"))
        await social_service.follow(bob, alice.id)
        await social_service.add_comment(bob, hidden.id, CommentCreate(content="Followers only"))
        assert len(await social_service.list_comments(hidden.id, bob)) == 1

        await social_service.unfollow(bob, alice.id)
        with pytest.raises(AccessDeniedError):
            await social_service.list_comments(hidden.id, bob)

    @pytest.mark.asyncio
    async def test_unknown_prompt(self, social_service, alice):
        with pytest.raises(PromptNotFoundError):
            await social_service.list_comments(uuid4(), alice)
        with pytest.raises(PromptNotFoundError):
            await social_service.list_ratings(uuid4())


class TestReplies:
    @pytest.mark.asyncio
    async def test_replies_nest_under_parent(self, social_service, prompt_repo, prompt, alice, bob):
        parent = await social_service.add_comment(bob, prompt.id, CommentCreate(content="Question"))
        for text in ("First answer", "Second answer"):
            await social_service.add_comment(
                alice, prompt.id, CommentCreate(content=text, parent_comment_id=parent.id)
            )

        comments = await social_service.list_comments(prompt.id)

        assert [c.content for c in comments] == ["Question"]
        assert [r.content for r in comments[0].replies] == ["First answer", "Second answer"]
        assert comments[0].replies_count == 2
        assert prompt_repo.rows[prompt.id].stats.comments == 3

    @pytest.mark.asyncio
    async def test_reply_preview_is_capped(self, social_service, prompt, bob):
        parent = await social_service.add_comment(bob, prompt.id, CommentCreate(content="Thread"))
        for i in range(7):
            await social_service.add_comment(
                bob, prompt.id, CommentCreate(content=f"Reply {i}", parent_comment_id=parent.id)
            )

        [thread] = await social_service.list_comments(prompt.id)
        assert len(thread.replies) == 5
        assert thread.replies_count == 7

    @pytest.mark.asyncio
    async def test_parent_must_belong_to_prompt(
        self, social_service, prompt_service, prompt, alice, bob, make_prompt
    ):
        other = await prompt_service.create_prompt(alice, make_prompt())
        parent = await social_service.add_comment(bob, other.id, CommentCreate(content="Elsewhere"))

        with pytest.raises(NotFoundError) as exc_info:
            await social_service.add_comment(
                bob, prompt.id, CommentCreate(content="Wrong thread", parent_comment_id=parent.id)
            )
        assert exc_info.value.message == "Parent comment not found"

        with pytest.raises(NotFoundError):
            await social_service.add_comment(
                bob, prompt.id, CommentCreate(content="No parent", parent_comment_id=uuid4())
            )

    @pytest.mark.asyncio
    async def test_replies_do_not_nest(self, social_service, prompt, bob):
        parent = await social_service.add_comment(bob, prompt.id, CommentCreate(content="Top"))
        reply = await social_service.add_comment(
            bob, prompt.id, CommentCreate(content="Reply", parent_comment_id=parent.id)
        )
        with pytest.raises(ValidationError) as exc_info:
            await social_service.add_comment(
                bob, prompt.id, CommentCreate(content="Deeper", parent_comment_id=reply.id)
            )
        assert exc_info.value.errors == ["Replies cannot be nested"]


class TestCommentDeletion:
    @pytest.mark.asyncio
    async def test_author_deletes_and_listing_skips_it(self, social_service, prompt_repo, prompt, bob):
        kept = await social_service.add_comment(bob, prompt.id, CommentCreate(content="Kept"))
        removed = await social_service.add_comment(bob, prompt.id, CommentCreate(content="Removed"))
        reply = await social_service.add_comment(
            bob, prompt.id, CommentCreate(content="Reply", parent_comment_id=kept.id)
        )

        await social_service.delete_comment(bob, removed.id)
        await social_service.delete_comment(bob, reply.id)

        [comment] = await social_service.list_comments(prompt.id)
        assert comment.id == kept.id
        assert comment.replies == [] and comment.replies_count == 0
        assert prompt_repo.rows[prompt.id].stats.comments == 1

        with pytest.raises(NotFoundError):
            await social_service.delete_comment(bob, removed.id)

    @pytest.mark.asyncio
    async def test_only_author_or_admin(self, social_service, prompt, alice, bob, admin):
        comment = await social_service.add_comment(bob, prompt.id, CommentCreate(content="Mine"))

        with pytest.raises(AccessDeniedError):
            await social_service.delete_comment(alice, comment.id)

        await social_service.delete_comment(admin, comment.id)
        assert await social_service.list_comments(prompt.id) == []


class TestRatings:
    @pytest.mark.asyncio
    async def test_aggregate_recomputed(self, social_service, prompt_repo, prompt, alice, bob):
        _, aggregate = await social_service.rate(bob, prompt.id, RatingCreate(rating=5))
        assert aggregate.average == 5.0

        # creators may rate their own prompts
        _, aggregate = await social_service.rate(alice, prompt.id, RatingCreate(rating=2))
        assert aggregate.average == 3.5
        assert aggregate.count == 2
        assert prompt_repo.rows[prompt.id].ratings.average == 3.5

    @pytest.mark.asyncio
    async def test_one_rating_per_user(self, social_service, prompt, bob):
        await social_service.rate(bob, prompt.id, RatingCreate(rating=4))
        with pytest.raises(ValidationError):
            await social_service.rate(bob, prompt.id, RatingCreate(rating=1))

    @pytest.mark.asyncio
    async def test_update_and_delete(self, social_service, prompt_repo, prompt, bob):
        await social_service.rate(bob, prompt.id, RatingCreate(rating=4, review="  solid  "))

        rating, aggregate = await social_service.update_rating(bob, prompt.id, RatingUpdate(rating=2))
        assert rating.review == "solid"
        assert aggregate.average == 2.0

        aggregate = await social_service.delete_rating(bob, prompt.id)
        assert aggregate.count == 0
        assert prompt_repo.rows[prompt.id].ratings.count == 0

    @pytest.mark.asyncio
    async def test_update_missing_rating(self, social_service, prompt, bob):
        with pytest.raises(NotFoundError):
            await social_service.update_rating(bob, prompt.id, RatingUpdate(rating=3))


class TestHelpfulVotes:
    @pytest.mark.asyncio
    async def test_one_vote_per_user(self, social_service, prompt, alice, bob, admin):
        review, _ = await social_service.rate(bob, prompt.id, RatingCreate(rating=5, review="Great"))

        assert await social_service.mark_review_helpful(alice, review.id) == 1
        assert await social_service.mark_review_helpful(admin, review.id) == 2

        with pytest.raises(ValidationError) as exc_info:
            await social_service.mark_review_helpful(alice, review.id)
        assert exc_info.value.message == "Already marked helpful"

    @pytest.mark.asyncio
    async def test_listing_reflects_votes(self, social_service, prompt, alice, bob):
        review, _ = await social_service.rate(bob, prompt.id, RatingCreate(rating=4))
        assert (await social_service.list_ratings(prompt.id))[0].helpful_votes == 0

        await social_service.mark_review_helpful(alice, review.id)
        assert (await social_service.list_ratings(prompt.id))[0].helpful_votes == 1

    @pytest.mark.asyncio
    async def test_unknown_review(self, social_service, alice):
        with pytest.raises(NotFoundError) as exc_info:
            await social_service.mark_review_helpful(alice, uuid4())
        assert exc_info.value.message == "Rating not found"
