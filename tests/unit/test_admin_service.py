"""
Unit Tests for AdminService moderation and account administration.
"""

import pytest

from core.enums import ModerationAction
from core.exceptions import AccessDeniedError, PromptNotFoundError

pytestmark = pytest.mark.unit


class TestUsers:
    @pytest.mark.asyncio
    async def test_regular_users_are_refused(self, admin_service, alice, bob):
        with pytest.raises(AccessDeniedError):
            await admin_service.set_monetization(alice, bob.id, True)

    @pytest.mark.asyncio
    async def test_monetization_toggle(self, admin_service, user_repo, admin, alice):
        updated = await admin_service.set_monetization(admin, alice.id, True)
        assert updated.monetization_unlocked
        assert user_repo.rows[alice.id].monetization_unlocked

    @pytest.mark.asyncio
    async def test_block_and_unblock(self, admin_service, user_repo, admin, alice):
        await admin_service.set_user_status(admin, alice.id, ModerationAction.BLOCK)
        assert user_repo.rows[alice.id].is_active is False

        await admin_service.set_user_status(admin, alice.id, ModerationAction.UNBLOCK)
        assert user_repo.rows[alice.id].is_active is True

    @pytest.mark.asyncio
    async def test_admins_cannot_be_blocked_or_deleted(self, admin_service, user_repo, admin):
        other = user_repo.add("second_admin", role=admin.role).public()
        with pytest.raises(AccessDeniedError):
            await admin_service.set_user_status(admin, other.id, ModerationAction.BLOCK)
        with pytest.raises(AccessDeniedError):
            await admin_service.delete_user(admin, other.id)

    @pytest.mark.asyncio
    async def test_delete_user_cascades(
        self, admin_service, prompt_service, social_service, user_repo, prompt_repo, social_repo,
        admin, alice, bob, make_prompt,
    ):
        first = await prompt_service.create_prompt(alice, make_prompt())
        await prompt_service.create_prompt(alice, make_prompt())
        kept = await prompt_service.create_prompt(bob, make_prompt())
        await social_service.follow(alice, bob.id)
        await social_service.like(bob, first.id)
        await social_service.like(alice, kept.id)

        removed = await admin_service.delete_user(admin, alice.id)

        assert removed == 2
        assert alice.id not in user_repo.rows
        assert list(prompt_repo.rows) == [kept.id]
        assert social_repo.follows == set()
        assert (alice.id, kept.id) not in social_repo.likes

    @pytest.mark.asyncio
    async def test_list_users_is_paginated(self, admin_service, admin, alice, bob):
        users, total = await admin_service.list_users(admin, page=1, limit=2)
        assert len(users) == 2
        assert total == 3
        assert not hasattr(users[0], "hashed_password")


class TestPrompts:
    @pytest.mark.asyncio
    async def test_block_records_moderation_then_clears(
        self, admin_service, prompt_service, prompt_repo, admin, alice, bob, make_prompt
    ):
        prompt = await prompt_service.create_prompt(alice, make_prompt())

        blocked = await admin_service.moderate_prompt(admin, prompt.id, ModerationAction.BLOCK, "spam")
        row = prompt_repo.rows[prompt.id]
        assert blocked.is_active is False
        assert row.moderation_reason == "spam"
        assert row.moderated_by == admin.id

        with pytest.raises(AccessDeniedError):
            await prompt_service.get_prompt(prompt.id, bob)

        await admin_service.moderate_prompt(admin, prompt.id, ModerationAction.UNBLOCK)
        row = prompt_repo.rows[prompt.id]
        assert row.is_active is True
        assert row.moderation_reason is None and row.moderated_at is None

    @pytest.mark.asyncio
    async def test_moderating_unknown_prompt(self, admin_service, admin):
        from uuid import uuid4

        with pytest.raises(PromptNotFoundError):
            await admin_service.moderate_prompt(admin, uuid4(), ModerationAction.BLOCK)

    @pytest.mark.asyncio
    async def test_listing_includes_private_and_blocked(
        self, admin_service, prompt_service, admin, alice, make_prompt
    ):
        await prompt_service.create_prompt(alice, make_prompt(privacy="private"))
        public = await prompt_service.create_prompt(alice, make_prompt())
        await admin_service.moderate_prompt(admin, public.id, ModerationAction.BLOCK)

        page = await admin_service.list_prompts(admin)
        assert page.pagination.total_items == 2

    @pytest.mark.asyncio
    async def test_admin_delete_prompt(self, admin_service, prompt_service, prompt_repo, admin, alice, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        await admin_service.delete_prompt(admin, prompt.id)
        assert prompt.id not in prompt_repo.rows


class TestPlatform:
    @pytest.mark.asyncio
    async def test_platform_stats(self, admin_service, prompt_service, admin, alice, bob, make_prompt):
        await admin_service.set_user_status(admin, bob.id, ModerationAction.BLOCK)
        await admin_service.set_monetization(admin, alice.id, True)
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        await prompt_service.create_prompt(alice, make_prompt(privacy="private"))
        await admin_service.moderate_prompt(admin, prompt.id, ModerationAction.BLOCK)

        stats = await admin_service.platform_stats(admin)

        assert stats["users"] == {"total": 3, "active": 2, "blocked": 1, "monetized": 1}
        assert stats["prompts"] == {"total": 2, "active": 1, "blocked": 1}

    @pytest.mark.asyncio
    async def test_reset_rate_limit(self, admin_service, rate_limiter, store, admin):
        await rate_limiter.check_and_consume("auth", "10.0.0.1", 5, 60_000)
        assert await admin_service.reset_rate_limit(admin, "auth", "10.0.0.1") == 1
        assert store.data == {}
