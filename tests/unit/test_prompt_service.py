"""
Unit Tests for PromptService: creation cap, visibility, edits, copy path.

Services run against the in-memory repositories and the dict-backed store.
"""

import pytest

from core.enums import PrivacyLevel
from core.exceptions import (
    AccessDeniedError,
    AuthenticationRequiredError,
    DecryptionError,
    MonetizationNotUnlockedError,
    PromptNotFoundError,
    RateLimitExceededError,
)
from core.models import PromptFilters, PromptUpdate
from infrastructure.field_cipher import looks_encrypted
from services.prompt_service import listing_cache_key

pytestmark = pytest.mark.unit


class TestCreate:
    @pytest.mark.asyncio
    async def test_text_is_stored_encrypted(self, prompt_service, prompt_repo, alice, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt(prompt_text="Top secret prompt text"))

        stored = prompt_repo.rows[prompt.id].prompt_text
        assert stored != "Top secret prompt text"
        assert looks_encrypted(stored)
        assert not hasattr(prompt, "prompt_text")

    @pytest.mark.asyncio
    async def test_creator_counter_incremented(self, prompt_service, user_repo, alice, make_prompt):
        await prompt_service.create_prompt(alice, make_prompt())
        assert user_repo.rows[alice.id].stats_total_prompts == 1

    @pytest.mark.asyncio
    async def test_fourth_creation_within_lookback_is_rejected(self, prompt_service, alice, make_prompt):
        for _ in range(3):
            await prompt_service.create_prompt(alice, make_prompt())

        with pytest.raises(RateLimitExceededError) as exc_info:
            await prompt_service.create_prompt(alice, make_prompt())

        assert exc_info.value.data == {"limit": 3, "period": "12 hours", "current": 3}
        assert exc_info.value.errors == [
            "You can only create 3 prompts per 12 hours. Please try again later."
        ]

    @pytest.mark.asyncio
    async def test_cap_counts_only_the_rolling_window(self, prompt_service, prompt_repo, alice, make_prompt):
        created = [await prompt_service.create_prompt(alice, make_prompt()) for _ in range(3)]
        prompt_repo.age(created[0].id, hours=13)

        assert await prompt_service.create_prompt(alice, make_prompt())

    @pytest.mark.asyncio
    async def test_admins_bypass_the_cap(self, prompt_service, admin, make_prompt):
        for _ in range(5):
            await prompt_service.create_prompt(admin, make_prompt())

    @pytest.mark.asyncio
    async def test_paid_requires_monetization(self, prompt_service, user_repo, alice, make_prompt):
        with pytest.raises(MonetizationNotUnlockedError):
            await prompt_service.create_prompt(alice, make_prompt(is_paid=True, price=5))

        await user_repo.set_monetization(alice.id, True)
        prompt = await prompt_service.create_prompt(alice, make_prompt(is_paid=True, price=5))
        assert prompt.is_paid and prompt.price == 5

    @pytest.mark.asyncio
    async def test_price_forced_to_zero_when_free(self, prompt_service, alice, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt(is_paid=False, price=12))
        assert prompt.price == 0


class TestRead:
    @pytest.mark.asyncio
    async def test_view_counted_for_others_only(self, prompt_service, prompt_repo, alice, bob, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())

        await prompt_service.get_prompt(prompt.id, alice)
        assert prompt_repo.rows[prompt.id].stats.views == 0

        seen = await prompt_service.get_prompt(prompt.id, bob)
        await prompt_service.get_prompt(prompt.id, None)
        assert seen.stats.views == 1
        assert prompt_repo.rows[prompt.id].stats.views == 2

    @pytest.mark.asyncio
    async def test_private_prompt_detail(self, prompt_service, alice, bob, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt(privacy="private"))

        assert await prompt_service.get_prompt(prompt.id, alice)
        with pytest.raises(AccessDeniedError):
            await prompt_service.get_prompt(prompt.id, bob)

    @pytest.mark.asyncio
    async def test_followers_prompt_needs_follow(
        self, prompt_service, social_repo, alice, bob, make_prompt
    ):
        prompt = await prompt_service.create_prompt(alice, make_prompt(privacy="followers"))
        with pytest.raises(AccessDeniedError):
            await prompt_service.get_prompt(prompt.id, bob)

        await social_repo.follow(bob.id, alice.id)
        assert (await prompt_service.get_prompt(prompt.id, bob)).privacy is PrivacyLevel.FOLLOWERS

    @pytest.mark.asyncio
    async def test_unknown_prompt(self, prompt_service, alice):
        from uuid import uuid4

        with pytest.raises(PromptNotFoundError):
            await prompt_service.get_prompt(uuid4(), alice)

    @pytest.mark.asyncio
    async def test_listing_is_public_only_and_cached(
        self, prompt_service, prompt_repo, store, alice, make_prompt
    ):
        await prompt_service.create_prompt(alice, make_prompt(title="Public one"))
        await prompt_service.create_prompt(alice, make_prompt(title="Hidden one", privacy="private"))

        filters = PromptFilters()
        page = await prompt_service.list_prompts(filters)
        assert [p.title for p in page.items] == ["Public one"]
        assert page.pagination.total_items == 1
        assert listing_cache_key(filters) in store.data

        # a cached page is served even if the rows change underneath
        prompt_repo.rows.clear()
        assert (await prompt_service.list_prompts(filters)).pagination.total_items == 1

    @pytest.mark.asyncio
    async def test_create_invalidates_listing(self, prompt_service, store, alice, make_prompt):
        filters = PromptFilters()
        await prompt_service.list_prompts(filters)
        assert listing_cache_key(filters) in store.data

        await prompt_service.create_prompt(alice, make_prompt())
        assert listing_cache_key(filters) not in store.data

    def test_listing_key_families(self):
        browse = listing_cache_key(PromptFilters(category="Writing"))
        searched = listing_cache_key(PromptFilters(search="cats"))

        assert browse.startswith("popular:prompts:")
        assert searched.startswith("search:")
        assert listing_cache_key(PromptFilters(search="cats", page=2)) != searched

    @pytest.mark.asyncio
    async def test_my_prompts_include_every_privacy(self, prompt_service, alice, bob, make_prompt):
        await prompt_service.create_prompt(alice, make_prompt(privacy="private"))
        await prompt_service.create_prompt(alice, make_prompt(privacy="followers"))
        await prompt_service.create_prompt(bob, make_prompt())

        page = await prompt_service.list_my_prompts(alice)
        assert page.pagination.total_items == 2


class TestUpdateDelete:
    @pytest.mark.asyncio
    async def test_only_owner_updates(self, prompt_service, alice, bob, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        with pytest.raises(AccessDeniedError):
            await prompt_service.update_prompt(prompt.id, bob, PromptUpdate(title="Hijacked"))

        updated = await prompt_service.update_prompt(prompt.id, alice, PromptUpdate(title="Renamed"))
        assert updated.title == "Renamed"

    @pytest.mark.asyncio
    async def test_text_change_re_encrypts(self, prompt_service, prompt_repo, cipher, alice, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        before = prompt_repo.rows[prompt.id].prompt_text

        await prompt_service.update_prompt(prompt.id, alice, PromptUpdate(description="Only description"))
        assert prompt_repo.rows[prompt.id].prompt_text == before

        await prompt_service.update_prompt(prompt.id, alice, PromptUpdate(prompt_text="Brand new prompt text"))
        after = prompt_repo.rows[prompt.id].prompt_text
        assert after != before
        assert cipher.decrypt(after) == "Brand new prompt text"

    @pytest.mark.asyncio
    async def test_turning_paid_on_requires_monetization(self, prompt_service, alice, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        with pytest.raises(MonetizationNotUnlockedError):
            await prompt_service.update_prompt(prompt.id, alice, PromptUpdate(is_paid=True, price=3))

    @pytest.mark.asyncio
    async def test_turning_paid_off_resets_price(self, prompt_service, user_repo, alice, make_prompt):
        await user_repo.set_monetization(alice.id, True)
        prompt = await prompt_service.create_prompt(alice, make_prompt(is_paid=True, price=9))

        updated = await prompt_service.update_prompt(prompt.id, alice, PromptUpdate(is_paid=False))
        assert updated.price == 0

    @pytest.mark.asyncio
    async def test_delete_unpins_and_decrements(self, prompt_service, prompt_repo, user_repo, alice, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        assert await prompt_service.toggle_pin(prompt.id, alice) is True

        await prompt_service.delete_prompt(prompt.id, alice)

        assert prompt.id not in prompt_repo.rows
        assert user_repo.rows[alice.id].pinned_prompt_id is None
        assert user_repo.rows[alice.id].stats_total_prompts == 0

    @pytest.mark.asyncio
    async def test_admin_delete_needs_elevated_path(self, prompt_service, alice, admin, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        with pytest.raises(AccessDeniedError):
            await prompt_service.delete_prompt(prompt.id, admin)
        await prompt_service.delete_prompt(prompt.id, admin, elevated=True)

    @pytest.mark.asyncio
    async def test_pin_toggles(self, prompt_service, user_repo, alice, make_prompt):
        first = await prompt_service.create_prompt(alice, make_prompt())
        second = await prompt_service.create_prompt(alice, make_prompt())

        assert await prompt_service.toggle_pin(first.id, alice) is True
        assert await prompt_service.toggle_pin(second.id, alice) is True
        assert user_repo.rows[alice.id].pinned_prompt_id == second.id
        assert await prompt_service.toggle_pin(second.id, alice) is False
        assert user_repo.rows[alice.id].pinned_prompt_id is None


class TestCopy:
    @pytest.mark.asyncio
    async def test_copy_discloses_text_and_counts(
        self, prompt_service, prompt_repo, user_repo, metrics, alice, bob, make_prompt
    ):
        prompt = await prompt_service.create_prompt(alice, make_prompt(prompt_text="The hidden prompt body"))

        first = await prompt_service.copy_prompt(prompt.id, bob)
        second = await prompt_service.copy_prompt(prompt.id, bob)

        assert first.prompt_text == second.prompt_text == "The hidden prompt body"
        assert prompt_repo.rows[prompt.id].stats.copies == 2
        assert user_repo.rows[alice.id].stats_total_copies == 2
        assert metrics.registry.get_sample_value("prompt_copies_total") == 2.0

    @pytest.mark.asyncio
    async def test_anonymous_copy_rejected(self, prompt_service, alice, make_prompt):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        with pytest.raises(AuthenticationRequiredError):
            await prompt_service.copy_prompt(prompt.id, None)

    @pytest.mark.asyncio
    async def test_private_copy_rejected_without_touching_text(
        self, prompt_service, prompt_repo, alice, bob, make_prompt
    ):
        prompt = await prompt_service.create_prompt(alice, make_prompt(privacy="private"))
        prompt_repo.get_with_text = None  # must never be reached

        with pytest.raises(AccessDeniedError):
            await prompt_service.copy_prompt(prompt.id, bob)

    @pytest.mark.asyncio
    async def test_paid_copy_is_granted(self, prompt_service, user_repo, alice, bob, make_prompt):
        await user_repo.set_monetization(alice.id, True)
        prompt = await prompt_service.create_prompt(alice, make_prompt(is_paid=True, price=2.5))

        copied = await prompt_service.copy_prompt(prompt.id, bob)
        assert copied.prompt_text

    @pytest.mark.asyncio
    async def test_corrupt_envelope_is_a_generic_failure(
        self, prompt_service, prompt_repo, metrics, alice, bob, make_prompt
    ):
        prompt = await prompt_service.create_prompt(alice, make_prompt())
        prompt_repo.rows[prompt.id].prompt_text = "AAAAAAAAAAAAAAAAAAAAAA==:AAAAAAAAAAAAAAAAAAAAAA==:AAAA"

        with pytest.raises(DecryptionError) as exc_info:
            await prompt_service.copy_prompt(prompt.id, bob)

        assert exc_info.value.client_message == "Failed to decrypt prompt"
        assert prompt_repo.rows[prompt.id].stats.copies == 0
        assert (
            metrics.registry.get_sample_value(
                "decryption_failures_total", {"reason": "INTEGRITY_CHECK_FAILED"}
            )
            == 1.0
        )
