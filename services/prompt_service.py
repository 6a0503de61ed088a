"""
Prompt Service: Business Logic Layer for Prompt Management
==========================================================

Orchestrates prompt creation, listing, detail views, edits, deletion,
pinning and the controlled-disclosure copy path.

Every operation runs the pure rules in `services.access_control` and
turns a denial into the matching exception with `unwrap`. Only
`copy_prompt` ever reads or decrypts the protected text.
"""

import hashlib
from datetime import timedelta
from typing import Optional
from uuid import UUID

from loguru import logger

from config.constants import PROMPT_CREATION_CAP
from core.enums import PrivacyLevel, PromptStat
from core.exceptions import (
    DecryptionError,
    PromptNotFoundError,
    RateLimitExceededError,
    UserNotFoundError,
)
from core.models import (
    Pagination,
    Prompt,
    PromptCopy,
    PromptCreate,
    PromptFilters,
    PromptPage,
    PromptUpdate,
    User,
    utcnow,
)
from core.result import unwrap
from infrastructure.field_cipher import FieldCipher
from infrastructure.monitoring import MetricsCollector
from repositories.prompt_repository import PromptRepository
from repositories.social_repository import SocialRepository
from repositories.user_repository import UserRepository
from services.access_control import (
    can_copy,
    can_create_paid,
    can_modify,
    can_view,
    is_owner,
    requires_payment,
)
from services.cache_service import CacheKeys, CacheService


def listing_cache_key(filters: PromptFilters) -> str:
    """Stable key for one listing query; text searches get their own family."""
    fingerprint = hashlib.sha256(filters.model_dump_json().encode("utf-8")).hexdigest()[:32]
    if filters.search:
        return CacheKeys.search(fingerprint)
    return CacheKeys.popular_prompts(fingerprint)


class PromptService:
    """
    Service layer for prompt business logic.

    Coordinates the prompt, user and social repositories with the field
    cipher and the response cache.
    """

    def __init__(
        self,
        prompt_repository: PromptRepository,
        user_repository: UserRepository,
        social_repository: SocialRepository,
        cipher: FieldCipher,
        cache: CacheService,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.prompts = prompt_repository
        self.users = user_repository
        self.social = social_repository
        self.cipher = cipher
        self.cache = cache
        self.metrics = metrics
        logger.debug("PromptService initialized")

    async def _load(self, prompt_id: UUID) -> Prompt:
        prompt = await self.prompts.get(prompt_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        return prompt

    async def _is_follower(self, prompt: Prompt, requester: Optional[User]) -> bool:
        """Only resolved when the answer can change the decision."""
        if requester is None or prompt.privacy is not PrivacyLevel.FOLLOWERS:
            return False
        if is_owner(prompt, requester):
            return False
        return await self.social.is_following(requester.id, prompt.creator_id)

    # =========================================================================
    # CREATE
    # =========================================================================

    async def create_prompt(self, user: User, data: PromptCreate) -> Prompt:
        """
        Create a prompt for `user`.

        Raises:
            UserNotFoundError: the creator account no longer exists
            RateLimitExceededError: creation cap reached (non-admins)
            MonetizationNotUnlockedError: paid prompt without monetization
        """
        creator = await self.users.get_by_id(user.id)
        if creator is None:
            raise UserNotFoundError(user.id)

        if not creator.is_admin:
            since = utcnow() - timedelta(hours=PROMPT_CREATION_CAP.LOOKBACK_HOURS)
            recent = await self.prompts.count_created_since(creator.id, since)
            if recent >= PROMPT_CREATION_CAP.MAX_PROMPTS:
                logger.info(
                    f"Creation cap reached for {creator.id}: "
                    f"{recent} in {PROMPT_CREATION_CAP.period_label}"
                )
                raise RateLimitExceededError(
                    "Rate limit exceeded",
                    errors=[PROMPT_CREATION_CAP.error_message],
                    data={
                        "limit": PROMPT_CREATION_CAP.MAX_PROMPTS,
                        "period": PROMPT_CREATION_CAP.period_label,
                        "current": recent,
                    },
                )

        if data.is_paid:
            unwrap(can_create_paid(creator))

        prompt = await self.prompts.create(creator.id, data)
        await self.users.increment_stat(creator.id, "stats_total_prompts", 1)

        await self.cache.invalidate_prompt_caches(prompt.id)
        await self.cache.invalidate_user_caches(creator.id)
        return prompt

    # =========================================================================
    # READ
    # =========================================================================

    async def paginate(self, filters: PromptFilters) -> PromptPage:
        items = await self.prompts.find(filters)
        total = await self.prompts.count(filters)
        return PromptPage(items=items, pagination=Pagination.build(filters.page, filters.limit, total))

    async def list_prompts(self, filters: PromptFilters) -> PromptPage:
        """Public listing, read-through cached per filter set."""
        key = listing_cache_key(filters)
        cached = await self.cache.get(key)
        if cached is not None:
            return PromptPage.model_validate(cached)

        page = await self.paginate(filters)
        await self.cache.set(key, page.model_dump(mode="json"))
        return page

    async def list_my_prompts(
        self,
        user: User,
        *,
        page: int = 1,
        limit: Optional[int] = None,
        privacy: Optional[PrivacyLevel] = None,
        category: Optional[str] = None,
    ) -> PromptPage:
        """Every prompt the caller created, whatever its privacy or moderation state."""
        filters = PromptFilters(
            creator_id=user.id,
            privacy=privacy,
            category=category,
            active_only=False,
            page=page,
            **({"limit": limit} if limit else {}),
        )
        return await self.paginate(filters)

    async def get_prompt(self, prompt_id: UUID, requester: Optional[User]) -> Prompt:
        """
        Detail view.

        Counts a view unless the requester is the creator.
        """
        prompt = await self._load(prompt_id)
        unwrap(can_view(prompt, requester, is_follower=await self._is_follower(prompt, requester)))

        if not is_owner(prompt, requester):
            await self.prompts.increment_stat(prompt.id, PromptStat.VIEWS)
            prompt.stats.views += 1
        return prompt

    # =========================================================================
    # UPDATE / DELETE
    # =========================================================================

    async def update_prompt(self, prompt_id: UUID, user: User, data: PromptUpdate) -> Prompt:
        prompt = await self._load(prompt_id)
        unwrap(can_modify(prompt, user))

        changes = data.changes()
        if changes.get("is_paid") and not prompt.is_paid:
            creator = await self.users.get_by_id(user.id)
            if creator is None:
                raise UserNotFoundError(user.id)
            unwrap(can_create_paid(creator))
        if not changes.get("is_paid", prompt.is_paid) and ("is_paid" in changes or "price" in changes):
            changes["price"] = 0

        updated = await self.prompts.update(prompt_id, changes)
        if updated is None:
            raise PromptNotFoundError(prompt_id)

        await self.cache.invalidate_prompt_caches(prompt_id)
        logger.info(f"Prompt {prompt_id} updated by {user.id}: {sorted(changes)}")
        return updated

    async def delete_prompt(self, prompt_id: UUID, user: User, *, elevated: bool = False) -> None:
        """
        Delete a prompt and clean up its engagement records.

        `elevated` is the admin path; the regular path is owner only.
        """
        prompt = await self._load(prompt_id)
        unwrap(can_modify(prompt, user, elevated=elevated))

        if not await self.prompts.delete(prompt_id):
            raise PromptNotFoundError(prompt_id)
        await self.users.increment_stat(prompt.creator_id, "stats_total_prompts", -1)

        creator = await self.users.get_by_id(prompt.creator_id)
        if creator is not None and creator.pinned_prompt_id == prompt_id:
            await self.users.set_pinned_prompt(creator.id, None)

        await self.cache.invalidate_prompt_caches(prompt_id)
        await self.cache.invalidate_user_caches(prompt.creator_id)

    # =========================================================================
    # COPY
    # =========================================================================

    async def copy_prompt(self, prompt_id: UUID, user: Optional[User]) -> PromptCopy:
        """
        Decrypt and disclose the protected text.

        Raises:
            AuthenticationRequiredError: anonymous caller
            PromptNotFoundError: unknown id
            AccessDeniedError: privacy rule failed
            DecryptionError: stored envelope cannot be opened (generic to clients)
        """
        prompt = await self._load(prompt_id)
        unwrap(can_copy(prompt, user, is_follower=await self._is_follower(prompt, user)))

        if requires_payment(prompt, user):
            # TODO: verify the purchase once a payment provider is integrated
            logger.warning(
                f"Paid prompt {prompt_id} (price {prompt.price}) copied by {user.id} "
                "without payment verification"
            )

        stored = await self.prompts.get_with_text(prompt_id)
        if stored is None:
            raise PromptNotFoundError(prompt_id)

        try:
            text = self.cipher.decrypt(stored.prompt_text)
        except DecryptionError as e:
            logger.error(f"Data integrity incident: prompt {prompt_id} failed to decrypt: {e}")
            if self.metrics is not None:
                self.metrics.record_decryption_failure(e.error_code or "unknown")
            raise DecryptionError("Failed to decrypt prompt text", cause=e)

        await self.prompts.increment_stat(prompt_id, PromptStat.COPIES)
        await self.users.increment_stat(prompt.creator_id, "stats_total_copies", 1)
        if self.metrics is not None:
            self.metrics.record_prompt_copy()
        await self.cache.invalidate_prompt_caches(prompt_id)

        prompt.stats.copies += 1
        return PromptCopy(**prompt.model_dump(), prompt_text=text)

    # =========================================================================
    # PINNING
    # =========================================================================

    async def toggle_pin(self, prompt_id: UUID, user: User) -> bool:
        """
        Pin the prompt to the owner's profile, or unpin it if it is the
        currently pinned one.

        Returns:
            True if the prompt is now pinned
        """
        prompt = await self._load(prompt_id)
        unwrap(can_modify(prompt, user))

        owner = await self.users.get_by_id(user.id)
        if owner is None:
            raise UserNotFoundError(user.id)

        pinned = owner.pinned_prompt_id != prompt_id
        await self.users.set_pinned_prompt(owner.id, prompt_id if pinned else None)
        await self.cache.invalidate_user_caches(owner.id)
        return pinned
