"""
Admin Service: moderation and account administration.

Every operation re-checks the admin role with `can_administer`, so the
service stays safe even when called outside the admin routes.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from loguru import logger

from core.enums import ModerationAction, UserRole
from core.exceptions import AccessDeniedError, PromptNotFoundError, UserNotFoundError
from core.models import Prompt, PromptFilters, PromptPage, User
from core.result import unwrap
from repositories.prompt_repository import PromptRepository
from repositories.social_repository import SocialRepository
from repositories.user_repository import UserRepository
from services.access_control import can_administer
from services.cache_service import CacheService
from services.prompt_service import PromptService
from services.rate_limiter import RateLimiter


class AdminService:
    def __init__(
        self,
        user_repository: UserRepository,
        prompt_repository: PromptRepository,
        social_repository: SocialRepository,
        prompt_service: PromptService,
        rate_limiter: RateLimiter,
        cache: CacheService,
    ):
        self.users = user_repository
        self.prompts = prompt_repository
        self.social = social_repository
        self.prompt_service = prompt_service
        self.rate_limiter = rate_limiter
        self.cache = cache
        logger.debug("AdminService initialized")

    async def _target_user(self, user_id: UUID):
        target = await self.users.get_by_id(user_id)
        if target is None:
            raise UserNotFoundError(user_id)
        return target

    # =========================================================================
    # USERS
    # =========================================================================

    async def list_users(self, admin: User, page: int = 1, limit: int = 10) -> tuple[list[User], int]:
        unwrap(can_administer(admin))
        users = await self.users.list_users((page - 1) * limit, limit)
        return [u.public() for u in users], await self.users.count()

    async def set_monetization(self, admin: User, user_id: UUID, enabled: bool) -> User:
        """Unlock or revoke paid-prompt creation for a user."""
        unwrap(can_administer(admin))
        await self._target_user(user_id)

        updated = await self.users.set_monetization(user_id, enabled)
        if updated is None:
            raise UserNotFoundError(user_id)

        logger.info(f"Monetization {'enabled' if enabled else 'disabled'} for {user_id} by {admin.id}")
        await self.cache.invalidate_user_caches(user_id)
        return updated.public()

    async def set_user_status(self, admin: User, user_id: UUID, action: ModerationAction) -> User:
        unwrap(can_administer(admin))
        target = await self._target_user(user_id)
        if target.role is UserRole.ADMIN and action is ModerationAction.BLOCK:
            raise AccessDeniedError("Cannot block admin users")

        updated = await self.users.update_fields(user_id, is_active=action is ModerationAction.UNBLOCK)
        logger.info(f"User {user_id} {action.value}ed by {admin.id}")
        await self.cache.invalidate_user_caches(user_id)
        return updated.public()

    async def delete_user(self, admin: User, user_id: UUID) -> int:
        """
        Delete a user, their prompts and their social records.

        Returns:
            Number of prompts removed with the account
        """
        unwrap(can_administer(admin))
        target = await self._target_user(user_id)
        if target.role is UserRole.ADMIN:
            raise AccessDeniedError("Cannot delete admin users")

        prompt_ids = await self.prompts.list_ids_by_creator(user_id)
        for prompt_id in prompt_ids:
            await self.prompts.delete(prompt_id)
            await self.cache.invalidate_prompt_caches(prompt_id)

        await self.social.delete_user_records(user_id)
        await self.users.delete(user_id)
        await self.cache.invalidate_user_caches(user_id)

        logger.info(f"User {user_id} and {len(prompt_ids)} prompt(s) deleted by {admin.id}")
        return len(prompt_ids)

    # =========================================================================
    # PROMPTS
    # =========================================================================

    async def list_prompts(self, admin: User, page: int = 1, limit: int = 10) -> PromptPage:
        """Every prompt, including private and blocked ones."""
        unwrap(can_administer(admin))
        filters = PromptFilters(privacy=None, active_only=False, page=page, limit=limit)
        return await self.prompt_service.paginate(filters)

    async def moderate_prompt(
        self,
        admin: User,
        prompt_id: UUID,
        action: ModerationAction,
        reason: Optional[str] = None,
    ) -> Prompt:
        unwrap(can_administer(admin))
        prompt = await self.prompts.set_moderation(
            prompt_id,
            is_active=action is ModerationAction.UNBLOCK,
            reason=reason,
            moderator_id=admin.id,
        )
        if prompt is None:
            raise PromptNotFoundError(prompt_id)

        logger.info(f"Prompt {prompt_id} {action.value}ed by {admin.id}: {reason or 'no reason given'}")
        await self.cache.invalidate_prompt_caches(prompt_id)
        return prompt

    async def delete_prompt(self, admin: User, prompt_id: UUID) -> None:
        unwrap(can_administer(admin))
        await self.prompt_service.delete_prompt(prompt_id, admin, elevated=True)

    # =========================================================================
    # PLATFORM
    # =========================================================================

    async def platform_stats(self, admin: User) -> Dict[str, Any]:
        unwrap(can_administer(admin))
        total_users = await self.users.count()
        active_users = await self.users.count(is_active=True)
        monetized = await self.users.count(monetization_unlocked=True)

        everything = PromptFilters(privacy=None, active_only=False)
        total_prompts = await self.prompts.count(everything)
        active_prompts = await self.prompts.count(everything.model_copy(update={"active_only": True}))

        return {
            "users": {
                "total": total_users,
                "active": active_users,
                "blocked": total_users - active_users,
                "monetized": monetized,
            },
            "prompts": {
                "total": total_prompts,
                "active": active_prompts,
                "blocked": total_prompts - active_prompts,
            },
        }

    async def reset_rate_limit(self, admin: User, action: str, principal: str) -> int:
        """Drop every window of `action` for `principal`."""
        unwrap(can_administer(admin))
        return await self.rate_limiter.reset(action, principal)
