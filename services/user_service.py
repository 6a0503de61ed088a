"""
User Service: Business Logic Layer for User Management
=====================================================

Registration, credential checks and profile reads.

Account lookups made for authentication always go to the database; only
the public profile view is served from cache.
"""

from typing import Optional
from uuid import UUID

from loguru import logger

from core.exceptions import UserNotFoundError
from core.models import User, UserCreate
from repositories.user_repository import UserRepository
from security import get_password_hash, verify_password
from services.cache_service import CacheKeys, CacheService


class UserService:
    """
    Service for user business logic operations.

    Encapsulates user-related business rules and coordinates
    between repository and security layers.
    """

    def __init__(self, user_repository: UserRepository, cache: CacheService):
        self.users = user_repository
        self.cache = cache
        logger.debug("UserService initialized")

    async def register(self, user_in: UserCreate) -> User:
        """
        Create a new account with a hashed password.

        Raises:
            ConflictError: email or username already taken
        """
        hashed_password = get_password_hash(user_in.password)
        user = await self.users.create(user_in, hashed_password)
        logger.info(f"User registered: {user.username}")
        return user.public()

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """
        Check credentials.

        Returns:
            The user when the email exists, the password matches and the
            account is active; None otherwise
        """
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.hashed_password):
            logger.info(f"Failed login attempt for {email}")
            return None
        if not user.is_active:
            logger.info(f"Login attempt for inactive account {user.id}")
            return None
        return user.public()

    async def get_user(self, user_id: UUID) -> Optional[User]:
        """Fresh read, used to resolve the authenticated principal."""
        user = await self.users.get_by_id(user_id)
        return user.public() if user else None

    async def get_profile(self, user_id: UUID) -> User:
        """Public profile, read-through cached."""
        cached = await self.cache.get(CacheKeys.profile(user_id))
        if cached is not None:
            return User.model_validate(cached)

        user = await self.users.get_by_id(user_id)
        if user is None or not user.is_active:
            raise UserNotFoundError(user_id)

        profile = user.public()
        await self.cache.set(CacheKeys.profile(user_id), profile.model_dump(mode="json"))
        return profile
