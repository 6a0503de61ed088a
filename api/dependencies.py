"""
API Dependencies: FastAPI Dependency Injection Helpers

Resolve the authenticated principal for a request. Tokens are verified
locally; the account itself is always re-read through `UserService` so a
blocked or deleted user loses access immediately.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request

from container import (
    get_admin_service,
    get_cache,
    get_metrics,
    get_prompt_service,
    get_rate_limiter,
    get_social_service,
    get_user_service,
)
from core.exceptions import AuthenticationRequiredError, InvalidIdentifierError
from core.models import User
from core.result import unwrap
from security import decode_access_token, oauth2_scheme, optional_oauth2_scheme
from services.access_control import can_administer
from services.user_service import UserService


async def _resolve_user(token: str, request: Request, user_service: UserService) -> User:
    token_data = decode_access_token(token)
    try:
        user_id = UUID(token_data.user_id)
    except ValueError:
        raise AuthenticationRequiredError("Invalid token", errors=["Token is invalid or expired"])

    user = await user_service.get_user(user_id)
    if user is None:
        raise AuthenticationRequiredError("User not found", errors=["Account no longer exists"])
    if not user.is_active:
        raise AuthenticationRequiredError("Account is deactivated", errors=["Account is deactivated"])

    request.state.user_id = str(user.id)
    return user


async def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    user_service: UserService = Depends(get_user_service),
) -> User:
    """Authenticated user; 401 otherwise."""
    return await _resolve_user(token, request, user_service)


async def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(optional_oauth2_scheme),
    user_service: UserService = Depends(get_user_service),
) -> Optional[User]:
    """
    Authenticated user, or None for anonymous requests.

    A token that is present but invalid is still rejected.
    """
    if not token:
        return None
    return await _resolve_user(token, request, user_service)


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    unwrap(can_administer(user))
    return user


def parse_identifier(value: str) -> UUID:
    """Path ids arrive as strings; a malformed one is a 400, not a 404."""
    try:
        return UUID(value)
    except ValueError:
        raise InvalidIdentifierError(value)


__all__ = [
    "get_admin_service",
    "get_admin_user",
    "get_cache",
    "get_current_user",
    "get_metrics",
    "get_optional_user",
    "get_prompt_service",
    "get_rate_limiter",
    "get_social_service",
    "get_user_service",
    "parse_identifier",
]
