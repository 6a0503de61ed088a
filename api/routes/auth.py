"""
Authentication Routes: registration, OAuth2 token issue, current user.

Registration and login sit behind the `auth` rate limit, keyed by
client IP.
"""

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from api.dependencies import get_current_user, get_user_service, parse_identifier
from api.rate_limit import RateLimitDependency
from api.schemas import success
from config.constants import RATE_LIMITS
from config.settings import get_settings
from core.exceptions import AuthenticationRequiredError
from core.models import User, UserCreate
from security import Token, create_access_token
from services.user_service import UserService

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

auth_limit = RateLimitDependency(RATE_LIMITS.AUTH, per_user=False)


def issue_token(user: User) -> Token:
    settings = get_settings()
    access_token = create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value}
    )
    return Token(access_token=access_token, expires_in=settings.access_token_expire_minutes * 60)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    dependencies=[Depends(auth_limit)],
)
async def register_user(
    user_create: UserCreate,
    user_service: UserService = Depends(get_user_service),
):
    user = await user_service.register(user_create)
    token = issue_token(user)
    return success(
        {"user": user.model_dump(mode="json"), "token": token.access_token},
        "User registered successfully",
    )


@router.post(
    "/token",
    response_model=Token,
    summary="Generate access token",
    description="OAuth2 password flow; the username field carries the email address",
    dependencies=[Depends(auth_limit)],
)
async def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    user_service: UserService = Depends(get_user_service),
) -> Token:
    user = await user_service.authenticate(form_data.username, form_data.password)
    if user is None:
        raise AuthenticationRequiredError("Invalid credentials", errors=["Email or password is incorrect"])
    return issue_token(user)


@router.get("/me", summary="Get current user")
async def read_users_me(current_user: User = Depends(get_current_user)):
    return success({"user": current_user.model_dump(mode="json")})


@router.get("/users/{user_id}", summary="Public profile")
async def read_profile(user_id: str, user_service: UserService = Depends(get_user_service)):
    profile = await user_service.get_profile(parse_identifier(user_id))
    return success({"user": profile.model_dump(mode="json", exclude={"email"})})
