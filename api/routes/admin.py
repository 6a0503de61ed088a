"""
Admin Routes: monetization, moderation, deletion and rate-limit resets.

Every route requires the admin role.
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_admin_service, get_admin_user, parse_identifier
from api.routes.prompts import page_payload
from api.schemas import ModerationRequest, MonetizationRequest, RateLimitResetRequest, success
from config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.models import Pagination, User
from services.admin_service import AdminService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/stats")
async def platform_stats(
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    return success({"stats": await admin_service.platform_stats(admin)})


@router.get("/users")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    users, total = await admin_service.list_users(admin, page, limit)
    return success(
        {
            "users": [u.model_dump(mode="json") for u in users],
            "pagination": Pagination.build(page, limit, total).model_dump(by_alias=True),
        }
    )


@router.patch("/users/{user_id}/monetization")
async def set_monetization(
    user_id: str,
    body: MonetizationRequest,
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    user = await admin_service.set_monetization(admin, parse_identifier(user_id), body.enable)
    return success(
        {"user": user.model_dump(mode="json")},
        f"Monetization {'enabled' if body.enable else 'disabled'} for user",
    )


@router.patch("/users/{user_id}/status")
async def set_user_status(
    user_id: str,
    body: ModerationRequest,
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    user = await admin_service.set_user_status(admin, parse_identifier(user_id), body.action)
    return success({"user": user.model_dump(mode="json")}, f"User {body.action.value}ed successfully")


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    removed = await admin_service.delete_user(admin, parse_identifier(user_id))
    return success({"deletedPrompts": removed}, "User and associated data deleted successfully")


@router.get("/prompts")
async def list_prompts(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    return success(page_payload(await admin_service.list_prompts(admin, page, limit)))


@router.patch("/prompts/{prompt_id}/status")
async def moderate_prompt(
    prompt_id: str,
    body: ModerationRequest,
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    prompt = await admin_service.moderate_prompt(
        admin, parse_identifier(prompt_id), body.action, body.reason
    )
    return success({"prompt": prompt.model_dump(mode="json")}, f"Prompt {body.action.value}ed successfully")


@router.delete("/prompts/{prompt_id}")
async def delete_prompt(
    prompt_id: str,
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    await admin_service.delete_prompt(admin, parse_identifier(prompt_id))
    return success(None, "Prompt deleted successfully")


@router.post("/rate-limits/reset")
async def reset_rate_limit(
    body: RateLimitResetRequest,
    admin: User = Depends(get_admin_user),
    admin_service: AdminService = Depends(get_admin_service),
):
    removed = await admin_service.reset_rate_limit(admin, body.action, body.principal)
    return success({"removedWindows": removed}, "Rate limit reset")
