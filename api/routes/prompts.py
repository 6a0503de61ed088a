"""
Prompt Routes: listing, detail, create/update/delete, copy and pin.

List and detail responses never carry the protected text; only the copy
endpoint returns it.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from api.caching import cached_route
from api.dependencies import (
    get_cache,
    get_current_user,
    get_optional_user,
    get_prompt_service,
    parse_identifier,
)
from api.rate_limit import RateLimitDependency
from api.schemas import success
from config.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, RATE_LIMITS
from core.enums import PrivacyLevel
from core.models import PromptCreate, PromptFilters, PromptPage, PromptUpdate, User
from services.cache_service import CacheService
from services.prompt_service import PromptService

router = APIRouter(prefix="/api/prompts", tags=["Prompts"])


def page_payload(page: PromptPage) -> dict:
    return {
        "prompts": [p.model_dump(mode="json") for p in page.items],
        "pagination": page.pagination.model_dump(by_alias=True),
    }


@router.get(
    "",
    summary="List public prompts",
    dependencies=[Depends(RateLimitDependency(RATE_LIMITS.SEARCH))],
)
async def list_prompts(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    category: Optional[str] = None,
    tags: Optional[str] = Query(None, description="Comma-separated tags"),
    search: Optional[str] = Query(None, max_length=200),
    creator: Optional[str] = None,
    featured: bool = False,
    trending: bool = False,
    prompt_service: PromptService = Depends(get_prompt_service),
):
    filters = PromptFilters(
        page=page,
        limit=limit,
        category=category,
        tags=[t.strip() for t in tags.split(",") if t.strip()] if tags else [],
        search=search.strip() if search else None,
        creator_id=parse_identifier(creator) if creator else None,
        featured=featured,
        trending=trending,
    )
    result = await prompt_service.list_prompts(filters)
    return success(page_payload(result))


@router.get("/my", summary="List the caller's prompts")
async def list_my_prompts(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    privacy: Optional[PrivacyLevel] = None,
    category: Optional[str] = None,
    user: User = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service),
    cache: CacheService = Depends(get_cache),
):
    async def produce():
        result = await prompt_service.list_my_prompts(
            user, page=page, limit=limit, privacy=privacy, category=category
        )
        return success(page_payload(result))

    return await cached_route(request, cache, produce, user_id=user.id)


@router.get("/{prompt_id}", summary="Prompt detail")
async def get_prompt(
    prompt_id: str,
    user: Optional[User] = Depends(get_optional_user),
    prompt_service: PromptService = Depends(get_prompt_service),
):
    prompt = await prompt_service.get_prompt(parse_identifier(prompt_id), user)
    return success({"prompt": prompt.model_dump(mode="json")})


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create prompt")
async def create_prompt(
    data: PromptCreate,
    user: User = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service),
):
    prompt = await prompt_service.create_prompt(user, data)
    return success({"prompt": prompt.model_dump(mode="json")}, "Prompt created successfully")


@router.put("/{prompt_id}", summary="Update prompt")
async def update_prompt(
    prompt_id: str,
    data: PromptUpdate,
    user: User = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service),
):
    prompt = await prompt_service.update_prompt(parse_identifier(prompt_id), user, data)
    return success({"prompt": prompt.model_dump(mode="json")}, "Prompt updated successfully")


@router.delete("/{prompt_id}", summary="Delete prompt")
async def delete_prompt(
    prompt_id: str,
    user: User = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service),
):
    await prompt_service.delete_prompt(parse_identifier(prompt_id), user)
    return success(None, "Prompt deleted successfully")


@router.post("/{prompt_id}/copy", summary="Copy prompt text")
async def copy_prompt(
    prompt_id: str,
    user: User = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service),
):
    prompt = await prompt_service.copy_prompt(parse_identifier(prompt_id), user)
    return success({"prompt": prompt.model_dump(mode="json")}, "Prompt copied successfully")


@router.post("/{prompt_id}/pin", summary="Pin or unpin prompt on profile")
async def toggle_pin(
    prompt_id: str,
    user: User = Depends(get_current_user),
    prompt_service: PromptService = Depends(get_prompt_service),
):
    pinned = await prompt_service.toggle_pin(parse_identifier(prompt_id), user)
    message = "Prompt pinned to profile" if pinned else "Prompt unpinned from profile"
    return success({"pinned": pinned}, message)
