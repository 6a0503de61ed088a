"""
Route-level read-through caching.

GET handlers wrap their payload producer with `cached_route`; the key is
the request path plus query string, namespaced by user for personalized
responses. Producer exceptions propagate and nothing is cached, so only
successful responses are stored.
"""

from typing import Any, Awaitable, Callable, Optional, Union
from uuid import UUID

from fastapi import Request

from config.constants import CACHE_DURATIONS
from services.cache_service import CacheKeys, CacheService


def route_key(request: Request, user_id: Optional[Union[UUID, str]] = None) -> str:
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return CacheKeys.user_route(user_id, url) if user_id else CacheKeys.route(url)


async def cached_route(
    request: Request,
    cache: CacheService,
    producer: Callable[[], Awaitable[Any]],
    *,
    user_id: Optional[Union[UUID, str]] = None,
    ttl: int = CACHE_DURATIONS.SHORT,
) -> Any:
    return await cache.get_or_set(route_key(request, user_id), producer, ttl)


async def invalidate_routes(cache: CacheService, user_id: Optional[Union[UUID, str]] = None) -> None:
    """Drop cached route payloads after a successful write."""
    if user_id is not None:
        await cache.delete_pattern(f"user_route:{user_id}:*")
    else:
        await cache.delete_pattern("route:*")
