"""
Response Cache Layer
====================

Read-through cache over the shared key-value store with explicit and
pattern-based invalidation.

Cache failures never reach the request path: a read error is a miss, a
write or invalidation error is logged and skipped. Nothing cached here is
used for authorization, so bounded staleness is acceptable.
"""

import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar, Union
from uuid import UUID

from loguru import logger
from pydantic_core import to_json

from config.constants import CACHE_DURATIONS
from core.exceptions import CacheError
from infrastructure.monitoring import MetricsCollector
from infrastructure.redis_client import RedisClient

T = TypeVar("T")


class CacheKeys:
    """Deterministic key builders for every cached family."""

    @staticmethod
    def route(url: str) -> str:
        return f"route:{url}"

    @staticmethod
    def user_route(user_id: Any, url: str) -> str:
        return f"user_route:{user_id}:{url}"

    @staticmethod
    def user(user_id: Any) -> str:
        return f"user:{user_id}"

    @staticmethod
    def prompt(prompt_id: Any) -> str:
        return f"prompt:{prompt_id}"

    @staticmethod
    def prompt_stats(prompt_id: Any) -> str:
        return f"prompt:stats:{prompt_id}"

    @staticmethod
    def popular_prompts(variant: str) -> str:
        return f"popular:prompts:{variant}"

    @staticmethod
    def profile(user_id: Any) -> str:
        return f"profile:{user_id}"

    @staticmethod
    def comments(prompt_id: Any, page: int) -> str:
        return f"comments:{prompt_id}:{page}"

    @staticmethod
    def followers(user_id: Any) -> str:
        return f"followers:{user_id}"

    @staticmethod
    def following(user_id: Any) -> str:
        return f"following:{user_id}"

    @staticmethod
    def saved(user_id: Any) -> str:
        return f"saved:{user_id}"

    @staticmethod
    def user_ratings(user_id: Any) -> str:
        return f"ratings:user:{user_id}"

    @staticmethod
    def prompt_ratings(prompt_id: Any) -> str:
        return f"ratings:prompt:{prompt_id}"

    @staticmethod
    def search(variant: str) -> str:
        return f"search:{variant}"


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    invalidations: int = 0
    errors: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return (self.hits / total * 100) if total > 0 else 0.0


class CacheService:
    def __init__(
        self,
        redis: RedisClient,
        *,
        enabled: bool = True,
        default_ttl: int = CACHE_DURATIONS.SHORT,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._redis = redis
        self._enabled = enabled
        self._default_ttl = default_ttl
        self._metrics = metrics
        self.stats = CacheStats()

    @property
    def active(self) -> bool:
        return self._enabled and self._redis.is_available

    @staticmethod
    def _namespace(key: str) -> str:
        return key.split(":", 1)[0]

    def _error(self, operation: str, key: str, error: Exception) -> None:
        self.stats.errors += 1
        if self._metrics is not None:
            self._metrics.record_cache_error(operation)
        logger.warning(f"Cache {operation} failed for {key}, continuing without cache: {error}")

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss or store failure."""
        if not self.active:
            return None
        try:
            raw = await self._redis.get(key)
        except CacheError as e:
            self._error("get", key, e)
            return None

        if raw is None:
            self.stats.misses += 1
            if self._metrics is not None:
                self._metrics.record_cache_miss(self._namespace(key))
            return None

        try:
            value = json.loads(raw)
        except ValueError as e:
            self._error("decode", key, e)
            return None

        self.stats.hits += 1
        if self._metrics is not None:
            self._metrics.record_cache_hit(self._namespace(key))
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if not self.active:
            return False
        try:
            await self._redis.set(key, to_json(value).decode("utf-8"), ttl or self._default_ttl)
        except CacheError as e:
            self._error("set", key, e)
            return False
        self.stats.sets += 1
        return True

    async def delete(self, *keys: str) -> int:
        if not self.active or not keys:
            return 0
        try:
            deleted = await self._redis.delete(*keys)
        except CacheError as e:
            self._error("delete", ",".join(keys), e)
            return 0
        self.stats.invalidations += deleted
        return deleted

    async def delete_pattern(self, pattern: str) -> int:
        if not self.active:
            return 0
        try:
            deleted = await self._redis.delete_pattern(pattern)
        except CacheError as e:
            self._error("delete_pattern", pattern, e)
            return 0
        self.stats.invalidations += deleted
        return deleted

    async def get_or_set(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Read-through: return the cached value or run `producer`, cache its
        result and return it.

        Producer exceptions propagate and nothing is cached.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached
        value = await producer()
        await self.set(key, value, ttl)
        return value

    # =========================================================================
    # INVALIDATION POLICIES
    # =========================================================================

    async def invalidate_prompt_caches(self, prompt_id: Union[UUID, str]) -> None:
        """
        Drop the prompt's own keys plus every aggregate that may list it.
        """
        patterns = [
            f"{CacheKeys.prompt(prompt_id)}*",
            f"{CacheKeys.prompt_stats(prompt_id)}*",
            f"comments:{prompt_id}*",
            f"{CacheKeys.prompt_ratings(prompt_id)}*",
            "popular:prompts:*",
            "search:*",
            "route:*",
            "user_route:*",
        ]
        for pattern in patterns:
            await self.delete_pattern(pattern)

    async def invalidate_user_caches(self, user_id: Union[UUID, str]) -> None:
        await self.delete(CacheKeys.user(user_id), CacheKeys.profile(user_id))
        patterns = [
            f"{CacheKeys.followers(user_id)}*",
            f"{CacheKeys.following(user_id)}*",
            f"{CacheKeys.saved(user_id)}*",
            f"{CacheKeys.user_ratings(user_id)}*",
            f"user_route:{user_id}:*",
        ]
        for pattern in patterns:
            await self.delete_pattern(pattern)
