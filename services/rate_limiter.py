"""
Rate Limit Counter Service
==========================

Fixed-window request counters in the shared key-value store.

Every request in the same window maps to the same key:

    rate_limit:{action}:{principal}:{window_start}

with `window_start = floor(now / window_ms) * window_ms`. Counters expire
with the window, so the next window starts from zero with no carry-over.

Increments use the store's atomic INCR. Two concurrent requests may both
read a stale count and both be admitted, which bounds the overshoot at
one request per window per racing caller. That is accepted: this is an
abuse throttle, not a quota.

Fail-open: when the store is missing or erroring every check is allowed.
"""

import math
import time
from typing import Callable, Optional

from loguru import logger

from config.constants import RateLimitPolicy
from core.enums import RateLimitOutcome
from core.exceptions import CacheError
from core.models import RateLimitDecision
from infrastructure.monitoring import MetricsCollector
from infrastructure.redis_client import RedisClient


class RateLimiter:
    def __init__(
        self,
        redis: RedisClient,
        *,
        enabled: bool = True,
        key_prefix: str = "rate_limit",
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._redis = redis
        self._enabled = enabled
        self._prefix = key_prefix
        self._metrics = metrics
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    @staticmethod
    def window_start(now_ms: int, window_ms: int) -> int:
        return (now_ms // window_ms) * window_ms

    def window_key(self, action: str, principal: str, window_start: int) -> str:
        return f"{self._prefix}:{action}:{principal}:{window_start}"

    def _record(self, action: str, outcome: RateLimitOutcome) -> None:
        if self._metrics is not None:
            self._metrics.record_rate_limit(action, outcome)

    def _fail_open(self, action: str, max_requests: int, window_start: int, window_ms: int):
        self._record(action, RateLimitOutcome.FAIL_OPEN)
        return RateLimitDecision(
            allowed=True,
            limit=max_requests,
            remaining=max_requests,
            reset_at_ms=window_start + window_ms,
            fail_open=True,
        )

    async def check_and_consume(
        self,
        action: str,
        principal: str,
        max_requests: int,
        window_ms: int,
    ) -> RateLimitDecision:
        """
        Count one request against `(action, principal)` in the current window.

        Returns:
            Decision with `allowed`, `remaining` and `reset_at_ms`
            (window start + window length)
        """
        now = self.now_ms()
        start = self.window_start(now, window_ms)
        reset_at = start + window_ms

        if not self._enabled or not self._redis.is_available:
            return self._fail_open(action, max_requests, start, window_ms)

        key = self.window_key(action, principal, start)
        try:
            raw = await self._redis.get(key)
            current = int(raw) if raw else 0

            if current >= max_requests:
                self._record(action, RateLimitOutcome.BLOCKED)
                logger.info(f"Rate limit exceeded: {action} for {principal} ({current}/{max_requests})")
                return RateLimitDecision(
                    allowed=False,
                    limit=max_requests,
                    remaining=0,
                    reset_at_ms=reset_at,
                    count=current,
                )

            count = await self._redis.increment_with_expiry(key, math.ceil(window_ms / 1000))
        except CacheError as e:
            logger.warning(f"Rate limiter store error for {action}, failing open: {e}")
            return self._fail_open(action, max_requests, start, window_ms)

        self._record(action, RateLimitOutcome.ALLOWED)
        return RateLimitDecision(
            allowed=True,
            limit=max_requests,
            remaining=max(0, max_requests - count),
            reset_at_ms=reset_at,
            count=count,
        )

    async def consume(self, policy: RateLimitPolicy, principal: str) -> RateLimitDecision:
        return await self.check_and_consume(
            policy.name, principal, policy.max_requests, policy.window_ms
        )

    async def _current_count(self, action: str, principal: str, window_ms: int) -> Optional[int]:
        if not self._enabled or not self._redis.is_available:
            return None
        key = self.window_key(action, principal, self.window_start(self.now_ms(), window_ms))
        try:
            raw = await self._redis.get(key)
        except CacheError as e:
            logger.warning(f"Rate limiter store error for {action}: {e}")
            return None
        return int(raw) if raw else 0

    async def is_rate_limited(
        self, action: str, principal: str, max_requests: int, window_ms: int
    ) -> bool:
        """Read-only check; does not consume."""
        count = await self._current_count(action, principal, window_ms)
        return count is not None and count >= max_requests

    async def get_remaining(
        self, action: str, principal: str, max_requests: int, window_ms: int
    ) -> int:
        count = await self._current_count(action, principal, window_ms)
        if count is None:
            return max_requests
        return max(0, max_requests - count)

    async def reset(self, action: str, principal: str) -> int:
        """
        Delete every window for `(action, principal)`.

        Returns:
            Number of keys removed (0 when the store is unavailable)
        """
        pattern = f"{self._prefix}:{action}:{principal}:*"
        try:
            deleted = await self._redis.delete_pattern(pattern)
        except CacheError as e:
            logger.warning(f"Rate limit reset failed for {pattern}: {e}")
            return 0
        logger.info(f"Reset rate limit {action} for {principal} ({deleted} keys)")
        return deleted
