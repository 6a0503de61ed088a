"""
Redis Client for Rate-Limit Counters and Response Caching
==========================================================

Thin async wrapper over `redis.asyncio` that:
- is constructed explicitly and injected, never a module global
- exposes a typed `ConnectionState` so callers can fail open without
  probing a nullable handle
- converts every driver error into `CacheError`

There is no circuit breaker: callers treat any `CacheError` as
"store unavailable" and carry on.
"""

from typing import Optional

from loguru import logger
from redis.asyncio import Redis
from redis.exceptions import RedisError

from config.settings import RedisSettings
from core.enums import ConnectionState
from core.exceptions import CacheError, StoreUnavailableError


class RedisClient:
    """Key-value store shared by the rate limiter and the cache service."""

    def __init__(self, settings: Optional[RedisSettings] = None, *, client: Optional[Redis] = None):
        self._settings = settings
        self._redis: Optional[Redis] = client
        if client is not None:
            self._state = ConnectionState.CONNECTED
        elif settings is None or not settings.enabled:
            self._state = ConnectionState.NOT_CONFIGURED
        else:
            self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_available(self) -> bool:
        return self._state.is_usable

    async def initialize(self) -> None:
        """
        Connect and verify with PING.

        Raises:
            CacheError: store configured but unreachable
        """
        if self._state is ConnectionState.NOT_CONFIGURED:
            logger.warning("REDIS_URL not set: rate limiting and caching will fail open")
            return
        if self._state is ConnectionState.CONNECTED:
            return

        if self._redis is None:
            if self._settings is None or not self._settings.enabled:
                raise StoreUnavailableError(self._state.value)
            self._redis = Redis.from_url(
                str(self._settings.url),
                encoding="utf-8",
                decode_responses=True,
                max_connections=self._settings.max_connections,
                socket_timeout=self._settings.socket_timeout,
                socket_connect_timeout=self._settings.socket_connect_timeout,
                health_check_interval=30,
            )

        try:
            await self._redis.ping()
        except (RedisError, OSError) as e:
            self._state = ConnectionState.DISCONNECTED
            logger.error(f"Redis connection failed: {e}")
            raise CacheError(f"Redis initialization failed: {e}", cause=e)

        self._state = ConnectionState.CONNECTED
        logger.info("Redis connection established")

    def _client(self) -> Redis:
        if not self._state.is_usable or self._redis is None:
            raise StoreUnavailableError(self._state.value)
        return self._redis

    # =========================================================================
    # GENERIC KEY-VALUE OPERATIONS
    # =========================================================================

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self._client().get(key)
        except RedisError as e:
            raise CacheError(f"GET {key} failed: {e}", cause=e)

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        try:
            return bool(await self._client().set(key, value, ex=ttl))
        except RedisError as e:
            raise CacheError(f"SET {key} failed: {e}", cause=e)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return int(await self._client().delete(*keys))
        except RedisError as e:
            raise CacheError(f"DEL failed: {e}", cause=e)

    async def delete_pattern(self, pattern: str, batch_size: int = 500) -> int:
        """
        Delete every key matching a glob pattern.

        Uses SCAN rather than KEYS so large keyspaces do not block the server.
        """
        client = self._client()
        deleted = 0
        batch: list[str] = []
        try:
            async for key in client.scan_iter(match=pattern, count=batch_size):
                batch.append(key)
                if len(batch) >= batch_size:
                    deleted += await client.delete(*batch)
                    batch.clear()
            if batch:
                deleted += await client.delete(*batch)
        except RedisError as e:
            raise CacheError(f"Pattern delete {pattern} failed: {e}", cause=e)

        if deleted:
            logger.debug(f"Deleted {deleted} keys matching {pattern}")
        return deleted

    async def increment_with_expiry(self, key: str, ttl: int) -> int:
        """
        Atomically increment a counter and (re)set its expiry.

        Returns:
            Counter value after the increment
        """
        try:
            async with self._client().pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl)
                count, _ = await pipe.execute()
            return int(count)
        except RedisError as e:
            raise CacheError(f"INCR {key} failed: {e}", cause=e)

    async def ping(self) -> bool:
        """Health probe. Attempts to (re)connect when disconnected."""
        if self._state is ConnectionState.NOT_CONFIGURED:
            return False
        if self._state is not ConnectionState.CONNECTED:
            try:
                await self.initialize()
            except CacheError:
                return False
        try:
            return bool(await self._client().ping())
        except (RedisError, CacheError) as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            logger.info("Redis connection closed")
        self._redis = None
        if self._state is not ConnectionState.NOT_CONFIGURED:
            self._state = ConnectionState.CLOSED
