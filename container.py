"""
Dependency Injection Container: Centralized Object Lifecycle Management

Builds the application's object graph with dependency-injector:
infrastructure singletons (database, key-value store, metrics, field
cipher) feed repositories, which feed the service layer.

Dependency Graph (DAG):
Settings -> Infrastructure -> Repositories -> Rate limiter / Cache -> Services
"""

from dependency_injector import containers, providers
from loguru import logger

from config.settings import Settings, get_settings

# Infrastructure layer imports
from infrastructure.database import DatabaseManager
from infrastructure.field_cipher import FieldCipher
from infrastructure.monitoring import MetricsCollector
from infrastructure.redis_client import RedisClient

# Repository layer imports
from repositories.prompt_repository import PromptRepository
from repositories.social_repository import SocialRepository
from repositories.user_repository import UserRepository

# Service layer imports
from services.admin_service import AdminService
from services.cache_service import CacheService
from services.prompt_service import PromptService
from services.rate_limiter import RateLimiter
from services.social_service import SocialService
from services.user_service import UserService


class Container(containers.DeclarativeContainer):
    """
    Central dependency injection container.

    Singleton providers hold connections and process-wide state; factory
    providers build the stateless services per resolution.
    """

    # Configuration providers (singletons)
    config: providers.Singleton[Settings] = providers.Singleton(get_settings)

    # Infrastructure layer providers (singletons)
    database: providers.Singleton[DatabaseManager] = providers.Singleton(
        DatabaseManager, settings=config
    )

    redis: providers.Singleton[RedisClient] = providers.Singleton(
        RedisClient, settings=config.provided.redis
    )

    metrics: providers.Singleton[MetricsCollector] = providers.Singleton(MetricsCollector)

    cipher: providers.Singleton[FieldCipher] = providers.Singleton(
        FieldCipher.from_settings, settings=config
    )

    # Repository layer providers
    user_repository: providers.Factory[UserRepository] = providers.Factory(
        UserRepository, database_manager=database
    )

    prompt_repository: providers.Factory[PromptRepository] = providers.Factory(
        PromptRepository, database_manager=database, cipher=cipher
    )

    social_repository: providers.Factory[SocialRepository] = providers.Factory(
        SocialRepository, database_manager=database
    )

    # Counter store consumers
    rate_limiter: providers.Singleton[RateLimiter] = providers.Singleton(
        RateLimiter,
        redis=redis,
        enabled=config.provided.rate_limit.enabled,
        key_prefix=config.provided.rate_limit.key_prefix,
        metrics=metrics,
    )

    cache: providers.Singleton[CacheService] = providers.Singleton(
        CacheService,
        redis=redis,
        enabled=config.provided.cache.enabled,
        default_ttl=config.provided.cache.default_ttl,
        metrics=metrics,
    )

    # Service layer providers
    user_service: providers.Factory[UserService] = providers.Factory(
        UserService, user_repository=user_repository, cache=cache
    )

    prompt_service: providers.Factory[PromptService] = providers.Factory(
        PromptService,
        prompt_repository=prompt_repository,
        user_repository=user_repository,
        social_repository=social_repository,
        cipher=cipher,
        cache=cache,
        metrics=metrics,
    )

    social_service: providers.Factory[SocialService] = providers.Factory(
        SocialService,
        social_repository=social_repository,
        prompt_repository=prompt_repository,
        user_repository=user_repository,
        cache=cache,
    )

    admin_service: providers.Factory[AdminService] = providers.Factory(
        AdminService,
        user_repository=user_repository,
        prompt_repository=prompt_repository,
        social_repository=social_repository,
        prompt_service=prompt_service,
        rate_limiter=rate_limiter,
        cache=cache,
    )


# Global container instance
container = Container()


class ContainerManager:
    """
    Container lifecycle manager.

    Handles initialization and cleanup of the infrastructure components
    that need async setup.
    """

    def __init__(self) -> None:
        self._initialized: bool = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Initialize the database and the key-value store.

        The database is critical. The store is not: when it is unreachable
        the rate limiter and cache fail open and the application keeps
        serving.

        Raises:
            RuntimeError: If the database fails to initialize
        """
        if self._initialized:
            logger.warning("Container already initialized - skipping re-initialization")
            return

        logger.info("Initializing dependency injection container")

        try:
            await container.database().initialize()
            logger.info("✓ Database initialized successfully")
        except Exception as db_error:
            logger.error(f"Database initialization failed: {db_error}")
            raise RuntimeError(f"Database initialization failed: {db_error}") from db_error

        try:
            await container.redis().initialize()
        except Exception as redis_error:
            logger.warning(f"Redis initialization failed: {redis_error}")
            logger.warning("Continuing without Redis - rate limiting and caching fail open")

        self._initialized = True

    async def cleanup(self) -> None:
        """
        Close database and store connections.

        Idempotent; an error closing one component does not stop the other
        from being closed.
        """
        if not self._initialized:
            logger.debug("Container not initialized - skipping cleanup")
            return

        logger.info("Cleaning up dependency injection container")

        try:
            await container.database().close()
            logger.info("✓ Database connections closed")
        except Exception as db_error:
            logger.error(f"Database cleanup failed: {db_error}")

        try:
            await container.redis().close()
            logger.info("✓ Redis connections closed")
        except Exception as redis_error:
            logger.error(f"Redis cleanup failed: {redis_error}")

        self._initialized = False


# Global container manager instance
container_manager = ContainerManager()


# Convenience functions for FastAPI dependency injection. Routes depend on
# these so tests can swap them through `app.dependency_overrides`.
def get_database() -> DatabaseManager:
    return container.database()


def get_redis() -> RedisClient:
    return container.redis()


def get_metrics() -> MetricsCollector:
    return container.metrics()


def get_rate_limiter() -> RateLimiter:
    return container.rate_limiter()


def get_cache() -> CacheService:
    return container.cache()


def get_user_service() -> UserService:
    return container.user_service()


def get_prompt_service() -> PromptService:
    return container.prompt_service()


def get_social_service() -> SocialService:
    return container.social_service()


def get_admin_service() -> AdminService:
    return container.admin_service()


__all__ = [
    "Container",
    "ContainerManager",
    "container",
    "container_manager",
    "get_admin_service",
    "get_cache",
    "get_database",
    "get_metrics",
    "get_prompt_service",
    "get_rate_limiter",
    "get_redis",
    "get_social_service",
    "get_user_service",
]
