"""
Configuration Management System
================================
Environment-driven configuration with type-safe validation through Pydantic.

Every group reads its own environment variables through aliases so that the
deployment surface matches the variables operators already know
(DATABASE_URL, REDIS_URL, ENCRYPTION_KEY, SECRET_KEY).
"""

from functools import lru_cache
from typing import Literal, Optional
from urllib.parse import urlparse, urlunparse

from pydantic import Field, PostgresDsn, RedisDsn, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """PostgreSQL configuration loaded exclusively from environment."""

    url: PostgresDsn = Field(..., alias="DATABASE_URL")
    pool_size: int = Field(default=10, ge=1, le=50, alias="DB_POOL_SIZE")
    max_overflow: int = Field(default=20, ge=0, le=100, alias="DB_MAX_OVERFLOW")
    pool_timeout: int = Field(default=30, ge=1, le=120, alias="DB_POOL_TIMEOUT")
    pool_recycle: int = Field(default=3600, ge=300, alias="DB_POOL_RECYCLE")
    echo_sql: bool = Field(default=False, alias="DB_ECHO_SQL")

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    @property
    def async_url(self) -> str:
        parsed = urlparse(str(self.url))
        return urlunparse(parsed._replace(scheme="postgresql+asyncpg"))


class RedisSettings(BaseSettings):
    """
    Counter/cache store configuration.

    REDIS_URL is optional: without it the store stays disconnected and both
    the rate limiter and the response cache fail open.
    """

    url: Optional[RedisDsn] = Field(default=None, alias="REDIS_URL")
    max_connections: int = Field(default=50, ge=1, le=500, alias="REDIS_MAX_CONNECTIONS")
    socket_timeout: int = Field(default=5, ge=1, le=30, alias="REDIS_SOCKET_TIMEOUT")
    socket_connect_timeout: int = Field(
        default=5, ge=1, le=30, alias="REDIS_SOCKET_CONNECT_TIMEOUT"
    )

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    @property
    def enabled(self) -> bool:
        return self.url is not None


class EncryptionSettings(BaseSettings):
    """Field cipher key material."""

    key: Optional[SecretStr] = Field(default=None, alias="ENCRYPTION_KEY")

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    @property
    def configured(self) -> bool:
        return self.key is not None and bool(self.key.get_secret_value())


class RateLimitSettings(BaseSettings):
    """Rate limiter switches."""

    enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    key_prefix: str = Field(default="rate_limit", alias="RATE_LIMIT_KEY_PREFIX")

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")


class CacheSettings(BaseSettings):
    """Response cache switches."""

    enabled: bool = Field(default=True, alias="CACHE_ENABLED")
    default_ttl: int = Field(default=300, ge=1, alias="CACHE_DEFAULT_TTL")

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")


class MonitoringSettings(BaseSettings):
    """Observability and monitoring configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    log_format: Literal["json", "text"] = Field(default="json")

    enable_prometheus: bool = Field(default=True)
    enable_tracing: bool = Field(default=False)

    model_config = SettingsConfigDict(
        env_prefix="MONITORING_", case_sensitive=False, extra="ignore"
    )


class Settings(BaseSettings):
    """
    Master configuration.

    Composes the nested groups and applies environment-specific validation.
    """

    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development", alias="ENVIRONMENT"
    )
    debug: bool = Field(default=False, alias="DEBUG")

    app_name: str = Field(default="Viral Prompts API")
    app_version: str = Field(default="1.0.0")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    encryption: EncryptionSettings = Field(default_factory=EncryptionSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    # Security
    secret_key: SecretStr = Field(..., alias="SECRET_KEY", description="JWT signing key")
    access_token_expire_minutes: int = Field(default=60 * 24 * 7, alias="JWT_EXPIRE_MINUTES")
    allowed_hosts: list[str] = Field(default=["localhost", "127.0.0.1", "testserver"])
    cors_origins: list[str] = Field(default=["http://localhost:3000"])
    jwt_issuer: str = Field(default="viral-prompts")
    jwt_audience: str = Field(default="api")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("debug")
    @classmethod
    def validate_debug_mode(cls, v: bool, info) -> bool:
        """Ensure debug mode is disabled in production."""
        if info.data.get("environment") == "production" and v:
            raise ValueError("Debug mode must be disabled in production")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: SecretStr, info) -> SecretStr:
        """Reject well-known weak secrets; require length in production."""
        key = v.get_secret_value()
        weak_secrets = {"secret", "password", "12345", "changeme", "change_me_in_production"}
        if key.lower() in weak_secrets:
            raise ValueError(
                "SECRET_KEY cannot be a default/weak value. "
                "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        if info.data.get("environment") == "production" and len(key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters in production")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Singleton factory for global settings access.

    Returns:
        Settings: Validated settings instance
    """
    return Settings()


settings = get_settings()
