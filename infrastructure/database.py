"""
Database Infrastructure & Connection Management
================================================
Async PostgreSQL client with connection pooling (SQLAlchemy + asyncpg),
health checks and session context managers.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config.settings import Settings, get_settings
from core.exceptions import DatabaseConnectionError
from infrastructure.schema import metadata

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Engine lifecycle and session management.

    Constructed once by the container and passed to repositories.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None
        self._is_initialized: bool = False

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    async def initialize(self) -> None:
        """
        Create the engine and session factory, then verify connectivity.

        Raises:
            DatabaseConnectionError: database unreachable
        """
        if self._is_initialized:
            logger.warning("Database already initialized")
            return

        db = self._settings.database
        try:
            self._engine = create_async_engine(
                db.async_url,
                echo=db.echo_sql,
                pool_size=db.pool_size,
                max_overflow=db.max_overflow,
                pool_timeout=db.pool_timeout,
                pool_recycle=db.pool_recycle,
                pool_pre_ping=True,
            )
            self._session_factory = async_sessionmaker(
                self._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )

            await self.health_check()

            self._is_initialized = True
            logger.info("Database initialized successfully")

        except DatabaseConnectionError:
            await self.close()
            raise
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            await self.close()
            raise DatabaseConnectionError("Failed to initialize database connection", cause=e) from e

    async def create_schema(self) -> None:
        """Create missing tables. Used for development and test databases."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)
        logger.info("Database schema ensured")

    async def close(self) -> None:
        if self._engine:
            await self._engine.dispose()
            logger.info("Database connections closed")
        self._engine = None
        self._session_factory = None
        self._is_initialized = False

    async def health_check(self) -> bool:
        """
        Verify database connectivity.

        Returns:
            True if healthy, raises otherwise
        """
        if not self._engine:
            raise DatabaseConnectionError("Database engine not initialized")

        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar() == 1
        except (OperationalError, DBAPIError, OSError) as e:
            logger.error(f"Database health check failed: {e}")
            raise DatabaseConnectionError("Database health check failed", cause=e) from e

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide async database session with commit on success and rollback
        on error.

        Usage:
            async with db_manager.session() as session:
                result = await session.execute(query)
        """
        if not self._session_factory:
            raise DatabaseConnectionError("Database not initialized")

        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Session error, rolled back: {e}")
            raise
        finally:
            await session.close()

    @property
    def engine(self) -> AsyncEngine:
        if not self._engine:
            raise DatabaseConnectionError("Database engine not initialized")
        return self._engine


__all__ = ["DatabaseManager"]
