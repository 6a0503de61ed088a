"""
User Repository: Database Access Layer for User Accounts
=========================================================

Type-safe database operations for user entities using SQLAlchemy Core.
"""

from typing import Optional
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import delete, exc as sa_exc, func, insert, select, update

from core.exceptions import ConflictError
from core.models import UserCreate, UserInDB, utcnow
from infrastructure.database import DatabaseManager
from infrastructure.schema import users_table


class UserRepository:
    """Async CRUD and counter updates for users."""

    def __init__(self, database_manager: DatabaseManager):
        self.database_manager = database_manager

    async def get_by_id(self, user_id: UUID) -> Optional[UserInDB]:
        try:
            async with self.database_manager.session() as session:
                result = await session.execute(select(users_table).where(users_table.c.id == user_id))
                row = result.fetchone()
                if row is None:
                    logger.debug(f"User not found: {user_id}")
                    return None
                return UserInDB(**row._asdict())
        except Exception as e:
            logger.error(f"Failed to get user by ID {user_id}: {e}")
            raise

    async def get_by_email(self, email: str) -> Optional[UserInDB]:
        try:
            async with self.database_manager.session() as session:
                query = select(users_table).where(users_table.c.email == email.lower().strip())
                row = (await session.execute(query)).fetchone()
                return UserInDB(**row._asdict()) if row else None
        except Exception as e:
            logger.error(f"Failed to get user by email {email}: {e}")
            raise

    async def create(self, user_in: UserCreate, hashed_password: str) -> UserInDB:
        """
        Insert a new user.

        Raises:
            ConflictError: email or username already taken
        """
        now = utcnow()
        values = {
            "id": uuid4(),
            "email": user_in.email,
            "username": user_in.username,
            "hashed_password": hashed_password,
            "full_name": user_in.full_name,
            "created_at": now,
            "updated_at": now,
        }
        try:
            async with self.database_manager.session() as session:
                result = await session.execute(
                    insert(users_table).values(**values).returning(users_table)
                )
                user = UserInDB(**result.fetchone()._asdict())
        except sa_exc.IntegrityError as e:
            raise ConflictError(
                "User already exists",
                errors=["A user with this email or username already exists"],
                cause=e,
            )
        except Exception as e:
            logger.error(f"Failed to create user {user_in.email}: {e}")
            raise

        logger.info(f"User created: {user.username}")
        return user

    async def update_fields(self, user_id: UUID, **values) -> Optional[UserInDB]:
        if not values:
            return await self.get_by_id(user_id)
        values["updated_at"] = utcnow()
        try:
            async with self.database_manager.session() as session:
                query = (
                    update(users_table)
                    .where(users_table.c.id == user_id)
                    .values(**values)
                    .returning(users_table)
                )
                row = (await session.execute(query)).fetchone()
                return UserInDB(**row._asdict()) if row else None
        except Exception as e:
            logger.error(f"Failed to update user {user_id}: {e}")
            raise

    async def set_monetization(self, user_id: UUID, enabled: bool) -> Optional[UserInDB]:
        return await self.update_fields(user_id, monetization_unlocked=enabled)

    async def set_pinned_prompt(self, user_id: UUID, prompt_id: Optional[UUID]) -> Optional[UserInDB]:
        return await self.update_fields(user_id, pinned_prompt_id=prompt_id)

    async def increment_stat(self, user_id: UUID, column: str, amount: int = 1) -> None:
        """Atomic counter update; never drops below zero."""
        col = users_table.c[column]
        try:
            async with self.database_manager.session() as session:
                await session.execute(
                    update(users_table)
                    .where(users_table.c.id == user_id)
                    .values({column: func.greatest(col + amount, 0)})
                )
        except Exception as e:
            logger.error(f"Failed to update {column} for user {user_id}: {e}")
            raise

    async def count(self, **flags: bool) -> int:
        """Count users, optionally restricted to boolean column values."""
        query = select(func.count()).select_from(users_table)
        for column, value in flags.items():
            query = query.where(users_table.c[column].is_(value))
        async with self.database_manager.session() as session:
            return int((await session.execute(query)).scalar_one())

    async def list_users(self, offset: int, limit: int) -> list[UserInDB]:
        query = select(users_table).order_by(users_table.c.created_at.desc()).offset(offset).limit(limit)
        async with self.database_manager.session() as session:
            rows = (await session.execute(query)).fetchall()
        return [UserInDB(**row._asdict()) for row in rows]

    async def delete(self, user_id: UUID) -> bool:
        try:
            async with self.database_manager.session() as session:
                result = await session.execute(delete(users_table).where(users_table.c.id == user_id))
        except Exception as e:
            logger.error(f"Failed to delete user {user_id}: {e}")
            raise

        if result.rowcount == 0:
            logger.debug(f"User not found for deletion: {user_id}")
            return False
        logger.info(f"User deleted: {user_id}")
        return True
