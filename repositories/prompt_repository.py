"""
Prompt Repository: Database Access Layer for Prompts
=====================================================

SQLAlchemy Core operations for prompts.

The protected `prompt_text` column is left out of the default projection:
list and detail reads never fetch it. `get_with_text` is the only read
that selects it, and every write of it passes through
`prepare_for_persistence`.
"""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.sql import Select

from core.enums import PrivacyLevel, PromptStat
from core.models import (
    Prompt,
    PromptCreate,
    PromptFilters,
    PromptInDB,
    RatingAggregate,
    utcnow,
)
from infrastructure.database import DatabaseManager
from infrastructure.field_cipher import FieldCipher
from infrastructure.schema import PROMPT_DEPENDENT_TABLES, prompts_table
from repositories.encrypted_field import prepare_for_persistence

PUBLIC_COLUMNS = [c for c in prompts_table.c if c.name != "prompt_text"]

_STAT_COLUMNS = {stat.column: stat.value for stat in PromptStat}


def row_to_record(row: dict[str, Any]) -> dict[str, Any]:
    """Fold flat stats/rating columns into the nested model shape."""
    data = dict(row)
    data["stats"] = {value: data.pop(column, 0) for column, value in _STAT_COLUMNS.items()}
    data["ratings"] = {
        "average": data.pop("rating_average", 0.0),
        "count": data.pop("rating_count", 0),
    }
    if data.get("price") is not None:
        data["price"] = float(data["price"])
    return data


class PromptRepository:
    def __init__(self, database_manager: DatabaseManager, cipher: FieldCipher):
        self.database_manager = database_manager
        self.cipher = cipher

    # =========================================================================
    # READS
    # =========================================================================

    async def get(self, prompt_id: UUID) -> Optional[Prompt]:
        """Detail read without the protected text."""
        try:
            async with self.database_manager.session() as session:
                query = select(*PUBLIC_COLUMNS).where(prompts_table.c.id == prompt_id)
                row = (await session.execute(query)).fetchone()
        except Exception as e:
            logger.error(f"Failed to get prompt {prompt_id}: {e}")
            raise
        return Prompt(**row_to_record(row._asdict())) if row else None

    async def get_with_text(self, prompt_id: UUID) -> Optional[PromptInDB]:
        """Read including the stored envelope. Used by the copy path only."""
        try:
            async with self.database_manager.session() as session:
                query = select(prompts_table).where(prompts_table.c.id == prompt_id)
                row = (await session.execute(query)).fetchone()
        except Exception as e:
            logger.error(f"Failed to get prompt text {prompt_id}: {e}")
            raise
        return PromptInDB(**row_to_record(row._asdict())) if row else None

    def _apply_filters(self, query: Select, filters: PromptFilters) -> Select:
        p = prompts_table.c
        conditions = []

        if filters.privacy is PrivacyLevel.PUBLIC:
            conditions += [p.privacy == PrivacyLevel.PUBLIC.value, p.is_approved.is_(True)]
        elif filters.privacy is not None:
            conditions.append(p.privacy == filters.privacy.value)

        if filters.active_only:
            conditions.append(p.is_active.is_(True))
        if filters.category:
            conditions.append(p.category.ilike(filters.category))
        if filters.tags:
            conditions.append(p.tags.overlap([t.lower() for t in filters.tags]))
        if filters.creator_id:
            conditions.append(p.creator_id == filters.creator_id)
        if filters.featured:
            conditions.append(p.is_featured.is_(True))
        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    p.title.ilike(pattern),
                    p.description.ilike(pattern),
                    func.array_to_string(p.tags, " ").ilike(pattern),
                )
            )

        return query.where(and_(*conditions)) if conditions else query

    async def find(self, filters: PromptFilters) -> list[Prompt]:
        p = prompts_table.c
        if filters.trending:
            order = [p.stats_views.desc(), p.stats_copies.desc(), p.rating_average.desc(), p.created_at.desc()]
        else:
            order = [p.created_at.desc()]

        query = (
            self._apply_filters(select(*PUBLIC_COLUMNS), filters)
            .order_by(*order)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        try:
            async with self.database_manager.session() as session:
                rows = (await session.execute(query)).fetchall()
        except Exception as e:
            logger.error(f"Failed to list prompts: {e}")
            raise
        return [Prompt(**row_to_record(row._asdict())) for row in rows]

    async def count(self, filters: PromptFilters) -> int:
        query = self._apply_filters(select(func.count()).select_from(prompts_table), filters)
        async with self.database_manager.session() as session:
            return int((await session.execute(query)).scalar_one())

    async def count_created_since(self, creator_id: UUID, since: datetime) -> int:
        """Persisted creations by `creator_id` at or after `since`."""
        query = (
            select(func.count())
            .select_from(prompts_table)
            .where(prompts_table.c.creator_id == creator_id, prompts_table.c.created_at >= since)
        )
        async with self.database_manager.session() as session:
            return int((await session.execute(query)).scalar_one())

    async def list_ids_by_creator(self, creator_id: UUID) -> list[UUID]:
        query = select(prompts_table.c.id).where(prompts_table.c.creator_id == creator_id)
        async with self.database_manager.session() as session:
            return list((await session.execute(query)).scalars().all())

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create(self, creator_id: UUID, data: PromptCreate) -> Prompt:
        now = utcnow()
        values = data.model_dump(mode="json")
        values.update(
            id=uuid4(),
            creator_id=creator_id,
            prompt_text=prepare_for_persistence(None, data.prompt_text, self.cipher),
            price=data.price if data.is_paid else 0,
            created_at=now,
            updated_at=now,
        )
        try:
            async with self.database_manager.session() as session:
                result = await session.execute(
                    insert(prompts_table).values(**values).returning(*PUBLIC_COLUMNS)
                )
                row = result.fetchone()
        except Exception as e:
            logger.error(f"Failed to create prompt for {creator_id}: {e}")
            raise

        prompt = Prompt(**row_to_record(row._asdict()))
        logger.info(f"Prompt created: {prompt.id} by {creator_id}")
        return prompt

    async def update(self, prompt_id: UUID, changes: dict[str, Any]) -> Optional[Prompt]:
        """
        Apply a partial update. A changed `prompt_text` is re-encrypted; an
        unchanged or already-enveloped one is stored as-is.
        """
        values = dict(changes)
        values["updated_at"] = utcnow()

        try:
            async with self.database_manager.session() as session:
                if "prompt_text" in values:
                    current = (
                        await session.execute(
                            select(prompts_table.c.prompt_text).where(prompts_table.c.id == prompt_id)
                        )
                    ).scalar_one_or_none()
                    values["prompt_text"] = prepare_for_persistence(
                        current, values["prompt_text"], self.cipher
                    )

                query = (
                    update(prompts_table)
                    .where(prompts_table.c.id == prompt_id)
                    .values(**values)
                    .returning(*PUBLIC_COLUMNS)
                )
                row = (await session.execute(query)).fetchone()
        except Exception as e:
            logger.error(f"Failed to update prompt {prompt_id}: {e}")
            raise
        return Prompt(**row_to_record(row._asdict())) if row else None

    async def increment_stat(self, prompt_id: UUID, stat: PromptStat, amount: int = 1) -> None:
        """Atomic in-database increment; concurrent increments never lose updates."""
        col = prompts_table.c[stat.column]
        async with self.database_manager.session() as session:
            await session.execute(
                update(prompts_table)
                .where(prompts_table.c.id == prompt_id)
                .values({stat.column: func.greatest(col + amount, 0)})
            )

    async def set_rating_aggregate(self, prompt_id: UUID, aggregate: RatingAggregate) -> None:
        async with self.database_manager.session() as session:
            await session.execute(
                update(prompts_table)
                .where(prompts_table.c.id == prompt_id)
                .values(rating_average=aggregate.average, rating_count=aggregate.count)
            )

    async def set_moderation(
        self,
        prompt_id: UUID,
        *,
        is_active: bool,
        reason: Optional[str],
        moderator_id: Optional[UUID],
    ) -> Optional[Prompt]:
        """Block records who, when and why; unblock clears the record."""
        if is_active:
            values = {"moderation_reason": None, "moderated_by": None, "moderated_at": None}
        else:
            values = {"moderation_reason": reason, "moderated_by": moderator_id, "moderated_at": utcnow()}
        return await self.update(prompt_id, {"is_active": is_active, **values})

    async def delete(self, prompt_id: UUID) -> bool:
        """
        Delete a prompt, then clean up its likes, comments, ratings, saves
        and pool votes.

        The cleanup is best effort and not transactional: each dependent
        table is cleared in its own session and a failure is logged, not
        raised, leaving orphans for a later sweep.
        """
        try:
            async with self.database_manager.session() as session:
                result = await session.execute(
                    delete(prompts_table).where(prompts_table.c.id == prompt_id)
                )
        except Exception as e:
            logger.error(f"Failed to delete prompt {prompt_id}: {e}")
            raise

        if result.rowcount == 0:
            return False

        for table in PROMPT_DEPENDENT_TABLES:
            try:
                async with self.database_manager.session() as session:
                    await session.execute(delete(table).where(table.c.prompt_id == prompt_id))
            except Exception as e:
                logger.warning(
                    f"Cascade cleanup of {table.name} failed for deleted prompt {prompt_id}: {e}"
                )

        logger.info(f"Prompt deleted: {prompt_id}")
        return True
