"""Shared data-access helpers for the engine's tables."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from src.leadflow.core.logging import get_logger
from src.leadflow.schemas.pagination import decode_cursor, encode_cursor

logger = get_logger(__name__)

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Data access only.

    Services own the transaction and commit once per processed item, so
    nothing here flushes or commits.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID, for_update: bool = False) -> ModelType | None:
        """Fetch one row by primary key.

        ``for_update`` takes a row lock on backends that support it; SQLite
        ignores it.
        """
        query = select(self.model).where(self.model.id == id)  # type: ignore[attr-defined]
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    def add(self, entity: ModelType) -> None:
        self.session.add(entity)

    async def paginate(
        self,
        query: Any,
        cursor: str | None,
        limit: int,
    ) -> tuple[list[ModelType], str | None, bool]:
        """Page through ``query`` newest first, keyed on (created_at, id).

        An unreadable cursor restarts from the first page.

        Returns:
            Tuple of (items, next_cursor, has_more)
        """
        created_col = self.model.created_at  # type: ignore[attr-defined]
        id_col = self.model.id  # type: ignore[attr-defined]

        if cursor:
            try:
                after_created, after_id = decode_cursor(cursor)
            except ValueError:
                logger.info("Ignoring invalid pagination cursor", model=self.model.__name__)
            else:
                query = query.where(
                    or_(
                        created_col < after_created,
                        and_(created_col == after_created, id_col < after_id),
                    )
                )

        result = await self.session.execute(
            query.order_by(created_col.desc(), id_col.desc()).limit(limit + 1)
        )
        rows = list(result.scalars().all())

        has_more = len(rows) > limit
        items = rows[:limit]
        next_cursor = None
        if has_more:
            last = items[-1]
            next_cursor = encode_cursor(last.created_at, last.id)  # type: ignore[attr-defined]

        return items, next_cursor, has_more
