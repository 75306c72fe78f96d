from __future__ import annotations

from typing import Any, Iterable, List, Optional, Type, TypeVar

from sqlalchemy import Executable, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qms.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Repositories never commit on their own inside a workflow step; services call
    commit() once the whole transition has been applied.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def flush(self) -> None:
        await self.session.flush()

    async def refresh(self, entity: Any) -> None:
        await self.session.refresh(entity)

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)

    async def delete(self, entity: Any) -> None:
        await self.session.delete(entity)

    async def get(self, model: Type[ModelT], entity_id: Any) -> Optional[ModelT]:
        """Load a row by primary key."""
        return await self.session.get(model, entity_id)

    async def list_all(self, model: Type[ModelT], *order_by: Any) -> List[ModelT]:
        stmt = select(model)
        if order_by:
            stmt = stmt.order_by(*order_by)
        return list(await self.scalars(stmt))

    async def count(self, model: Type[ModelT], *criteria: Any) -> int:
        stmt = select(func.count()).select_from(model)
        if criteria:
            stmt = stmt.where(*criteria)
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def delete_all(self, model: Type[ModelT]) -> None:
        """Remove every row of a table (used by backup restore)."""
        await self.execute(delete(model))
