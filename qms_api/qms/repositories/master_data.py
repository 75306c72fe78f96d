from __future__ import annotations

from typing import List, Optional, Type, TypeVar

from sqlalchemy import func, or_, select

from qms.db.models.master_data import MasterCustomer, MasterItem, MasterSupplier
from .base import BaseRepository

PartyT = TypeVar("PartyT", MasterCustomer, MasterSupplier)


class ItemRepository(BaseRepository):
    """Repository for item master records."""

    async def list_items(
        self, *, search: Optional[str], status: Optional[str], limit: int, offset: int
    ) -> List[MasterItem]:
        stmt = select(MasterItem)
        if search:
            like = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(MasterItem.item_number).like(like),
                    func.lower(MasterItem.description).like(like),
                    func.lower(MasterItem.customer_name).like(like),
                )
            )
        if status:
            stmt = stmt.where(MasterItem.status == status)
        stmt = stmt.order_by(MasterItem.item_number).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_by_number(self, item_number: str) -> Optional[MasterItem]:
        stmt = select(MasterItem).where(MasterItem.item_number == item_number)
        return await self.scalar_one_or_none(stmt)


class PartyRepository(BaseRepository):
    """Repository for customer and supplier master records (same shape)."""

    def __init__(self, session, model: Type[PartyT]) -> None:
        super().__init__(session)
        self.model = model

    async def list_parties(
        self, *, search: Optional[str], status: Optional[str], limit: int, offset: int
    ) -> list:
        stmt = select(self.model)
        if search:
            like = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(func.lower(self.model.name).like(like), func.lower(self.model.email).like(like))
            )
        if status:
            stmt = stmt.where(self.model.status == status)
        stmt = stmt.order_by(self.model.name).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_by_name(self, name: str):
        stmt = select(self.model).where(self.model.name == name)
        return await self.scalar_one_or_none(stmt)
