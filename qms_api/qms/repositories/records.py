from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select

from qms.db.models.records import QualityRecord, RecordType
from .base import BaseRepository


class RecordRepository(BaseRepository):
    """Repository for quality records, record types and templates."""

    async def list_records(
        self,
        *,
        search: Optional[str] = None,
        location_id: Optional[str] = None,
        department_id: Optional[str] = None,
        creator_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[QualityRecord]:
        stmt = select(QualityRecord)
        if search:
            like = f"%{search.lower()}%"
            stmt = stmt.where(
                func.lower(QualityRecord.title).like(like) | func.lower(QualityRecord.record_number).like(like)
            )
        if location_id:
            stmt = stmt.where(QualityRecord.location_id == location_id)
        if department_id:
            stmt = stmt.where(QualityRecord.department_id == department_id)
        if creator_id:
            stmt = stmt.where(QualityRecord.creator_id == creator_id)
        if status:
            stmt = stmt.where(QualityRecord.status == status)
        stmt = stmt.order_by(QualityRecord.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def count_of_type(self, record_type: str) -> int:
        stmt = select(func.count()).select_from(QualityRecord).where(QualityRecord.type == record_type)
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def record_number_exists(self, record_number: str) -> bool:
        stmt = select(QualityRecord.id).where(QualityRecord.record_number == record_number).limit(1)
        return (await self.scalar_one_or_none(stmt)) is not None

    async def get_type_by_prefix(self, prefix: str) -> Optional[RecordType]:
        stmt = select(RecordType).where(RecordType.prefix == prefix)
        return await self.scalar_one_or_none(stmt)

    async def first_type(self) -> Optional[RecordType]:
        stmt = select(RecordType).order_by(RecordType.created_at, RecordType.prefix).limit(1)
        return await self.scalar_one_or_none(stmt)
