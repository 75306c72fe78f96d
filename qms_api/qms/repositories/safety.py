from __future__ import annotations

from typing import List, Optional, Type, TypeVar, Union

from sqlalchemy import func, select

from qms.db.models.safety import NearMiss, SafetyIncident, SafetyObservation
from .base import BaseRepository

SafetyReport = Union[SafetyIncident, NearMiss, SafetyObservation]
ReportT = TypeVar("ReportT", SafetyIncident, NearMiss, SafetyObservation)


class SafetyRepository(BaseRepository):
    """Repository for incidents, near misses and observations."""

    async def list_reports(
        self,
        model: Type[ReportT],
        *,
        status: Optional[str] = None,
        location_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[ReportT]:
        stmt = select(model)
        if status:
            stmt = stmt.where(model.status == status)
        if location_id:
            stmt = stmt.where(model.location_id == location_id)
        stmt = stmt.order_by(model.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def count_numbers_with_prefix(self, model: Type[ReportT], prefix: str) -> int:
        stmt = select(func.count()).select_from(model).where(model.report_number.like(f"{prefix}%"))
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def report_number_exists(self, model: Type[ReportT], number: str) -> bool:
        stmt = select(model.id).where(model.report_number == number)
        return (await self.scalar_one_or_none(stmt)) is not None
