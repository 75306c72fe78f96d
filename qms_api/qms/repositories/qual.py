from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select

from qms.db.models.quality import NCRRecord, QAInspectionRecord, QATicket
from .base import BaseRepository


class QualityRepository(BaseRepository):
    """Repository for QA tickets, inspection records and nonconformances."""

    # Tickets
    async def list_tickets(
        self,
        *,
        status: Optional[str] = None,
        process_type: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[QATicket]:
        stmt = select(QATicket)
        if status:
            stmt = stmt.where(QATicket.status == status)
        if process_type:
            stmt = stmt.where(QATicket.process_type == process_type)
        if search:
            like = f"%{search}%"
            stmt = stmt.where(QATicket.ticket_number.like(like) | QATicket.item_number.like(like))
        stmt = stmt.order_by(QATicket.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_ticket_by_number(self, ticket_number: str) -> Optional[QATicket]:
        stmt = select(QATicket).where(QATicket.ticket_number == ticket_number)
        return await self.scalar_one_or_none(stmt)

    # Inspections
    async def list_inspections(
        self,
        *,
        ticket_id: Optional[str] = None,
        form_id: Optional[str] = None,
        stage: Optional[str] = None,
        ncr_only: bool = False,
    ) -> List[QAInspectionRecord]:
        stmt = select(QAInspectionRecord)
        if ticket_id:
            stmt = stmt.where(QAInspectionRecord.ticket_id == ticket_id)
        if form_id:
            stmt = stmt.where(QAInspectionRecord.form_id == form_id)
        if stage:
            stmt = stmt.where(QAInspectionRecord.stage == stage)
        if ncr_only:
            stmt = stmt.where(QAInspectionRecord.is_ncr_triggered.is_(True))
        stmt = stmt.order_by(QAInspectionRecord.created_at.asc())
        return list(await self.scalars(stmt))

    # Nonconformances
    async def list_ncrs(
        self,
        *,
        status: Optional[str] = None,
        open_only: bool = False,
        ticket_id: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> List[NCRRecord]:
        stmt = select(NCRRecord)
        if status:
            stmt = stmt.where(NCRRecord.status == status)
        if open_only:
            stmt = stmt.where(NCRRecord.status != "CLOSED")
        if ticket_id:
            stmt = stmt.where(NCRRecord.ticket_id == ticket_id)
        stmt = stmt.order_by(NCRRecord.detected_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def inspection_ids_with_ncr(self) -> set[str]:
        stmt = select(NCRRecord.inspection_id).where(NCRRecord.inspection_id.is_not(None))
        return {row for row in await self.scalars(stmt)}
