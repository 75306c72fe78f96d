from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select

from qms.db.models.complaints import CustomerComplaint
from .base import BaseRepository


class ComplaintRepository(BaseRepository):
    """Repository for customer complaints."""

    async def list_complaints(
        self,
        *,
        stage: Optional[str] = None,
        ticket_id: Optional[str] = None,
        limit: int = 200,
        offset: int = 0,
    ) -> List[CustomerComplaint]:
        stmt = select(CustomerComplaint)
        if stage:
            stmt = stmt.where(CustomerComplaint.stage == stage)
        if ticket_id:
            stmt = stmt.where(CustomerComplaint.ticket_id == ticket_id)
        stmt = stmt.order_by(CustomerComplaint.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))
