from __future__ import annotations

from typing import List, Optional

from sqlalchemy import delete, select

from qms.db.models.documents import Document
from qms.db.models.training import LearningResource, TrainingRecord
from .base import BaseRepository


class TrainingRepository(BaseRepository):
    """Repository for training records and learning resources."""

    async def list_records(self, *, user_id: Optional[str] = None) -> List[TrainingRecord]:
        stmt = select(TrainingRecord)
        if user_id:
            stmt = stmt.where(TrainingRecord.user_id == user_id)
        stmt = stmt.order_by(TrainingRecord.assigned_date.desc())
        return list(await self.scalars(stmt))

    async def delete_user_records(self, user_id: str, reference_id: str) -> None:
        await self.execute(
            delete(TrainingRecord).where(
                TrainingRecord.user_id == user_id,
                TrainingRecord.reference_id == reference_id,
            )
        )

    async def approved_training_documents(self) -> List[Document]:
        """Approved, active documents that carry at least one training requirement."""
        stmt = select(Document).where(
            Document.status == "APPROVED",
            Document.is_active.is_(True),
        )
        return [d for d in await self.scalars(stmt) if d.training_required_roles]

    async def list_resources(self) -> List[LearningResource]:
        return await self.list_all(LearningResource, LearningResource.title)
