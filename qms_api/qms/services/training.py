from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import NotFoundError, PermissionDeniedError, WorkflowError
from qms.db.models.documents import Document
from qms.db.models.enums import DocStatus, TrainingStatus, TrainingType
from qms.db.models.organization import User
from qms.db.models.training import LearningResource, TrainingRecord
from qms.repositories.training import TrainingRepository
from qms.schemas.training import LearningResourceCreate, TrainingAssignment
from qms.services.base import BaseService, as_utc, is_admin, now_utc

logger = logging.getLogger(__name__)

TRAINING_DUE_DAYS = 30
ALL_ROLES = "ALL"


def _document_applies(doc: Document, role_id: Optional[str]) -> bool:
    roles = doc.training_required_roles or []
    return ALL_ROLES in roles or (role_id is not None and role_id in roles)


class TrainingService(BaseService):
    """Per-user training plans derived from approved documents and learning resources."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = TrainingRepository(session)

    async def list_records(self, actor: User, user_id: Optional[str] = None) -> List[TrainingRecord]:
        if user_id and user_id != actor.id and not is_admin(actor):
            raise PermissionDeniedError("You can only view your own training records.")
        if user_id is None and not is_admin(actor):
            user_id = actor.id
        return await self.repo.list_records(user_id=user_id)

    # PUBLIC_INTERFACE
    async def my_assignments(self, user: User, now: Optional[datetime] = None) -> List[TrainingAssignment]:
        """
        Compute what the user should be trained on right now.

        Documents are matched on the current version, so approving a new revision
        re-opens the training for everyone in scope. Items without a record are due
        30 days after the document was last updated (or the resource was created).
        """
        now = now or now_utc()
        records: Dict[Tuple[str, str], List[TrainingRecord]] = {}
        for record in await self.repo.list_records(user_id=user.id):
            records.setdefault((record.type, record.reference_id), []).append(record)

        assignments: List[TrainingAssignment] = []
        for doc in await self.repo.approved_training_documents():
            if not _document_applies(doc, user.system_role_id):
                continue
            record = next(
                (r for r in records.get((TrainingType.DOCUMENT.value, doc.id), []) if r.version == doc.version),
                None,
            )
            assignments.append(
                self._assignment(
                    TrainingType.DOCUMENT,
                    doc.id,
                    f"{doc.doc_number}: {doc.title} (v{doc.version})",
                    doc.updated_at,
                    record,
                    now,
                    version=doc.version,
                )
            )

        for resource in await self.repo.list_resources():
            if user.system_role_id is None or user.system_role_id not in (resource.assigned_role_ids or []):
                continue
            found = records.get((TrainingType.VIDEO.value, resource.id), [])
            assignments.append(
                self._assignment(
                    TrainingType.VIDEO,
                    resource.id,
                    resource.title,
                    resource.created_at,
                    found[0] if found else None,
                    now,
                )
            )
        return sorted(assignments, key=lambda a: a.due_date)

    @staticmethod
    def _assignment(
        kind: TrainingType,
        reference_id: str,
        title: str,
        anchor: datetime,
        record: Optional[TrainingRecord],
        now: datetime,
        version: Optional[float] = None,
    ) -> TrainingAssignment:
        due = as_utc(anchor) + timedelta(days=TRAINING_DUE_DAYS)
        if record is not None:
            due = as_utc(record.due_date) if record.due_date else due
            status = record.status
        else:
            status = TrainingStatus.OVERDUE.value if due < now else TrainingStatus.PENDING.value
        return TrainingAssignment(
            type=kind,
            reference_id=reference_id,
            title=title,
            version=version,
            status=status,
            due_date=due,
            completed_date=record.completed_date if record else None,
            record_id=record.id if record else None,
        )

    async def _complete(self, user: User, kind: TrainingType, reference_id: str,
                        version: Optional[float]) -> TrainingRecord:
        stamp = now_utc()
        await self.repo.delete_user_records(user.id, reference_id)
        record = TrainingRecord(
            user_id=user.id,
            type=kind.value,
            reference_id=reference_id,
            version=version,
            status=TrainingStatus.COMPLETED.value,
            assigned_date=stamp,
            completed_date=stamp,
            due_date=stamp,
        )
        await self.repo.add(record)
        logger.info("%s training on %s completed by %s", kind.value, reference_id, user.id)
        return await self._save(record)

    # PUBLIC_INTERFACE
    async def sign_off_document(self, user: User, doc_id: str) -> TrainingRecord:
        """Record that the user has read and understood the current version of a document."""
        doc = await self.repo.get(Document, doc_id)
        if not doc:
            raise NotFoundError("Document", doc_id)
        if doc.status != DocStatus.APPROVED.value or not doc.is_active:
            raise WorkflowError("Only approved, active documents can be signed off.")
        return await self._complete(user, TrainingType.DOCUMENT, doc.id, doc.version)

    # PUBLIC_INTERFACE
    async def complete_video(self, user: User, resource_id: str) -> TrainingRecord:
        resource = await self.get_resource(resource_id)
        return await self._complete(user, TrainingType.VIDEO, resource.id, None)

    # Learning resources

    async def get_resource(self, resource_id: str) -> LearningResource:
        resource = await self.repo.get(LearningResource, resource_id)
        if not resource:
            raise NotFoundError("Learning resource", resource_id)
        return resource

    async def list_resources(self) -> List[LearningResource]:
        return await self.repo.list_resources()

    async def create_resource(self, payload: LearningResourceCreate) -> LearningResource:
        resource = LearningResource(**payload.model_dump())
        await self.repo.add(resource)
        return await self._save(resource)

    async def update_resource(self, resource_id: str, payload: LearningResourceCreate) -> LearningResource:
        resource = await self.get_resource(resource_id)
        for key, value in payload.model_dump().items():
            setattr(resource, key, value)
        return await self._save(resource)

    async def delete_resource(self, resource_id: str) -> None:
        resource = await self.get_resource(resource_id)
        await self.repo.delete(resource)
        await self.repo.commit()
