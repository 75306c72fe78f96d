from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import NotFoundError, PermissionDeniedError, WorkflowError, require_fields
from qms.db.models.enums import QualityRecordStatus
from qms.db.models.organization import User
from qms.db.models.records import QualityRecord, RecordTemplate
from qms.repositories.records import RecordRepository
from qms.schemas.records import QualityRecordSave, RecordTemplateCreate
from qms.services.base import BaseService, is_super_admin
from qms.services.config import ConfigService

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "REC"


class RecordService(BaseService):
    """
    Quality records: numbered evidence kept for a retention period.

    Records are numbered `{type}-{n:03d}` per type, can be edited while ACTIVE and are
    retired by archiving (ACTIVE -> ARCHIVED); an archived record is read-only.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = RecordRepository(session)
        self.config = ConfigService(session)

    async def get(self, record_id: str) -> QualityRecord:
        record = await self.repo.get(QualityRecord, record_id)
        if not record:
            raise NotFoundError("Record", record_id)
        return record

    async def list(self, **filters) -> List[QualityRecord]:
        return await self.repo.list_records(**filters)

    async def _can_create(self, user: User) -> bool:
        cfg = await self.config.records()
        return is_super_admin(user) or user.id in cfg.allowed_creators

    async def _default_type(self) -> str:
        first = await self.repo.first_type()
        return first.prefix if first else DEFAULT_PREFIX

    async def _next_record_number(self, record_type: str) -> str:
        count = await self.repo.count_of_type(record_type) + 1
        number = f"{record_type}-{count:03d}"
        while await self.repo.record_number_exists(number):
            count += 1
            number = f"{record_type}-{count:03d}"
        return number

    # PUBLIC_INTERFACE
    async def save(self, actor: User, payload: QualityRecordSave, record_id: Optional[str] = None) -> QualityRecord:
        """
        Create or edit a record. A new record is ACTIVE and owned by the actor; an edit
        keeps the record number unless the type changes.
        """
        record_type = payload.type or await self._default_type()
        require_fields({"title": payload.title, "type": record_type}, {"title": "Title", "type": "Record type"})
        fields = payload.model_dump(exclude={"type"})

        if record_id is None:
            if not await self._can_create(actor):
                raise PermissionDeniedError("You are not allowed to create quality records.")
            record = QualityRecord(
                **fields,
                type=record_type,
                record_number=await self._next_record_number(record_type),
                creator_id=actor.id,
                status=QualityRecordStatus.ACTIVE.value,
            )
            record.location_id = payload.location_id or actor.location_id
            record.department_id = payload.department_id or actor.department_id
            await self.repo.add(record)
            logger.info("Record %s created by %s", record.record_number, actor.id)
            return await self._save(record)

        record = await self.get(record_id)
        if record.status != QualityRecordStatus.ACTIVE.value:
            raise WorkflowError("Archived records cannot be edited.")
        if record.creator_id != actor.id and not await self._can_create(actor):
            raise PermissionDeniedError("Only the creator can edit this record.")
        if record.type != record_type:
            record.record_number = await self._next_record_number(record_type)
            record.type = record_type
        for key, value in fields.items():
            if key in ("location_id", "department_id") and value is None:
                continue
            setattr(record, key, value)
        logger.info("Record %s updated by %s", record.record_number, actor.id)
        return await self._save(record)

    # PUBLIC_INTERFACE
    async def archive(self, actor: User, record_id: str) -> QualityRecord:
        record = await self.get(record_id)
        if record.status != QualityRecordStatus.ACTIVE.value:
            raise WorkflowError("Only active records can be archived.")
        if record.creator_id != actor.id and not await self._can_create(actor):
            raise PermissionDeniedError("You are not allowed to archive this record.")
        record.status = QualityRecordStatus.ARCHIVED.value
        logger.info("Record %s archived by %s", record.record_number, actor.id)
        return await self._save(record)

    # Templates

    async def _check_template_manager(self, actor: User) -> None:
        cfg = await self.config.records()
        if not is_super_admin(actor) and actor.id not in cfg.template_managers:
            raise PermissionDeniedError("You are not allowed to manage record templates.")

    # PUBLIC_INTERFACE
    async def create_template(self, actor: User, payload: RecordTemplateCreate) -> RecordTemplate:
        await self._check_template_manager(actor)
        template = RecordTemplate(**payload.model_dump())
        await self.repo.add(template)
        return await self._save(template)

    # PUBLIC_INTERFACE
    async def update_template(self, actor: User, template_id: str, payload: RecordTemplateCreate) -> RecordTemplate:
        await self._check_template_manager(actor)
        template = await self.repo.get(RecordTemplate, template_id)
        if not template:
            raise NotFoundError("Template", template_id)
        template.name = payload.name
        template.content = payload.content
        return await self._save(template)

    # PUBLIC_INTERFACE
    async def delete_template(self, actor: User, template_id: str) -> None:
        await self._check_template_manager(actor)
        template = await self.repo.get(RecordTemplate, template_id)
        if not template:
            raise NotFoundError("Template", template_id)
        await self.repo.delete(template)
        await self.repo.commit()
