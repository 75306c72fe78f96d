from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import (
    NotFoundError,
    ValidationFailedError,
    WorkflowError,
    require_fields,
)
from qms.core.settings import get_app_settings
from qms.db.models.enums import (
    NCRStatus,
    QAFieldType,
    QAInspectionStage,
    QATicketStatus,
)
from qms.db.models.organization import User
from qms.db.models.quality import NCRRecord, QAInspectionRecord, QATicket
from qms.repositories.master_data import ItemRepository
from qms.repositories.qual import QualityRepository
from qms.schemas.quality import QAFormConfig, QAInspectionSubmit, QATicketCreate
from qms.services.base import BaseService
from qms.services.config import ConfigService
from qms.services.pdf import render_coa_pdf

logger = logging.getLogger(__name__)

SINGLE_RECORD_STAGES = {QAInspectionStage.MAKE_READY.value, QAInspectionStage.FINAL.value}
DEFAULT_INSPECTION_TYPE = "Quality Inspection"


def is_failure(form: QAFormConfig, values: Dict[str, Any]) -> bool:
    """
    A record fails when any PASS_FAIL_NA field is FAIL, or a BUTTON_GROUP / DROPDOWN
    answer is one of the field's fail options.
    """
    for field in form.fields:
        value = values.get(field.id)
        if field.type == QAFieldType.PASS_FAIL_NA.value and value == "FAIL":
            return True
        if field.type in (QAFieldType.BUTTON_GROUP.value, QAFieldType.DROPDOWN.value) and value in field.fail_options:
            return True
    return False


def new_ncr_for(record: QAInspectionRecord, form: Optional[QAFormConfig]) -> NCRRecord:
    return NCRRecord(
        ticket_id=record.ticket_id,
        inspection_type=form.name if form else DEFAULT_INSPECTION_TYPE,
        inspection_id=record.id,
        inspector_id=record.inspector_id,
        detected_at=record.created_at,
        status=NCRStatus.OPEN.value,
    )


class QualityService(BaseService):
    """QA job tickets, staged inspections, job release and the COA."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = QualityRepository(session)
        self.items = ItemRepository(session)
        self.config = ConfigService(session)

    async def forms_by_id(self) -> Dict[str, QAFormConfig]:
        return {form.id: form for form in (await self.config.qa()).forms}

    async def get_ticket(self, ticket_id: str) -> QATicket:
        ticket = await self.repo.get(QATicket, ticket_id)
        if not ticket:
            raise NotFoundError("QA ticket", ticket_id)
        return ticket

    async def list_tickets(self, **filters) -> List[QATicket]:
        return await self.repo.list_tickets(**filters)

    async def list_inspections(self, ticket_id: str) -> List[QAInspectionRecord]:
        await self.get_ticket(ticket_id)
        return await self.repo.list_inspections(ticket_id=ticket_id)

    # PUBLIC_INTERFACE
    async def create_ticket(self, actor: User, payload: QATicketCreate) -> QATicket:
        """Open a job ticket; forms default to every configured form for its process type."""
        require_fields(
            payload.model_dump(),
            {"ticket_number": "Ticket number", "item_number": "Item number", "process_type": "Process type"},
        )
        if await self.repo.get_ticket_by_number(payload.ticket_number):
            raise WorkflowError(f"Ticket {payload.ticket_number} already exists.")

        form_ids = payload.applicable_form_ids
        if form_ids is None:
            form_ids = [f.id for f in (await self.config.qa()).forms if f.process_type == payload.process_type]
        is_new_item = await self.items.get_by_number(payload.item_number) is None

        ticket = QATicket(
            ticket_number=payload.ticket_number,
            item_number=payload.item_number,
            description=payload.description,
            customer_name=payload.customer_name or "Unknown",
            process_type=payload.process_type,
            created_by_id=actor.id,
            status=QATicketStatus.OPEN.value,
            is_new_item_entry=is_new_item,
            applicable_form_ids=list(form_ids),
        )
        await self.repo.add(ticket)
        logger.info("QA ticket %s opened by %s (new item: %s)", ticket.ticket_number, actor.id, is_new_item)
        return await self._save(ticket)

    # PUBLIC_INTERFACE
    async def toggle_form(self, ticket_id: str, form_id: str) -> QATicket:
        ticket = await self.get_ticket(ticket_id)
        if ticket.status == QATicketStatus.COMPLETED.value:
            raise WorkflowError("Completed tickets cannot be changed.")
        current = list(ticket.applicable_form_ids or [])
        if form_id in current:
            current.remove(form_id)
        else:
            if form_id not in await self.forms_by_id():
                raise NotFoundError("QA form", form_id)
            current.append(form_id)
        ticket.applicable_form_ids = current
        return await self._save(ticket)

    # PUBLIC_INTERFACE
    async def submit_inspection(self, actor: User, ticket_id: str, payload: QAInspectionSubmit) -> QAInspectionRecord:
        """
        Record a filled inspection form.

        A failing record locks the ticket (LOCKED_NCR) and opens an NCR for it.
        """
        ticket = await self.get_ticket(ticket_id)
        if ticket.status == QATicketStatus.COMPLETED.value:
            raise WorkflowError("This job has already been released.")
        form = (await self.forms_by_id()).get(payload.form_id)
        if form is None:
            raise NotFoundError("QA form", payload.form_id)
        if form.id not in (ticket.applicable_form_ids or []):
            raise WorkflowError(f"Form {form.name} is not applicable to this ticket.")
        if payload.stage not in form.applicable_stages:
            raise WorkflowError(f"Form {form.name} is not configured for the {payload.stage} stage.")
        if payload.stage in SINGLE_RECORD_STAGES and await self.repo.list_inspections(
            ticket_id=ticket.id, form_id=form.id, stage=payload.stage
        ):
            raise WorkflowError(f"A {payload.stage.replace('_', ' ')} record already exists for this form.")

        mandatory = {f.id: f.label for f in form.fields if f.is_mandatory}
        require_fields(payload.values, mandatory, message="Mandatory inspection fields are missing.")

        failed = is_failure(form, payload.values)
        record = QAInspectionRecord(
            ticket_id=ticket.id,
            form_id=form.id,
            inspector_id=actor.id,
            stage=payload.stage,
            values=dict(payload.values),
            is_ncr_triggered=failed,
        )
        await self.repo.add(record)
        await self.repo.flush()
        await self.repo.refresh(record)

        if failed:
            ticket.status = QATicketStatus.LOCKED_NCR.value
            await self.repo.add(new_ncr_for(record, form))
            logger.warning("Ticket %s LOCKED: %s failed at %s", ticket.ticket_number, form.name, payload.stage)
        elif ticket.status != QATicketStatus.LOCKED_NCR.value:
            ticket.status = QATicketStatus.IN_PROGRESS.value
        return await self._save(record)

    # PUBLIC_INTERFACE
    async def release_job(self, ticket_id: str) -> QATicket:
        """
        Complete a job once every applicable form configured for FINAL has a FINAL record.

        A ticket locked for nonconformance is released only after all of its NCRs are closed.
        """
        ticket = await self.get_ticket(ticket_id)
        if ticket.status == QATicketStatus.COMPLETED.value:
            raise WorkflowError("This job has already been released.")
        forms = await self.forms_by_id()
        finals = {r.form_id for r in await self.repo.list_inspections(
            ticket_id=ticket.id, stage=QAInspectionStage.FINAL.value
        )}
        missing = [
            forms[form_id].name
            for form_id in ticket.applicable_form_ids or []
            if form_id in forms
            and QAInspectionStage.FINAL.value in forms[form_id].applicable_stages
            and form_id not in finals
        ]
        if missing:
            raise ValidationFailedError(
                "Cannot release job. All applicable forms configured for 'FINAL' must be completed.",
                missing=missing,
            )
        if ticket.status == QATicketStatus.LOCKED_NCR.value:
            open_ncrs = await self.repo.list_ncrs(ticket_id=ticket.id, open_only=True)
            if open_ncrs:
                raise WorkflowError("Job is locked until all of its NCRs are closed.")
        ticket.status = QATicketStatus.COMPLETED.value
        logger.info("Ticket %s released", ticket.ticket_number)
        return await self._save(ticket)

    # PUBLIC_INTERFACE
    async def coa_pdf(self, ticket_id: str) -> bytes:
        ticket = await self.get_ticket(ticket_id)
        finals = await self.repo.list_inspections(ticket_id=ticket.id, stage=QAInspectionStage.FINAL.value)
        cfg = await self.config.qa()
        return render_coa_pdf(
            ticket,
            finals,
            {form.id: form for form in cfg.forms},
            company_name=get_app_settings().COMPANY_NAME,
            logo_url=cfg.company_logo_url,
        )
