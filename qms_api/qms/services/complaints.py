from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import NotFoundError, ValidationFailedError, WorkflowError, require_fields
from qms.core.settings import get_app_settings
from qms.db.models.complaints import CustomerComplaint
from qms.db.models.enums import ComplaintStage, ContainmentAction
from qms.db.models.organization import User
from qms.db.models.quality import QATicket
from qms.repositories.complaints import ComplaintRepository
from qms.schemas.complaints import ComplaintContainment, ComplaintDetails, ComplaintRca, ReturnAddress
from qms.services.base import BaseService, now_utc
from qms.services.config import ConfigService
from qms.services.pdf import render_complaint_notice

logger = logging.getLogger(__name__)

RETURN_ACTIONS = {ContainmentAction.RETURN_FOR_CREDIT.value, ContainmentAction.RETURN_FOR_REPLACEMENT.value}


class ComplaintService(BaseService):
    """
    Customer complaints, staged DETAILS -> CONTAINMENT -> RCA -> CLOSED.

    A closed complaint can be reopened, which starts a new revision at DETAILS.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = ComplaintRepository(session)
        self.config = ConfigService(session)

    async def get(self, complaint_id: str) -> CustomerComplaint:
        complaint = await self.repo.get(CustomerComplaint, complaint_id)
        if not complaint:
            raise NotFoundError("Complaint", complaint_id)
        return complaint

    async def list(self, **filters) -> List[CustomerComplaint]:
        return await self.repo.list_complaints(**filters)

    @staticmethod
    def _expect_stage(complaint: CustomerComplaint, stage: ComplaintStage) -> None:
        if complaint.stage != stage.value:
            logger.warning("Complaint %s: %s step attempted in stage %s", complaint.id, stage.value, complaint.stage)
            raise WorkflowError(f"Complaint is in stage {complaint.stage}, expected {stage.value}.")

    # PUBLIC_INTERFACE
    async def create_from_ticket(self, actor: User, ticket_id: str) -> CustomerComplaint:
        ticket = await self.repo.get(QATicket, ticket_id)
        if not ticket:
            raise NotFoundError("QA ticket", ticket_id)
        complaint = CustomerComplaint(
            ticket_id=ticket.id,
            customer_id=ticket.customer_name,
            logged_by_user_id=actor.id,
            stage=ComplaintStage.DETAILS.value,
            revision=1,
        )
        await self.repo.add(complaint)
        logger.info("Complaint logged against ticket %s by %s", ticket.ticket_number, actor.id)
        return await self._save(complaint)

    # PUBLIC_INTERFACE
    async def submit_details(self, complaint_id: str, payload: ComplaintDetails) -> CustomerComplaint:
        complaint = await self.get(complaint_id)
        self._expect_stage(complaint, ComplaintStage.DETAILS)
        require_fields(
            payload.model_dump(),
            {
                "owner_id": "Owner",
                "category": "Category",
                "sub_category": "Sub-category",
                "issue_description": "Description",
                "defective_quantity": "Defective quantity",
                "price_per_unit": "Price per unit",
            },
            message="Please complete all mandatory details including Owner and Category.",
        )
        for key, value in payload.model_dump().items():
            setattr(complaint, key, value)
        complaint.total_cost = payload.defective_quantity * payload.price_per_unit
        complaint.stage = ComplaintStage.CONTAINMENT.value
        return await self._save(complaint)

    # PUBLIC_INTERFACE
    async def submit_containment(self, complaint_id: str, payload: ComplaintContainment) -> CustomerComplaint:
        complaint = await self.get(complaint_id)
        self._expect_stage(complaint, ComplaintStage.CONTAINMENT)
        require_fields(payload.model_dump(), {"containment_action": "Containment action"})
        if payload.containment_action in RETURN_ACTIONS:
            require_fields(payload.model_dump(), {"selected_return_address_id": "Return address"},
                           message="Please select a return address.")
            if await self._return_address(payload.selected_return_address_id) is None:
                raise ValidationFailedError("Selected return address does not exist.", missing=["Return address"])
        if payload.containment_action == ContainmentAction.REWORK_AT_CUSTOMER.value and payload.is_rework_possible:
            require_fields(payload.model_dump(), {"rework_ticket_number": "Rework ticket number"})

        for key, value in payload.model_dump().items():
            setattr(complaint, key, value)
        complaint.stage = ComplaintStage.RCA.value
        return await self._save(complaint)

    # PUBLIC_INTERFACE
    async def submit_rca(self, complaint_id: str, payload: ComplaintRca) -> CustomerComplaint:
        complaint = await self.get(complaint_id)
        self._expect_stage(complaint, ComplaintStage.RCA)
        require_fields(
            payload.model_dump(),
            {"root_cause": "Root cause", "corrective_action": "Corrective action", "assigned_to_user_id": "Assignee"},
        )
        for key, value in payload.model_dump().items():
            setattr(complaint, key, value)
        complaint.stage = ComplaintStage.CLOSED.value
        complaint.closed_at = now_utc()
        logger.info("Complaint %s closed", complaint.id)
        return await self._save(complaint)

    # PUBLIC_INTERFACE
    async def reopen(self, complaint_id: str) -> CustomerComplaint:
        complaint = await self.get(complaint_id)
        self._expect_stage(complaint, ComplaintStage.CLOSED)
        complaint.stage = ComplaintStage.DETAILS.value
        complaint.revision = (complaint.revision or 1) + 1
        complaint.closed_at = None
        logger.info("Complaint %s reopened as revision %d", complaint.id, complaint.revision)
        return await self._save(complaint)

    async def _return_address(self, address_id: Optional[str]) -> Optional[ReturnAddress]:
        cfg = await self.config.complaints()
        return next((a for a in cfg.return_addresses if a.id == address_id), None)

    # PUBLIC_INTERFACE
    async def notice_pdf(self, complaint_id: str) -> bytes:
        """Customer notice; the selected return address, or the first configured one for return actions."""
        complaint = await self.get(complaint_id)
        if not complaint.containment_action:
            raise WorkflowError("Containment must be recorded before a notice can be generated.")
        cfg = await self.config.complaints()
        address = None
        if complaint.containment_action != ContainmentAction.NA.value:
            address = await self._return_address(complaint.selected_return_address_id)
            if address is None and cfg.return_addresses:
                address = cfg.return_addresses[0]
        ticket = await self.repo.get(QATicket, complaint.ticket_id) if complaint.ticket_id else None
        return render_complaint_notice(
            complaint,
            ticket,
            address,
            company_name=get_app_settings().COMPANY_NAME,
            logo_url=cfg.company_logo_url,
        )
