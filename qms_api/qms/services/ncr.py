from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError, WorkflowError, require_fields
from qms.db.models.enums import NCRStatus
from qms.db.models.organization import User
from qms.db.models.quality import NCRRecord
from qms.repositories.qual import QualityRepository
from qms.schemas.quality import NCRDisposition, NCROwnerReview, NCRRcaAssignment, NCRRcaSubmit, NCRRead
from qms.services.base import BaseService, is_admin, is_super_admin, now_utc
from qms.services.config import ConfigService
from qms.services.quality import new_ncr_for

logger = logging.getLogger(__name__)

DISPOSITION_FIELDS = {
    "disposition_action": "Disposition action",
    "justification": "Justification",
    "defective_quantity": "Defective quantity",
    "price_per_thousand": "Price per thousand",
    "ncr_owner_id": "NCR owner",
    "category": "Category",
}


# PUBLIC_INTERFACE
def rca_status_label(ncr: NCRRecord, today: Optional[date] = None) -> Optional[str]:
    """Human readable RCA progress, counted in whole days against the RCA due date."""
    if ncr.status == NCRStatus.CLOSED.value:
        return "COMPLETE"
    if ncr.status == NCRStatus.PENDING_REVIEW.value:
        return "PENDING OWNER REVIEW"
    if ncr.rca_due_date is None:
        return None
    days_left = (ncr.rca_due_date - (today or date.today())).days
    if days_left < 0:
        return f"OVERDUE ({abs(days_left)} DAYS)"
    return f"IN PROCESS ({days_left} DAYS LEFT)"


def to_read(ncr: NCRRecord, today: Optional[date] = None) -> NCRRead:
    read = NCRRead.model_validate(ncr)
    read.rca_status_label = rca_status_label(ncr, today)
    return read


class NCRService(BaseService):
    """
    Nonconformance workflow.

      OPEN --disposition--> PENDING_RCA --submit RCA--> PENDING_REVIEW
      PENDING_REVIEW --owner closes--> CLOSED
      PENDING_REVIEW --owner rejects--> PENDING_RCA
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = QualityRepository(session)
        self.config = ConfigService(session)

    async def get(self, ncr_id: str) -> NCRRecord:
        ncr = await self.repo.get(NCRRecord, ncr_id)
        if not ncr:
            raise NotFoundError("NCR", ncr_id)
        return ncr

    async def list(self, **filters) -> List[NCRRecord]:
        return await self.repo.list_ncrs(**filters)

    @staticmethod
    def _reject(ncr: NCRRecord, exc: Exception) -> Exception:
        logger.warning("NCR %s: rejected in %s: %s", ncr.id, ncr.status, exc)
        return exc

    # PUBLIC_INTERFACE
    async def sync_from_inspections(self) -> int:
        """Open an NCR for every failed inspection that does not have one yet. Returns how many were created."""
        known = await self.repo.inspection_ids_with_ncr()
        forms = {form.id: form for form in (await self.config.qa()).forms}
        created = 0
        for record in await self.repo.list_inspections(ncr_only=True):
            if record.id in known:
                continue
            await self.repo.add(new_ncr_for(record, forms.get(record.form_id)))
            created += 1
        if created:
            await self.repo.commit()
            logger.info("Opened %d NCR(s) from failed inspections", created)
        return created

    # PUBLIC_INTERFACE
    async def disposition(self, actor: User, ncr_id: str, payload: NCRDisposition) -> NCRRecord:
        """Decide what happens to the nonconforming material; OPEN -> PENDING_RCA."""
        ncr = await self.get(ncr_id)
        if ncr.status != NCRStatus.OPEN.value:
            raise self._reject(ncr, WorkflowError("Only OPEN NCRs can be dispositioned."))
        try:
            require_fields(
                payload.model_dump(),
                DISPOSITION_FIELDS,
                message="All disposition fields including Category and Owner are mandatory.",
            )
        except ValidationFailedError as exc:
            logger.warning("NCR %s: incomplete disposition, missing %s", ncr.id, ", ".join(exc.missing))
            raise
        cfg = await self.config.ncr()
        if cfg.owner_user_ids and payload.ncr_owner_id not in cfg.owner_user_ids:
            raise self._reject(ncr, ValidationFailedError("Selected NCR owner is not configured as an owner.",
                                                         missing=["NCR owner"]))

        for key, value in payload.model_dump().items():
            setattr(ncr, key, value)
        ncr.dispositioned_by = actor.id
        ncr.dispositioned_at = now_utc()
        ncr.status = NCRStatus.PENDING_RCA.value
        logger.info("NCR %s dispositioned (%s) by %s", ncr.id, ncr.disposition_action, actor.id)
        return await self._save(ncr)

    # PUBLIC_INTERFACE
    async def save_rca_assignment(self, actor: User, ncr_id: str, payload: NCRRcaAssignment) -> NCRRecord:
        """Assign the RCA and its due date; partial findings may be saved along the way."""
        ncr = await self.get(ncr_id)
        if ncr.status != NCRStatus.PENDING_RCA.value:
            raise self._reject(ncr, WorkflowError("RCA can only be assigned while the NCR is pending RCA."))
        if actor.id != ncr.ncr_owner_id and not is_admin(actor):
            raise PermissionDeniedError("Only the NCR owner can assign the RCA.")
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(ncr, key, value)
        return await self._save(ncr)

    # PUBLIC_INTERFACE
    async def submit_for_review(self, actor: User, ncr_id: str, payload: NCRRcaSubmit) -> NCRRecord:
        ncr = await self.get(ncr_id)
        if ncr.status != NCRStatus.PENDING_RCA.value:
            raise self._reject(ncr, WorkflowError("Only NCRs pending RCA can be submitted for review."))
        if actor.id != ncr.assigned_to_user_id and not is_super_admin(actor):
            raise PermissionDeniedError("Only the assigned user can submit the RCA.")
        require_fields(
            payload.model_dump(),
            {"root_cause": "Root cause", "corrective_action": "Corrective action"},
            message="Root Cause and Corrective Action are mandatory to submit for review.",
        )
        ncr.root_cause = payload.root_cause
        ncr.corrective_action = payload.corrective_action
        ncr.submitted_for_review_at = now_utc()
        ncr.status = NCRStatus.PENDING_REVIEW.value
        logger.info("NCR %s RCA submitted for review by %s", ncr.id, actor.id)
        return await self._save(ncr)

    # PUBLIC_INTERFACE
    async def owner_review(self, actor: User, ncr_id: str, payload: NCROwnerReview) -> NCRRecord:
        ncr = await self.get(ncr_id)
        if ncr.status != NCRStatus.PENDING_REVIEW.value:
            raise self._reject(ncr, WorkflowError("Only NCRs pending review can be closed or rejected."))
        if actor.id != ncr.ncr_owner_id and not is_super_admin(actor):
            raise PermissionDeniedError("Only the NCR owner can review the RCA.")
        if payload.decision == "CLOSE":
            ncr.status = NCRStatus.CLOSED.value
            ncr.resolved_by_user_id = ncr.assigned_to_user_id
            ncr.closed_at = now_utc()
            logger.info("NCR %s closed by owner %s", ncr.id, actor.id)
        else:
            ncr.status = NCRStatus.PENDING_RCA.value
            ncr.submitted_for_review_at = None
            logger.info("NCR %s RCA rejected by owner %s", ncr.id, actor.id)
        return await self._save(ncr)

    # PUBLIC_INTERFACE
    async def register_frame(self, **filters) -> pd.DataFrame:
        """NCR register as a DataFrame, one row per NCR."""
        today = date.today()
        rows = []
        for ncr in await self.repo.list_ncrs(**filters):
            rows.append({
                "NCR ID": ncr.id,
                "Ticket": ncr.ticket_id or "",
                "Inspection": ncr.inspection_type,
                "Detected": ncr.detected_at.date().isoformat() if ncr.detected_at else "",
                "Status": ncr.status,
                "Disposition": ncr.disposition_action or "",
                "Category": ncr.category or "",
                "Sub-category": ncr.sub_category or "",
                "Defective Qty": ncr.defective_quantity,
                "Price / 1000": ncr.price_per_thousand,
                "Total Cost": ncr.total_cost,
                "Owner": ncr.ncr_owner_id or "",
                "RCA Assignee": ncr.assigned_to_user_id or "",
                "RCA Status": rca_status_label(ncr, today) or "",
            })
        return pd.DataFrame(rows, columns=[
            "NCR ID", "Ticket", "Inspection", "Detected", "Status", "Disposition", "Category",
            "Sub-category", "Defective Qty", "Price / 1000", "Total Cost", "Owner", "RCA Assignee",
            "RCA Status",
        ])
