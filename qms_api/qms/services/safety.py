from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import List, Optional, Type

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError, WorkflowError, require_fields
from qms.db.models.enums import IncidentStatus
from qms.db.models.organization import User
from qms.db.models.safety import NearMiss, SafetyIncident, SafetyObservation
from qms.repositories.safety import ReportT, SafetyRepository
from qms.schemas.safety import (
    NearMissCreate,
    ObservationActionAssign,
    ObservationActionSubmit,
    SafetyIncidentCreate,
    SafetyObservationCreate,
)
from qms.services.base import BaseService, is_super_admin, now_utc
from qms.services.config import ConfigService

logger = logging.getLogger(__name__)

ACTION_DUE_DAYS = 30

REPORT_PREFIXES = {
    SafetyIncident: "INC",
    NearMiss: "NM",
    SafetyObservation: "OBS",
}


class SafetyService(BaseService):
    """Incident, near-miss and observation reporting with approver-driven status changes."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = SafetyRepository(session)
        self.config = ConfigService(session)

    async def _next_report_number(self, model: Type[ReportT]) -> str:
        """{PREFIX}-{year}-{seq:03d}, sequence per prefix and year."""
        base = f"{REPORT_PREFIXES[model]}-{date.today().year}-"
        seq = await self.repo.count_numbers_with_prefix(model, base) + 1
        number = f"{base}{seq:03d}"
        while await self.repo.report_number_exists(model, number):
            seq += 1
            number = f"{base}{seq:03d}"
        return number

    async def get_report(self, model: Type[ReportT], report_id: str) -> ReportT:
        row = await self.repo.get(model, report_id)
        if not row:
            raise NotFoundError(model.__name__, report_id)
        return row

    async def list_reports(self, model: Type[ReportT], **filters) -> List[ReportT]:
        return await self.repo.list_reports(model, **filters)

    # PUBLIC_INTERFACE
    async def report_incident(self, reporter: User, payload: SafetyIncidentCreate) -> SafetyIncident:
        """File an injury report on behalf of the injured person."""
        require_fields(
            payload.model_dump(),
            {"injured_user_id": "Injured person", "location_id": "Location"},
        )
        if payload.injured_user_id == reporter.id:
            raise ValidationFailedError(
                "Self-filing is not allowed. Please ask a supervisor or colleague to file this report."
            )
        incident = SafetyIncident(
            **payload.model_dump(),
            report_number=await self._next_report_number(SafetyIncident),
            reported_by_user_id=reporter.id,
            status=IncidentStatus.SUBMITTED.value,
        )
        if incident.incident_date is None:
            incident.incident_date = date.today()
        await self.repo.add(incident)
        logger.info("Incident %s reported by %s", incident.report_number, reporter.id)
        return await self._save(incident)

    # PUBLIC_INTERFACE
    async def report_near_miss(self, reporter: User, payload: NearMissCreate) -> NearMiss:
        require_fields(
            payload.model_dump(),
            {"event_person_name": "Person involved", "location_id": "Location", "details": "Details"},
        )
        near_miss = NearMiss(
            **payload.model_dump(),
            report_number=await self._next_report_number(NearMiss),
            reported_by_user_id=reporter.id,
            status=IncidentStatus.SUBMITTED.value,
        )
        if near_miss.event_date is None:
            near_miss.event_date = date.today()
        await self.repo.add(near_miss)
        logger.info("Near miss %s reported by %s", near_miss.report_number, reporter.id)
        return await self._save(near_miss)

    # PUBLIC_INTERFACE
    async def report_observation(self, reporter: User, payload: SafetyObservationCreate) -> SafetyObservation:
        require_fields(payload.model_dump(), {"location_id": "Location", "details": "Details"})
        observation = SafetyObservation(
            **payload.model_dump(),
            report_number=await self._next_report_number(SafetyObservation),
            reported_by_user_id=reporter.id,
            status=IncidentStatus.SUBMITTED.value,
        )
        await self.repo.add(observation)
        logger.info("Observation %s reported by %s", observation.report_number, reporter.id)
        return await self._save(observation)

    async def _require_approver(self, actor: User) -> None:
        cfg = await self.config.safety()
        if actor.id not in cfg.safety_approvers and not is_super_admin(actor):
            raise PermissionDeniedError("Only safety approvers can change report status.")

    # PUBLIC_INTERFACE
    async def change_status(self, actor: User, model: Type[ReportT], report_id: str, status: str) -> ReportT:
        """Set the status of an incident, near miss or observation (safety approvers only)."""
        await self._require_approver(actor)
        report = await self.get_report(model, report_id)
        previous = report.status
        report.status = status
        logger.info("%s %s: %s -> %s by %s", model.__name__, report.report_number, previous, status, actor.id)
        return await self._save(report)

    # PUBLIC_INTERFACE
    async def assign_observation_action(
        self, actor: User, observation_id: str, payload: ObservationActionAssign
    ) -> SafetyObservation:
        """Assign a corrective action; it is due 30 days from today."""
        await self._require_approver(actor)
        observation = await self.get_report(SafetyObservation, observation_id)
        if observation.status == IncidentStatus.CLOSED.value:
            raise WorkflowError("Closed observations cannot be assigned an action.")
        observation.assigned_action_user_id = payload.assigned_action_user_id
        observation.action_description = payload.action_description
        observation.action_due_date = date.today() + timedelta(days=ACTION_DUE_DAYS)
        observation.action_completed_at = None
        return await self._save(observation)

    # PUBLIC_INTERFACE
    async def submit_observation_action(
        self, actor: User, observation_id: str, payload: Optional[ObservationActionSubmit] = None
    ) -> SafetyObservation:
        """The assignee marks the action done; the observation goes back to approvers for review."""
        observation = await self.get_report(SafetyObservation, observation_id)
        if not observation.assigned_action_user_id:
            raise WorkflowError("No action has been assigned to this observation.")
        if observation.assigned_action_user_id != actor.id and not is_super_admin(actor):
            raise PermissionDeniedError("Only the assigned user can submit this action.")
        if payload is not None and payload.action_taken:
            observation.action_taken = payload.action_taken
        observation.action_completed_at = now_utc()
        observation.status = IncidentStatus.ACTION_PENDING_REVIEW.value
        logger.info("Observation %s action submitted by %s", observation.report_number, actor.id)
        return await self._save(observation)
