from __future__ import annotations

from collections import Counter
from typing import Dict, Optional

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from qms.db.models.complaints import CustomerComplaint
from qms.db.models.documents import Document
from qms.db.models.enums import TrainingStatus
from qms.db.models.organization import User
from qms.db.models.quality import NCRRecord
from qms.db.models.safety import NearMiss, SafetyIncident, SafetyObservation
from qms.db.models.training import TrainingRecord
from qms.repositories.base import BaseRepository
from qms.schemas.kpi import KpiFilters, KpiSummary
from qms.services.base import BaseService

SEVERITY_LEVELS = (1, 2, 3, 4, 5)


class KpiService(BaseService):
    """Dashboard aggregates filtered by location, department and user."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = BaseRepository(session)

    def _matcher(self, users: Dict[str, User], filters: KpiFilters):
        """
        Build a predicate over (user id, record location).

        Location falls back to the user's own location when the record has none;
        department is always taken from the user.
        """

        def matches(user_id: Optional[str], location_id: Optional[str] = None) -> bool:
            user = users.get(user_id) if user_id else None
            if user is None:
                return False
            if filters.location_id and (location_id or user.location_id) != filters.location_id:
                return False
            if filters.department_id and user.department_id != filters.department_id:
                return False
            if filters.user_id and user.id != filters.user_id:
                return False
            return True

        return matches

    # PUBLIC_INTERFACE
    async def summary(self, filters: KpiFilters) -> KpiSummary:
        users = {u.id: u for u in await self.repo.list_all(User)}
        match = self._matcher(users, filters)

        incidents = [
            i for i in await self.repo.list_all(SafetyIncident)
            if match(i.injured_user_id, i.location_id) or match(i.reported_by_user_id, i.location_id)
        ]
        near_misses = [n for n in await self.repo.list_all(NearMiss) if match(n.reported_by_user_id, n.location_id)]
        observations = [
            o for o in await self.repo.list_all(SafetyObservation) if match(o.reported_by_user_id, o.location_id)
        ]
        documents = [d for d in await self.repo.list_all(Document) if match(d.author_id)]
        training = [t for t in await self.repo.list_all(TrainingRecord) if match(t.user_id)]
        ncrs = [n for n in await self.repo.list_all(NCRRecord) if match(n.inspector_id)]
        complaints = [c for c in await self.repo.list_all(CustomerComplaint) if match(c.logged_by_user_id)]

        severity = Counter(i.severity for i in incidents)
        by_month = Counter(i.incident_date.strftime("%Y-%m") for i in incidents if i.incident_date)
        training_status = Counter(t.status for t in training)

        return KpiSummary(
            filters=filters,
            incidents_total=len(incidents),
            incidents_by_severity={f"Sev {level}": severity.get(level, 0) for level in SEVERITY_LEVELS},
            incidents_by_month=dict(sorted(by_month.items())),
            near_misses_total=len(near_misses),
            observations_total=len(observations),
            documents_by_status=dict(Counter(d.status for d in documents)),
            documents_by_type=dict(Counter(d.type for d in documents)),
            training_completed=training_status.get(TrainingStatus.COMPLETED.value, 0),
            training_pending=training_status.get(TrainingStatus.PENDING.value, 0),
            training_overdue=training_status.get(TrainingStatus.OVERDUE.value, 0),
            ncrs_by_status=dict(Counter(n.status for n in ncrs)),
            ncr_total_cost=round(sum(n.total_cost or 0.0 for n in ncrs), 2),
            complaints_by_stage=dict(Counter(c.stage for c in complaints)),
        )

    # PUBLIC_INTERFACE
    async def summary_frame(self, filters: KpiFilters) -> pd.DataFrame:
        """The KPI summary as one row per metric: Area, Metric, Value."""
        summary = await self.summary(filters)
        rows = [
            ("Safety", "Incidents", summary.incidents_total),
            *[("Safety", f"Incidents {k}", v) for k, v in summary.incidents_by_severity.items()],
            *[("Safety", f"Incidents in {k}", v) for k, v in summary.incidents_by_month.items()],
            ("Safety", "Near misses", summary.near_misses_total),
            ("Safety", "Observations", summary.observations_total),
            *[("Documents", f"Status {k}", v) for k, v in summary.documents_by_status.items()],
            *[("Documents", f"Type {k}", v) for k, v in summary.documents_by_type.items()],
            ("Training", "Completed", summary.training_completed),
            ("Training", "Pending", summary.training_pending),
            ("Training", "Overdue", summary.training_overdue),
            *[("NCR", f"Status {k}", v) for k, v in summary.ncrs_by_status.items()],
            ("NCR", "Total cost", summary.ncr_total_cost),
            *[("Complaints", f"Stage {k}", v) for k, v in summary.complaints_by_stage.items()],
        ]
        return pd.DataFrame(rows, columns=["Area", "Metric", "Value"])
