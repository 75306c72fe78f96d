from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from qms.db.models.enums import IncidentStatus, NearMissType, TreatmentType
from .common import CamelModel, IDModel, Timestamps


class SafetyIncidentRead(IDModel, Timestamps):
    report_number: str
    injured_user_id: Optional[str] = None
    reported_by_user_id: str
    location_id: str
    incident_date: Optional[date] = None
    incident_time: Optional[str] = None
    severity: int = Field(..., ge=1, le=5)
    treatment_type: TreatmentType
    was_treated_in_er: bool = Field(False, alias="wasTreatedInER")
    was_hospitalized_overnight: bool = False
    is_privacy_case: bool = False
    physician_name: Optional[str] = None
    facility_name: Optional[str] = None
    status: IncidentStatus


class SafetyIncidentCreate(CamelModel):
    """Injury report form. Injured person and location are checked by the service."""
    injured_user_id: Optional[str] = None
    location_id: Optional[str] = None
    incident_date: Optional[date] = None
    incident_time: Optional[str] = None
    severity: int = Field(5, ge=1, le=5, description="1 = fatality ... 5 = internal")
    treatment_type: TreatmentType = TreatmentType.FIRST_AID
    was_treated_in_er: bool = Field(False, alias="wasTreatedInER")
    was_hospitalized_overnight: bool = False
    is_privacy_case: bool = False
    physician_name: Optional[str] = None
    facility_name: Optional[str] = None


class NearMissRead(IDModel, Timestamps):
    report_number: str
    type: NearMissType
    reported_by_user_id: str
    event_person_name: Optional[str] = None
    event_date: Optional[date] = None
    location_id: str
    details: str
    status: IncidentStatus


class NearMissCreate(CamelModel):
    type: NearMissType = NearMissType.IFE
    event_person_name: Optional[str] = None
    event_date: Optional[date] = None
    location_id: Optional[str] = None
    details: Optional[str] = None


class SafetyObservationRead(IDModel, Timestamps):
    report_number: str
    reported_by_user_id: str
    location_id: str
    specific_location: Optional[str] = None
    details: str
    status: IncidentStatus
    assigned_action_user_id: Optional[str] = None
    action_description: Optional[str] = None
    action_due_date: Optional[date] = None
    action_taken: Optional[str] = None
    action_completed_at: Optional[datetime] = None


class SafetyObservationCreate(CamelModel):
    location_id: Optional[str] = None
    specific_location: Optional[str] = None
    details: Optional[str] = None


class ObservationActionAssign(CamelModel):
    assigned_action_user_id: str = Field(..., min_length=1)
    action_description: Optional[str] = None


class ObservationActionSubmit(CamelModel):
    action_taken: Optional[str] = None


class SafetyStatusChange(CamelModel):
    status: IncidentStatus


class SafetyGlobalConfig(CamelModel):
    """Users allowed to approve incidents, near misses and observations, plus guide text."""
    safety_approvers: List[str] = Field(default_factory=list)
    safety_guide: Optional[str] = None
