from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qms.api.routes.config import add_config_routes
from qms.core.deps import get_current_active_user, get_db
from qms.db.models.organization import User
from qms.db.models.safety import NearMiss, SafetyIncident, SafetyObservation
from qms.schemas.safety import (
    NearMissCreate,
    NearMissRead,
    ObservationActionAssign,
    ObservationActionSubmit,
    SafetyGlobalConfig,
    SafetyIncidentCreate,
    SafetyIncidentRead,
    SafetyObservationCreate,
    SafetyObservationRead,
    SafetyStatusChange,
)
from qms.services.safety import SafetyService

router = APIRouter(prefix="/safety", tags=["Safety"])
add_config_routes(router, "safety", SafetyGlobalConfig)


# Incidents

# PUBLIC_INTERFACE
@router.get(
    "/incidents",
    response_model=List[SafetyIncidentRead],
    summary="List safety incidents",
    dependencies=[Depends(get_current_active_user)],
)
async def list_incidents(
    session: AsyncSession = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    location_id: Optional[str] = Query(None, alias="locationId", description="Filter by location"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[SafetyIncidentRead]:
    rows = await SafetyService(session).list_reports(
        SafetyIncident, status=status_filter, location_id=location_id, limit=limit, offset=offset
    )
    return [SafetyIncidentRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/incidents",
    response_model=SafetyIncidentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Report injury incident",
    description="File an injury report for another person. Self-filing is refused.",
)
async def report_incident(
    payload: SafetyIncidentCreate,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> SafetyIncidentRead:
    incident = await SafetyService(session).report_incident(actor, payload)
    return SafetyIncidentRead.model_validate(incident)


# PUBLIC_INTERFACE
@router.get(
    "/incidents/{incident_id}",
    response_model=SafetyIncidentRead,
    summary="Get safety incident",
    dependencies=[Depends(get_current_active_user)],
)
async def get_incident(incident_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> SafetyIncidentRead:
    return SafetyIncidentRead.model_validate(await SafetyService(session).get_report(SafetyIncident, incident_id))


# PUBLIC_INTERFACE
@router.post(
    "/incidents/{incident_id}/status",
    response_model=SafetyIncidentRead,
    summary="Change incident status",
    description="Safety approvers and Super Admins only.",
)
async def change_incident_status(
    payload: SafetyStatusChange,
    incident_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> SafetyIncidentRead:
    row = await SafetyService(session).change_status(actor, SafetyIncident, incident_id, payload.status)
    return SafetyIncidentRead.model_validate(row)


# Near misses

# PUBLIC_INTERFACE
@router.get(
    "/near-misses",
    response_model=List[NearMissRead],
    summary="List near misses",
    dependencies=[Depends(get_current_active_user)],
)
async def list_near_misses(
    session: AsyncSession = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status"),
    location_id: Optional[str] = Query(None, alias="locationId"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[NearMissRead]:
    rows = await SafetyService(session).list_reports(
        NearMiss, status=status_filter, location_id=location_id, limit=limit, offset=offset
    )
    return [NearMissRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/near-misses",
    response_model=NearMissRead,
    status_code=status.HTTP_201_CREATED,
    summary="Report near miss",
)
async def report_near_miss(
    payload: NearMissCreate,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> NearMissRead:
    return NearMissRead.model_validate(await SafetyService(session).report_near_miss(actor, payload))


# PUBLIC_INTERFACE
@router.post(
    "/near-misses/{near_miss_id}/status",
    response_model=NearMissRead,
    summary="Change near miss status",
)
async def change_near_miss_status(
    payload: SafetyStatusChange,
    near_miss_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> NearMissRead:
    row = await SafetyService(session).change_status(actor, NearMiss, near_miss_id, payload.status)
    return NearMissRead.model_validate(row)


# Observations

# PUBLIC_INTERFACE
@router.get(
    "/observations",
    response_model=List[SafetyObservationRead],
    summary="List safety observations",
    dependencies=[Depends(get_current_active_user)],
)
async def list_observations(
    session: AsyncSession = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status"),
    location_id: Optional[str] = Query(None, alias="locationId"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[SafetyObservationRead]:
    rows = await SafetyService(session).list_reports(
        SafetyObservation, status=status_filter, location_id=location_id, limit=limit, offset=offset
    )
    return [SafetyObservationRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/observations",
    response_model=SafetyObservationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Report safety observation",
)
async def report_observation(
    payload: SafetyObservationCreate,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> SafetyObservationRead:
    return SafetyObservationRead.model_validate(await SafetyService(session).report_observation(actor, payload))


# PUBLIC_INTERFACE
@router.post(
    "/observations/{observation_id}/status",
    response_model=SafetyObservationRead,
    summary="Change observation status",
)
async def change_observation_status(
    payload: SafetyStatusChange,
    observation_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> SafetyObservationRead:
    row = await SafetyService(session).change_status(actor, SafetyObservation, observation_id, payload.status)
    return SafetyObservationRead.model_validate(row)


# PUBLIC_INTERFACE
@router.post(
    "/observations/{observation_id}/action",
    response_model=SafetyObservationRead,
    summary="Assign observation action",
    description="Assign a corrective action to a user; due 30 days from today.",
)
async def assign_observation_action(
    payload: ObservationActionAssign,
    observation_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> SafetyObservationRead:
    row = await SafetyService(session).assign_observation_action(actor, observation_id, payload)
    return SafetyObservationRead.model_validate(row)


# PUBLIC_INTERFACE
@router.post(
    "/observations/{observation_id}/action/complete",
    response_model=SafetyObservationRead,
    summary="Submit completed observation action",
)
async def submit_observation_action(
    payload: ObservationActionSubmit,
    observation_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> SafetyObservationRead:
    row = await SafetyService(session).submit_observation_action(actor, observation_id, payload)
    return SafetyObservationRead.model_validate(row)
