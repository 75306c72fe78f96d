from __future__ import annotations

import io
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qms.api.routes.config import add_config_routes
from qms.core.deps import get_current_active_user, get_db
from qms.db.models.organization import User
from qms.schemas.complaints import (
    ComplaintContainment,
    ComplaintCreate,
    ComplaintDetails,
    ComplaintGlobalConfig,
    ComplaintRca,
    ComplaintRead,
)
from qms.services.complaints import ComplaintService

router = APIRouter(prefix="/complaints", tags=["Complaints"], dependencies=[Depends(get_current_active_user)])
add_config_routes(router, "complaints", ComplaintGlobalConfig)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ComplaintRead],
    summary="List customer complaints",
)
async def list_complaints(
    session: AsyncSession = Depends(get_db),
    stage: Optional[str] = Query(None, description="Filter by stage"),
    ticket_id: Optional[str] = Query(None, alias="ticketId"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ComplaintRead]:
    rows = await ComplaintService(session).list(stage=stage, ticket_id=ticket_id, limit=limit, offset=offset)
    return [ComplaintRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ComplaintRead,
    status_code=status.HTTP_201_CREATED,
    summary="Log complaint against a job ticket",
)
async def create_complaint(
    payload: ComplaintCreate,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> ComplaintRead:
    return ComplaintRead.model_validate(await ComplaintService(session).create_from_ticket(actor, payload.ticket_id))


# PUBLIC_INTERFACE
@router.get("/{complaint_id}", response_model=ComplaintRead, summary="Get complaint")
async def get_complaint(complaint_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> ComplaintRead:
    return ComplaintRead.model_validate(await ComplaintService(session).get(complaint_id))


# PUBLIC_INTERFACE
@router.post(
    "/{complaint_id}/details",
    response_model=ComplaintRead,
    summary="Submit complaint details",
    description="DETAILS -> CONTAINMENT. Total cost is defective quantity times price per unit.",
)
async def submit_details(
    payload: ComplaintDetails,
    complaint_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> ComplaintRead:
    return ComplaintRead.model_validate(await ComplaintService(session).submit_details(complaint_id, payload))


# PUBLIC_INTERFACE
@router.post(
    "/{complaint_id}/containment",
    response_model=ComplaintRead,
    summary="Submit containment",
    description="CONTAINMENT -> RCA. Return actions require a configured return address.",
)
async def submit_containment(
    payload: ComplaintContainment,
    complaint_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> ComplaintRead:
    return ComplaintRead.model_validate(await ComplaintService(session).submit_containment(complaint_id, payload))


# PUBLIC_INTERFACE
@router.post(
    "/{complaint_id}/rca",
    response_model=ComplaintRead,
    summary="Submit root cause analysis",
    description="RCA -> CLOSED.",
)
async def submit_rca(
    payload: ComplaintRca,
    complaint_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> ComplaintRead:
    return ComplaintRead.model_validate(await ComplaintService(session).submit_rca(complaint_id, payload))


# PUBLIC_INTERFACE
@router.post(
    "/{complaint_id}/reopen",
    response_model=ComplaintRead,
    summary="Reopen complaint",
    description="CLOSED -> DETAILS as the next revision.",
)
async def reopen_complaint(complaint_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> ComplaintRead:
    return ComplaintRead.model_validate(await ComplaintService(session).reopen(complaint_id))


# PUBLIC_INTERFACE
@router.get(
    "/{complaint_id}/notice",
    summary="Customer notice PDF",
    response_description="PDF stream",
)
async def download_notice(complaint_id: str = Path(...), session: AsyncSession = Depends(get_db)):
    pdf = await ComplaintService(session).notice_pdf(complaint_id)
    headers = {"Content-Disposition": f'attachment; filename="complaint_{complaint_id}.pdf"'}
    return StreamingResponse(io.BytesIO(pdf), media_type="application/pdf", headers=headers)
