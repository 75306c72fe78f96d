from __future__ import annotations

import io
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qms.api.routes.config import add_config_routes
from qms.core.deps import get_current_active_user, get_db
from qms.db.models.organization import User
from qms.schemas.quality import (
    QAGlobalConfig,
    QAInspectionRead,
    QAInspectionSubmit,
    QATicketCreate,
    QATicketRead,
)
from qms.services.quality import QualityService

router = APIRouter(prefix="/qa", tags=["Quality"])
add_config_routes(router, "qa", QAGlobalConfig)


# PUBLIC_INTERFACE
@router.get(
    "/tickets",
    response_model=List[QATicketRead],
    summary="List QA job tickets",
    description="List job tickets ordered by created_at desc.",
    dependencies=[Depends(get_current_active_user)],
)
async def list_tickets(
    session: AsyncSession = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    process_type: Optional[str] = Query(None, alias="processType", description="Filter by process type"),
    search: Optional[str] = Query(None, description="Ticket or item number (substring)"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[QATicketRead]:
    rows = await QualityService(session).list_tickets(
        status=status_filter, process_type=process_type, search=search, limit=limit, offset=offset
    )
    return [QATicketRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/tickets",
    response_model=QATicketRead,
    status_code=status.HTTP_201_CREATED,
    summary="Open QA job ticket",
    description="Items missing from the item master are flagged as new item entries.",
)
async def create_ticket(
    payload: QATicketCreate,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> QATicketRead:
    return QATicketRead.model_validate(await QualityService(session).create_ticket(actor, payload))


# PUBLIC_INTERFACE
@router.get(
    "/tickets/{ticket_id}",
    response_model=QATicketRead,
    summary="Get QA job ticket",
    dependencies=[Depends(get_current_active_user)],
)
async def get_ticket(ticket_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> QATicketRead:
    return QATicketRead.model_validate(await QualityService(session).get_ticket(ticket_id))


# PUBLIC_INTERFACE
@router.post(
    "/tickets/{ticket_id}/forms/{form_id}/toggle",
    response_model=QATicketRead,
    summary="Toggle applicable form",
    dependencies=[Depends(get_current_active_user)],
)
async def toggle_ticket_form(
    ticket_id: str = Path(...),
    form_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> QATicketRead:
    return QATicketRead.model_validate(await QualityService(session).toggle_form(ticket_id, form_id))


# PUBLIC_INTERFACE
@router.get(
    "/tickets/{ticket_id}/inspections",
    response_model=List[QAInspectionRead],
    summary="List inspection records",
    dependencies=[Depends(get_current_active_user)],
)
async def list_inspections(
    ticket_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> List[QAInspectionRead]:
    rows = await QualityService(session).list_inspections(ticket_id)
    return [QAInspectionRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/tickets/{ticket_id}/inspections",
    response_model=QAInspectionRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit inspection record",
    description="A failing record locks the ticket and opens an NCR.",
)
async def submit_inspection(
    payload: QAInspectionSubmit,
    ticket_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> QAInspectionRead:
    record = await QualityService(session).submit_inspection(actor, ticket_id, payload)
    return QAInspectionRead.model_validate(record)


# PUBLIC_INTERFACE
@router.post(
    "/tickets/{ticket_id}/release",
    response_model=QATicketRead,
    summary="Release job",
    description="Complete the job once every applicable FINAL form has been recorded.",
    dependencies=[Depends(get_current_active_user)],
)
async def release_job(ticket_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> QATicketRead:
    return QATicketRead.model_validate(await QualityService(session).release_job(ticket_id))


# PUBLIC_INTERFACE
@router.get(
    "/tickets/{ticket_id}/coa",
    summary="Certificate of analysis",
    description="Render the FINAL inspection results as a PDF certificate.",
    response_description="PDF stream",
    dependencies=[Depends(get_current_active_user)],
)
async def download_coa(ticket_id: str = Path(...), session: AsyncSession = Depends(get_db)):
    service = QualityService(session)
    ticket = await service.get_ticket(ticket_id)
    pdf = await service.coa_pdf(ticket.id)
    headers = {"Content-Disposition": f'attachment; filename="COA_{ticket.ticket_number}.pdf"'}
    return StreamingResponse(io.BytesIO(pdf), media_type="application/pdf", headers=headers)
