from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from qms.api.routes.config import add_config_routes
from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.db.models.organization import User
from qms.schemas.auth import Message
from qms.schemas.quality import (
    NCRDisposition,
    NCRGlobalConfig,
    NCROwnerReview,
    NCRRcaAssignment,
    NCRRcaSubmit,
    NCRRead,
)
from qms.services.ncr import NCRService, to_read

router = APIRouter(prefix="/ncr", tags=["NCR"])
add_config_routes(router, "ncr", NCRGlobalConfig)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[NCRRead],
    summary="List nonconformances",
    description="List NCRs ordered by detection time desc, with total cost and RCA status label.",
    dependencies=[Depends(get_current_active_user)],
)
async def list_ncrs(
    session: AsyncSession = Depends(get_db),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    open_only: bool = Query(False, alias="openOnly", description="Exclude CLOSED NCRs"),
    ticket_id: Optional[str] = Query(None, alias="ticketId"),
    limit: int = Query(500, ge=1, le=5000),
    offset: int = Query(0, ge=0),
) -> List[NCRRead]:
    rows = await NCRService(session).list(
        status=status_filter, open_only=open_only, ticket_id=ticket_id, limit=limit, offset=offset
    )
    return [to_read(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/sync",
    response_model=Message,
    summary="Open NCRs for failed inspections",
    description="Create an NCR for every failed inspection record that does not have one.",
    dependencies=[Depends(require_admin)],
)
async def sync_ncrs(session: AsyncSession = Depends(get_db)) -> Message:
    created = await NCRService(session).sync_from_inspections()
    return Message(message=f"{created} NCR(s) created")


# PUBLIC_INTERFACE
@router.get(
    "/{ncr_id}",
    response_model=NCRRead,
    summary="Get NCR",
    dependencies=[Depends(get_current_active_user)],
)
async def get_ncr(ncr_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> NCRRead:
    return to_read(await NCRService(session).get(ncr_id))


# PUBLIC_INTERFACE
@router.post(
    "/{ncr_id}/disposition",
    response_model=NCRRead,
    summary="Disposition NCR",
    description="All disposition fields are mandatory. An incomplete form leaves the NCR OPEN.",
)
async def disposition_ncr(
    payload: NCRDisposition,
    ncr_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> NCRRead:
    return to_read(await NCRService(session).disposition(actor, ncr_id, payload))


# PUBLIC_INTERFACE
@router.put(
    "/{ncr_id}/rca",
    response_model=NCRRead,
    summary="Assign RCA",
    description="NCR owner assigns the root cause analysis and its due date.",
)
async def assign_rca(
    payload: NCRRcaAssignment,
    ncr_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> NCRRead:
    return to_read(await NCRService(session).save_rca_assignment(actor, ncr_id, payload))


# PUBLIC_INTERFACE
@router.post(
    "/{ncr_id}/rca/submit",
    response_model=NCRRead,
    summary="Submit RCA for owner review",
)
async def submit_rca(
    payload: NCRRcaSubmit,
    ncr_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> NCRRead:
    return to_read(await NCRService(session).submit_for_review(actor, ncr_id, payload))


# PUBLIC_INTERFACE
@router.post(
    "/{ncr_id}/review",
    response_model=NCRRead,
    summary="Owner review",
    description="CLOSE the NCR or REJECT the RCA back to the assignee.",
)
async def review_ncr(
    payload: NCROwnerReview,
    ncr_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> NCRRead:
    return to_read(await NCRService(session).owner_review(actor, ncr_id, payload))
