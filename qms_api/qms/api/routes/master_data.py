from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Path, Query, UploadFile, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.schemas.master_data import (
    ImportResult,
    MasterItemCreate,
    MasterItemRead,
    MasterItemUpdate,
    PartyCreate,
    PartyRead,
    PartyUpdate,
)
from qms.services.master_data import MasterDataService, template_csv

router = APIRouter(prefix="/master-data", tags=["Master Data"])

ANY_KIND = "^(items|customers|suppliers)$"
PARTY_KIND = "^(customers|suppliers)$"


# Bulk import

# PUBLIC_INTERFACE
@router.get(
    "/{kind}/template",
    response_class=PlainTextResponse,
    summary="Download CSV import template",
    dependencies=[Depends(get_current_active_user)],
)
async def download_template(kind: str = Path(..., pattern=ANY_KIND)) -> PlainTextResponse:
    headers = {"Content-Disposition": f'attachment; filename="{kind}_template.csv"'}
    return PlainTextResponse(template_csv(kind), media_type="text/csv", headers=headers)


# PUBLIC_INTERFACE
@router.post(
    "/{kind}/import",
    response_model=ImportResult,
    summary="Bulk import from CSV",
    description="Upsert rows from a CSV laid out like the template. Rows without a key are skipped.",
    dependencies=[Depends(require_admin)],
)
async def import_master_csv(
    kind: str = Path(..., pattern=ANY_KIND),
    file: UploadFile = File(...),
    session: AsyncSession = Depends(get_db),
) -> ImportResult:
    raw = await file.read()
    return await MasterDataService(session, kind).import_csv(raw)


# PUBLIC_INTERFACE
@router.post(
    "/{kind}/{record_id}/toggle-status",
    summary="Activate / deactivate record",
    dependencies=[Depends(require_admin)],
)
async def toggle_record_status(
    kind: str = Path(..., pattern=ANY_KIND),
    record_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
):
    record = await MasterDataService(session, kind).toggle_status(record_id)
    if kind == "items":
        return MasterItemRead.model_validate(record)
    return PartyRead.model_validate(record)


# PUBLIC_INTERFACE
@router.delete(
    "/{kind}/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete record",
    dependencies=[Depends(require_admin)],
)
async def delete_record(
    kind: str = Path(..., pattern=ANY_KIND),
    record_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> None:
    await MasterDataService(session, kind).delete(record_id)


# Items

# PUBLIC_INTERFACE
@router.get(
    "/items",
    response_model=List[MasterItemRead],
    summary="List items",
    description="List master items ordered by item number.",
    dependencies=[Depends(get_current_active_user)],
)
async def list_items(
    session: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None, description="Filter by item number or description (substring)"),
    status_filter: Optional[str] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[MasterItemRead]:
    items = await MasterDataService(session, "items").list(
        search=search, status=status_filter, limit=limit, offset=offset
    )
    return [MasterItemRead.model_validate(x) for x in items]


# PUBLIC_INTERFACE
@router.post(
    "/items",
    response_model=MasterItemRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create item",
    dependencies=[Depends(require_admin)],
)
async def create_item(payload: MasterItemCreate, session: AsyncSession = Depends(get_db)) -> MasterItemRead:
    created = await MasterDataService(session, "items").create(payload.model_dump())
    return MasterItemRead.model_validate(created)


# PUBLIC_INTERFACE
@router.get(
    "/items/{record_id}",
    response_model=MasterItemRead,
    summary="Get item",
    dependencies=[Depends(get_current_active_user)],
)
async def get_item(record_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> MasterItemRead:
    return MasterItemRead.model_validate(await MasterDataService(session, "items").get(record_id))


# PUBLIC_INTERFACE
@router.patch(
    "/items/{record_id}",
    response_model=MasterItemRead,
    summary="Update item",
    dependencies=[Depends(require_admin)],
)
async def update_item(
    payload: MasterItemUpdate,
    record_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> MasterItemRead:
    updated = await MasterDataService(session, "items").update(record_id, payload.model_dump(exclude_unset=True))
    return MasterItemRead.model_validate(updated)


# Customers / suppliers

# PUBLIC_INTERFACE
@router.get(
    "/{kind}",
    response_model=List[PartyRead],
    summary="List customers or suppliers",
    dependencies=[Depends(get_current_active_user)],
)
async def list_parties(
    kind: str = Path(..., pattern=PARTY_KIND),
    session: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None, description="Filter by name (substring)"),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[PartyRead]:
    rows = await MasterDataService(session, kind).list(search=search, status=status_filter, limit=limit, offset=offset)
    return [PartyRead.model_validate(x) for x in rows]


# PUBLIC_INTERFACE
@router.post(
    "/{kind}",
    response_model=PartyRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer or supplier",
    dependencies=[Depends(require_admin)],
)
async def create_party(
    payload: PartyCreate,
    kind: str = Path(..., pattern=PARTY_KIND),
    session: AsyncSession = Depends(get_db),
) -> PartyRead:
    return PartyRead.model_validate(await MasterDataService(session, kind).create(payload.model_dump()))


# PUBLIC_INTERFACE
@router.get(
    "/{kind}/{record_id}",
    response_model=PartyRead,
    summary="Get customer or supplier",
    dependencies=[Depends(get_current_active_user)],
)
async def get_party(
    kind: str = Path(..., pattern=PARTY_KIND),
    record_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> PartyRead:
    return PartyRead.model_validate(await MasterDataService(session, kind).get(record_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{kind}/{record_id}",
    response_model=PartyRead,
    summary="Update customer or supplier",
    dependencies=[Depends(require_admin)],
)
async def update_party(
    payload: PartyUpdate,
    kind: str = Path(..., pattern=PARTY_KIND),
    record_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> PartyRead:
    updated = await MasterDataService(session, kind).update(record_id, payload.model_dump(exclude_unset=True))
    return PartyRead.model_validate(updated)
