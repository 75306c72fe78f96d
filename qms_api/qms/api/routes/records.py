from __future__ import annotations

import io
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qms.api.routes.config import add_config_routes
from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.core.settings import get_app_settings
from qms.db.models.organization import User
from qms.db.models.records import RecordTemplate, RecordType
from qms.repositories.records import RecordRepository
from qms.schemas.records import (
    QualityRecordRead,
    QualityRecordSave,
    RecordGlobalConfig,
    RecordTemplateCreate,
    RecordTemplateRead,
    RecordTypeCreate,
    RecordTypeRead,
)
from qms.services.pdf import decode_data_url, render_record_pdf
from qms.services.records import RecordService

router = APIRouter(prefix="/records", tags=["Records"])
add_config_routes(router, "records", RecordGlobalConfig)


# Types and templates are declared before /{record_id} so their paths win.

# PUBLIC_INTERFACE
@router.get(
    "/types",
    response_model=List[RecordTypeRead],
    summary="List record types",
    dependencies=[Depends(get_current_active_user)],
)
async def list_types(session: AsyncSession = Depends(get_db)) -> List[RecordTypeRead]:
    repo = RecordRepository(session)
    return [RecordTypeRead.model_validate(t) for t in await repo.list_all(RecordType, RecordType.prefix)]


# PUBLIC_INTERFACE
@router.post(
    "/types",
    response_model=RecordTypeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create record type",
    dependencies=[Depends(require_admin)],
)
async def create_type(payload: RecordTypeCreate, session: AsyncSession = Depends(get_db)) -> RecordTypeRead:
    repo = RecordRepository(session)
    prefix = payload.prefix.upper()
    if await repo.get_type_by_prefix(prefix):
        raise HTTPException(status_code=400, detail="A record type with this prefix already exists")
    record_type = RecordType(name=payload.name, prefix=prefix)
    await repo.add(record_type)
    await repo.commit()
    await repo.refresh(record_type)
    return RecordTypeRead.model_validate(record_type)


# PUBLIC_INTERFACE
@router.delete(
    "/types/{type_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete record type",
    dependencies=[Depends(require_admin)],
)
async def delete_type(type_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> None:
    repo = RecordRepository(session)
    record_type = await repo.get(RecordType, type_id)
    if not record_type:
        raise HTTPException(status_code=404, detail="Record type not found")
    await repo.delete(record_type)
    await repo.commit()


# PUBLIC_INTERFACE
@router.get(
    "/templates",
    response_model=List[RecordTemplateRead],
    summary="List record templates",
    dependencies=[Depends(get_current_active_user)],
)
async def list_templates(session: AsyncSession = Depends(get_db)) -> List[RecordTemplateRead]:
    repo = RecordRepository(session)
    return [RecordTemplateRead.model_validate(t) for t in await repo.list_all(RecordTemplate, RecordTemplate.name)]


# PUBLIC_INTERFACE
@router.post(
    "/templates",
    response_model=RecordTemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create record template",
    description="Template managers and Super Admins only.",
)
async def create_template(
    payload: RecordTemplateCreate,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> RecordTemplateRead:
    return RecordTemplateRead.model_validate(await RecordService(session).create_template(actor, payload))


# PUBLIC_INTERFACE
@router.put(
    "/templates/{template_id}",
    response_model=RecordTemplateRead,
    summary="Update record template",
)
async def update_template(
    payload: RecordTemplateCreate,
    template_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> RecordTemplateRead:
    template = await RecordService(session).update_template(actor, template_id, payload)
    return RecordTemplateRead.model_validate(template)


# PUBLIC_INTERFACE
@router.delete(
    "/templates/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete record template",
)
async def delete_template(
    template_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> None:
    await RecordService(session).delete_template(actor, template_id)


# Records

# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[QualityRecordRead],
    summary="List quality records",
    dependencies=[Depends(get_current_active_user)],
)
async def list_records(
    session: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None, description="Substring of title or record number"),
    location_id: Optional[str] = Query(None, alias="locationId"),
    department_id: Optional[str] = Query(None, alias="departmentId"),
    creator_id: Optional[str] = Query(None, alias="creatorId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[QualityRecordRead]:
    records = await RecordService(session).list(
        search=search,
        location_id=location_id,
        department_id=department_id,
        creator_id=creator_id,
        status=status_filter,
        limit=limit,
        offset=offset,
    )
    return [QualityRecordRead.model_validate(r) for r in records]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=QualityRecordRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create quality record",
    description="Numbered `{type}-{n:03d}` per record type.",
)
async def create_record(
    payload: QualityRecordSave,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> QualityRecordRead:
    return QualityRecordRead.model_validate(await RecordService(session).save(actor, payload))


# PUBLIC_INTERFACE
@router.get(
    "/{record_id}",
    response_model=QualityRecordRead,
    summary="Get quality record",
    dependencies=[Depends(get_current_active_user)],
)
async def get_record(record_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> QualityRecordRead:
    return QualityRecordRead.model_validate(await RecordService(session).get(record_id))


# PUBLIC_INTERFACE
@router.put(
    "/{record_id}",
    response_model=QualityRecordRead,
    summary="Edit quality record",
    description="Only ACTIVE records can be edited.",
)
async def update_record(
    payload: QualityRecordSave,
    record_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> QualityRecordRead:
    return QualityRecordRead.model_validate(await RecordService(session).save(actor, payload, record_id=record_id))


# PUBLIC_INTERFACE
@router.post(
    "/{record_id}/archive",
    response_model=QualityRecordRead,
    summary="Archive quality record",
)
async def archive_record(
    record_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> QualityRecordRead:
    return QualityRecordRead.model_validate(await RecordService(session).archive(actor, record_id))


# PUBLIC_INTERFACE
@router.get(
    "/{record_id}/download",
    summary="Download quality record",
    description="Uploaded files are returned as stored; typed records are rendered to PDF.",
    response_description="File stream",
    dependencies=[Depends(get_current_active_user)],
)
async def download_record(record_id: str = Path(...), session: AsyncSession = Depends(get_db)):
    record = await RecordService(session).get(record_id)
    filename = f"Record_{record.record_number}"
    if record.is_uploaded_file and record.content.startswith("data:"):
        try:
            media_type, raw = decode_data_url(record.content)
        except ValueError:
            raise HTTPException(status_code=422, detail="Stored file content is not a valid data URL")
        headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
        return StreamingResponse(io.BytesIO(raw), media_type=media_type, headers=headers)

    creator = await RecordRepository(session).get(User, record.creator_id)
    pdf = render_record_pdf(record, creator.name if creator else None, get_app_settings().COMPANY_NAME)
    headers = {"Content-Disposition": f'attachment; filename="{filename}.pdf"'}
    return StreamingResponse(io.BytesIO(pdf), media_type="application/pdf", headers=headers)
