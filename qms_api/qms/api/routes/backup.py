from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_db, require_admin
from qms.db.models.organization import User
from qms.schemas.backup import RestoreResult
from qms.services.backup import BackupService, render_csv

router = APIRouter(prefix="/backup", tags=["Backup"])


# PUBLIC_INTERFACE
@router.get(
    "/export",
    summary="Export backup",
    description=(
        "Export the selected modules (SAFETY, DOCUMENTS, TRAINING, QA, NCR, COMPLAINTS, USERS) as a JSON "
        "backup or a sectioned CSV report. Records are filtered on their primary date; the end day is inclusive."
    ),
    response_description="File stream (JSON/CSV)",
)
async def export_backup(
    actor: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
    modules: Optional[List[str]] = Query(None, description="Modules to include; all when omitted"),
    start: Optional[date] = Query(None, description="Earliest record date (inclusive)"),
    end: Optional[date] = Query(None, description="Latest record date (inclusive)"),
    format: str = Query("json", pattern="^(json|csv)$", description="Export format: json | csv"),
) -> Response:
    backup = await BackupService(session).export(actor, modules, start, end)
    stamp = date.today().isoformat()
    if format == "csv":
        headers = {"Content-Disposition": f'attachment; filename="qms_report_{stamp}.csv"'}
        return Response(render_csv(backup), media_type="text/csv", headers=headers)
    headers = {"Content-Disposition": f'attachment; filename="qms_backup_{stamp}.json"'}
    return Response(backup.model_dump_json(by_alias=True), media_type="application/json", headers=headers)


# PUBLIC_INTERFACE
@router.post(
    "/restore",
    response_model=RestoreResult,
    summary="Restore backup",
    description=(
        "Replace each table present in a JSON backup with its records inside the optional date range. "
        "Send the backup as a multipart `file` upload or as an `application/json` request body. "
        "Restored users keep their current passwords."
    ),
    dependencies=[Depends(require_admin)],
)
async def restore_backup(
    request: Request,
    file: Optional[UploadFile] = File(None, description="JSON backup produced by /backup/export"),
    session: AsyncSession = Depends(get_db),
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
) -> RestoreResult:
    if file is not None:
        raw = await file.read()
    elif request.headers.get("content-type", "").startswith("application/json"):
        raw = await request.body()
    else:
        raise HTTPException(status_code=422, detail="Upload a backup file or send the backup as a JSON body")
    return await BackupService(session).restore(raw, start, end)
