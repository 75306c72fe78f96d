from __future__ import annotations

import io
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qms.api.routes.config import add_config_routes
from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.core.settings import get_app_settings
from qms.db.models.documents import DocChangeRequest, DocTemplate, DocumentType
from qms.db.models.organization import User
from qms.repositories.documents import DocumentRepository
from qms.schemas.documents import (
    ChangeRequestCreate,
    ChangeRequestRead,
    DocumentGlobalConfig,
    DocumentMove,
    DocumentRead,
    DocumentSave,
    DocumentTypeCreate,
    DocumentTypeRead,
    FolderCreate,
    FolderRead,
    RevisionRequest,
    TemplateCreate,
    TemplateRead,
    TrainingRequirements,
)
from qms.services.documents import DocumentService
from qms.services.pdf import decode_data_url, render_document_pdf

router = APIRouter(prefix="/documents", tags=["Documents"])
add_config_routes(router, "documents", DocumentGlobalConfig)


# Folders, types and templates are declared before /{doc_id} so their paths win.

# PUBLIC_INTERFACE
@router.get(
    "/folders",
    response_model=List[FolderRead],
    summary="List folders",
    dependencies=[Depends(get_current_active_user)],
)
async def list_folders(session: AsyncSession = Depends(get_db)) -> List[FolderRead]:
    return [FolderRead.model_validate(f) for f in await DocumentRepository(session).list_folders()]


# PUBLIC_INTERFACE
@router.post(
    "/folders",
    response_model=FolderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create folder",
)
async def create_folder(
    payload: FolderCreate,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> FolderRead:
    return FolderRead.model_validate(await DocumentService(session).create_folder(actor, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/folders/{folder_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete folder",
    description="System folders cannot be deleted; documents inside move to the root folder.",
)
async def delete_folder(
    folder_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> None:
    await DocumentService(session).delete_folder(actor, folder_id)


# PUBLIC_INTERFACE
@router.get(
    "/types",
    response_model=List[DocumentTypeRead],
    summary="List document types",
    dependencies=[Depends(get_current_active_user)],
)
async def list_types(session: AsyncSession = Depends(get_db)) -> List[DocumentTypeRead]:
    repo = DocumentRepository(session)
    return [DocumentTypeRead.model_validate(t) for t in await repo.list_all(DocumentType, DocumentType.prefix)]


# PUBLIC_INTERFACE
@router.post(
    "/types",
    response_model=DocumentTypeRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create document type",
    dependencies=[Depends(require_admin)],
)
async def create_type(payload: DocumentTypeCreate, session: AsyncSession = Depends(get_db)) -> DocumentTypeRead:
    repo = DocumentRepository(session)
    prefix = payload.prefix.upper()
    if await repo.get_type_by_prefix(prefix):
        raise HTTPException(status_code=400, detail="A document type with this prefix already exists")
    doc_type = DocumentType(name=payload.name, prefix=prefix)
    await repo.add(doc_type)
    await repo.commit()
    await repo.refresh(doc_type)
    return DocumentTypeRead.model_validate(doc_type)


# PUBLIC_INTERFACE
@router.delete(
    "/types/{type_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete document type",
    dependencies=[Depends(require_admin)],
)
async def delete_type(type_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> None:
    repo = DocumentRepository(session)
    doc_type = await repo.get(DocumentType, type_id)
    if not doc_type:
        raise HTTPException(status_code=404, detail="Document type not found")
    await repo.delete(doc_type)
    await repo.commit()


# PUBLIC_INTERFACE
@router.get(
    "/templates",
    response_model=List[TemplateRead],
    summary="List document templates",
    dependencies=[Depends(get_current_active_user)],
)
async def list_templates(session: AsyncSession = Depends(get_db)) -> List[TemplateRead]:
    repo = DocumentRepository(session)
    return [TemplateRead.model_validate(t) for t in await repo.list_all(DocTemplate, DocTemplate.name)]


# PUBLIC_INTERFACE
@router.post(
    "/templates",
    response_model=TemplateRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create document template",
    dependencies=[Depends(require_admin)],
)
async def create_template(payload: TemplateCreate, session: AsyncSession = Depends(get_db)) -> TemplateRead:
    repo = DocumentRepository(session)
    template = DocTemplate(**payload.model_dump())
    await repo.add(template)
    await repo.commit()
    await repo.refresh(template)
    return TemplateRead.model_validate(template)


# PUBLIC_INTERFACE
@router.delete(
    "/templates/{template_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete document template",
    dependencies=[Depends(require_admin)],
)
async def delete_template(template_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> None:
    repo = DocumentRepository(session)
    template = await repo.get(DocTemplate, template_id)
    if not template:
        raise HTTPException(status_code=404, detail="Template not found")
    await repo.delete(template)
    await repo.commit()


# PUBLIC_INTERFACE
@router.get(
    "/change-requests",
    response_model=List[ChangeRequestRead],
    summary="List change requests",
    dependencies=[Depends(get_current_active_user)],
)
async def list_change_requests(
    session: AsyncSession = Depends(get_db),
    document_id: Optional[str] = Query(None, alias="documentId"),
    status_filter: Optional[str] = Query(None, alias="status"),
) -> List[ChangeRequestRead]:
    rows = await DocumentRepository(session).list_change_requests(document_id=document_id, status=status_filter)
    return [ChangeRequestRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/change-requests/{cr_id}/approve",
    response_model=DocumentRead,
    summary="Approve change request",
    description="Opens a new DRAFT revision (version + 0.1) of the approved document.",
)
async def approve_change_request(
    cr_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).approve_change_request(actor, cr_id))


# PUBLIC_INTERFACE
@router.post(
    "/change-requests/{cr_id}/reject",
    response_model=ChangeRequestRead,
    summary="Reject change request",
)
async def reject_change_request(
    cr_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> ChangeRequestRead:
    return ChangeRequestRead.model_validate(await DocumentService(session).reject_change_request(actor, cr_id))


# Documents

# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[DocumentRead],
    summary="List documents",
    dependencies=[Depends(get_current_active_user)],
)
async def list_documents(
    session: AsyncSession = Depends(get_db),
    folder_id: Optional[str] = Query(None, alias="folderId"),
    status_filter: Optional[str] = Query(None, alias="status"),
    doc_type: Optional[str] = Query(None, alias="type"),
    search: Optional[str] = Query(None, description="Substring of title or document number"),
    active_only: bool = Query(False, alias="activeOnly"),
    limit: int = Query(200, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[DocumentRead]:
    docs = await DocumentService(session).list(
        folder_id=folder_id,
        status=status_filter,
        doc_type=doc_type,
        search=search,
        active_only=active_only,
        limit=limit,
        offset=offset,
    )
    return [DocumentRead.model_validate(d) for d in docs]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=DocumentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create document",
    description="Create a DRAFT, or submit straight to PENDING_APPROVAL with `submit: true`.",
)
async def create_document(
    payload: DocumentSave,
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).save(actor, payload))


# PUBLIC_INTERFACE
@router.get(
    "/{doc_id}",
    response_model=DocumentRead,
    summary="Get document",
    dependencies=[Depends(get_current_active_user)],
)
async def get_document(doc_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).get(doc_id))


# PUBLIC_INTERFACE
@router.put(
    "/{doc_id}",
    response_model=DocumentRead,
    summary="Edit document",
    description="Edit a DRAFT, REVISION_REQUESTED or PENDING_APPROVAL document. Collected signatures are cleared.",
)
async def update_document(
    payload: DocumentSave,
    doc_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).save(actor, payload, doc_id=doc_id))


# PUBLIC_INTERFACE
@router.post(
    "/{doc_id}/approve",
    response_model=DocumentRead,
    summary="Approve document",
    description="Sign as approver. The last required signature approves the document and archives the previous revision.",
)
async def approve_document(
    doc_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).approve(actor, doc_id))


# PUBLIC_INTERFACE
@router.post(
    "/{doc_id}/request-revision",
    response_model=DocumentRead,
    summary="Request revision",
)
async def request_revision(
    payload: RevisionRequest,
    doc_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).request_revision(actor, doc_id))


# PUBLIC_INTERFACE
@router.post(
    "/{doc_id}/change-requests",
    response_model=ChangeRequestRead,
    status_code=status.HTTP_201_CREATED,
    summary="Raise change request",
)
async def raise_change_request(
    payload: ChangeRequestCreate,
    doc_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> ChangeRequestRead:
    cr: DocChangeRequest = await DocumentService(session).raise_change_request(actor, doc_id, payload.reason)
    return ChangeRequestRead.model_validate(cr)


# PUBLIC_INTERFACE
@router.post(
    "/{doc_id}/toggle-active",
    response_model=DocumentRead,
    summary="Activate / deactivate document",
    description="Super Admin only.",
)
async def toggle_document_active(
    doc_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).toggle_active(actor, doc_id))


# PUBLIC_INTERFACE
@router.post(
    "/{doc_id}/move",
    response_model=DocumentRead,
    summary="Move document to folder",
)
async def move_document(
    payload: DocumentMove,
    doc_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    return DocumentRead.model_validate(await DocumentService(session).move(actor, doc_id, payload.folder_id))


# PUBLIC_INTERFACE
@router.put(
    "/{doc_id}/training",
    response_model=DocumentRead,
    summary="Set training requirements",
)
async def set_training_requirements(
    payload: TrainingRequirements,
    doc_id: str = Path(...),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> DocumentRead:
    doc = await DocumentService(session).set_training_requirements(actor, doc_id, payload)
    return DocumentRead.model_validate(doc)


# PUBLIC_INTERFACE
@router.get(
    "/{doc_id}/download",
    summary="Download document",
    description="Uploaded files are returned as stored; authored documents are rendered to PDF.",
    response_description="File stream",
    dependencies=[Depends(get_current_active_user)],
)
async def download_document(doc_id: str = Path(...), session: AsyncSession = Depends(get_db)):
    service = DocumentService(session)
    doc = await service.get(doc_id)
    filename = f"{doc.doc_number}_v{doc.version:.1f}"
    if doc.is_uploaded_file and doc.content.startswith("data:"):
        try:
            media_type, raw = decode_data_url(doc.content)
        except ValueError:
            raise HTTPException(status_code=422, detail="Stored file content is not a valid data URL")
        headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
        return StreamingResponse(io.BytesIO(raw), media_type=media_type, headers=headers)

    pdf = render_document_pdf(doc, await service.reference_documents(doc), get_app_settings().COMPANY_NAME)
    headers = {"Content-Disposition": f'attachment; filename="{filename}.pdf"'}
    return StreamingResponse(io.BytesIO(pdf), media_type="application/pdf", headers=headers)
