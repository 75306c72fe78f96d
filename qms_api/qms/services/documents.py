from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    ValidationFailedError,
    WorkflowError,
    require_fields,
)
from qms.db.models.documents import (
    ARCHIVE_FOLDER_ID,
    ROOT_FOLDER_ID,
    DocChangeRequest,
    Document,
    DocumentFolder,
)
from qms.db.models.enums import ChangeRequestStatus, DocStatus
from qms.db.models.organization import User
from qms.repositories.documents import DocumentRepository
from qms.schemas.documents import DocumentSave, FolderCreate, TrainingRequirements
from qms.services.base import BaseService, is_admin, is_super_admin, now_utc
from qms.services.config import ConfigService

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "DOC"
EDITABLE_STATUSES = {
    DocStatus.DRAFT.value,
    DocStatus.REVISION_REQUESTED.value,
    DocStatus.PENDING_APPROVAL.value,
}
SYSTEM_FOLDER_IDS = {ROOT_FOLDER_ID, ARCHIVE_FOLDER_ID}


def next_version(version: float) -> float:
    """Minor revision bump: 1.0 -> 1.1, 1.9 -> 2.0."""
    return round(version + 0.1, 1)


def can_approve(user: User, doc: Document) -> bool:
    """
    A user may sign a document while it is pending approval, when listed as an approver
    (or Super Admin) and not already signed.
    """
    return (
        doc.status == DocStatus.PENDING_APPROVAL.value
        and (user.id in (doc.approver_ids or []) or is_super_admin(user))
        and user.id not in (doc.approved_by_ids or [])
    )


class DocumentService(BaseService):
    """
    Document control: drafting, multi-party approval, superseding, change requests and folders.

    Approval state machine:
      DRAFT / REVISION_REQUESTED --submit--> PENDING_APPROVAL
      PENDING_APPROVAL --last approver signs--> APPROVED (older APPROVED revision -> OBSOLETE, archived)
      PENDING_APPROVAL --approver requests changes--> REVISION_REQUESTED
      APPROVED --change request approved--> new DRAFT revision (version + 0.1)
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = DocumentRepository(session)
        self.config = ConfigService(session)

    async def get(self, doc_id: str) -> Document:
        doc = await self.repo.get(Document, doc_id)
        if not doc:
            raise NotFoundError("Document", doc_id)
        return doc

    async def list(self, **filters) -> List[Document]:
        return await self.repo.list_documents(**filters)

    async def _can_create(self, user: User) -> bool:
        cfg = await self.config.documents()
        return is_super_admin(user) or user.id in cfg.allowed_creators

    async def _next_doc_number(self, doc_type: str) -> str:
        type_config = await self.repo.get_type_by_prefix(doc_type)
        prefix = type_config.prefix if type_config else DEFAULT_PREFIX
        count = await self.repo.count_doc_numbers_with_prefix(prefix) + 1
        number = f"{prefix}-{count:03d}"
        while await self.repo.doc_number_exists(number):
            count += 1
            number = f"{prefix}-{count:03d}"
        return number

    # PUBLIC_INTERFACE
    async def save(self, actor: User, payload: DocumentSave, doc_id: Optional[str] = None) -> Document:
        """
        Create or edit a document, saved as DRAFT or submitted as PENDING_APPROVAL.

        Any save clears previously collected signatures.
        """
        require_fields(payload.model_dump(), {"title": "Title", "type": "Document type"})
        target_status = DocStatus.PENDING_APPROVAL.value if payload.submit else DocStatus.DRAFT.value
        if payload.submit and not payload.approver_ids:
            raise ValidationFailedError("Select at least one approver before submitting.", missing=["Approvers"])

        fields = payload.model_dump(exclude={"submit"})
        if doc_id is None:
            if not await self._can_create(actor):
                raise PermissionDeniedError("You are not allowed to create documents.")
            doc = Document(
                **fields,
                doc_number=await self._next_doc_number(payload.type),
                version=1.0,
                author_id=actor.id,
                is_active=True,
            )
            doc.folder_id = payload.folder_id or ROOT_FOLDER_ID
            await self.repo.add(doc)
        else:
            doc = await self.get(doc_id)
            if doc.status not in EDITABLE_STATUSES:
                raise WorkflowError(f"A {doc.status} document cannot be edited; raise a change request instead.")
            if doc.author_id != actor.id and not await self._can_create(actor):
                raise PermissionDeniedError("Only the author can edit this document.")
            for key, value in fields.items():
                setattr(doc, key, value)
            doc.folder_id = payload.folder_id or doc.folder_id or ROOT_FOLDER_ID

        doc.approved_by_ids = []
        doc.status = target_status
        logger.info("Document %s v%.1f saved as %s by %s", doc.doc_number, doc.version, target_status, actor.id)
        return await self._save(doc)

    # PUBLIC_INTERFACE
    async def approve(self, actor: User, doc_id: str) -> Document:
        """
        Record the actor's signature. When every listed approver has signed the document
        becomes APPROVED and any other APPROVED revision with the same number is made
        OBSOLETE and moved to the archive folder.
        """
        doc = await self.get(doc_id)
        if doc.status != DocStatus.PENDING_APPROVAL.value:
            raise WorkflowError("Only documents pending approval can be approved.")
        if not can_approve(actor, doc):
            if actor.id in (doc.approved_by_ids or []):
                raise WorkflowError("You have already approved this document.")
            raise PermissionDeniedError("You are not an approver for this document.")

        approved_by = list(doc.approved_by_ids or []) + [actor.id]
        doc.approved_by_ids = approved_by
        if all(approver in approved_by for approver in doc.approver_ids or []):
            doc.status = DocStatus.APPROVED.value
            doc.is_redline = False
            for previous in await self.repo.approved_versions(doc.doc_number, exclude_id=doc.id):
                previous.status = DocStatus.OBSOLETE.value
                previous.folder_id = ARCHIVE_FOLDER_ID
                logger.info("Document %s v%.1f superseded and archived", previous.doc_number, previous.version)
            logger.info("Document %s v%.1f approved", doc.doc_number, doc.version)
        else:
            logger.info("Document %s signed by %s (%d/%d)", doc.doc_number, actor.id,
                        len(approved_by), len(doc.approver_ids or []))
        return await self._save(doc)

    # PUBLIC_INTERFACE
    async def request_revision(self, actor: User, doc_id: str) -> Document:
        """An approver sends a pending document back to its author."""
        doc = await self.get(doc_id)
        if doc.status != DocStatus.PENDING_APPROVAL.value:
            raise WorkflowError("Only documents pending approval can be sent back for revision.")
        if actor.id not in (doc.approver_ids or []) and not is_super_admin(actor):
            raise PermissionDeniedError("You are not an approver for this document.")
        doc.status = DocStatus.REVISION_REQUESTED.value
        doc.approved_by_ids = []
        logger.info("Revision requested on %s by %s", doc.doc_number, actor.id)
        return await self._save(doc)

    # PUBLIC_INTERFACE
    async def raise_change_request(self, actor: User, doc_id: str, reason: str) -> DocChangeRequest:
        doc = await self.get(doc_id)
        if doc.status != DocStatus.APPROVED.value:
            raise WorkflowError("Change requests can only be raised against approved documents.")
        cr = DocChangeRequest(
            document_id=doc.id,
            requested_by_user_id=actor.id,
            reason=reason,
            assigned_to_user_id=doc.author_id,
            status=ChangeRequestStatus.PENDING.value,
        )
        await self.repo.add(cr)
        logger.info("Change request raised on %s by %s", doc.doc_number, actor.id)
        return await self._save(cr)

    async def _pending_change_request(self, actor: User, cr_id: str) -> DocChangeRequest:
        cr = await self.repo.get(DocChangeRequest, cr_id)
        if not cr:
            raise NotFoundError("Change request", cr_id)
        if cr.status != ChangeRequestStatus.PENDING.value:
            raise WorkflowError("This change request has already been resolved.")
        cfg = await self.config.documents()
        if actor.id not in cfg.change_request_approvers and not is_super_admin(actor):
            raise PermissionDeniedError("You are not allowed to resolve change requests.")
        return cr

    # PUBLIC_INTERFACE
    async def approve_change_request(self, actor: User, cr_id: str) -> Document:
        """
        Open a new revision: the approved document is cloned under a new id with
        version + 0.1, DRAFT status, no signatures and the redline flag cleared. The approved
        revision stays in force until the new one is approved.
        """
        cr = await self._pending_change_request(actor, cr_id)
        source = await self.get(cr.document_id)
        draft = Document(
            doc_number=source.doc_number,
            title=source.title,
            type=source.type,
            version=next_version(source.version),
            content=source.content,
            is_uploaded_file=source.is_uploaded_file,
            folder_id=source.folder_id,
            is_redline=False,
            author_id=source.author_id,
            approver_ids=list(source.approver_ids or []),
            approved_by_ids=[],
            status=DocStatus.DRAFT.value,
            is_active=True,
            training_required_roles=list(source.training_required_roles or []),
            training_required_sites=list(source.training_required_sites or []),
            reference_doc_ids=list(source.reference_doc_ids or []),
        )
        await self.repo.add(draft)
        await self.repo.flush()
        cr.status = ChangeRequestStatus.APPROVED.value
        cr.resolved_by_user_id = actor.id
        cr.resolved_at = now_utc()
        cr.new_document_id = draft.id
        logger.info("Change request %s approved; %s v%.1f opened", cr.id, draft.doc_number, draft.version)
        return await self._save(draft)

    # PUBLIC_INTERFACE
    async def reject_change_request(self, actor: User, cr_id: str) -> DocChangeRequest:
        cr = await self._pending_change_request(actor, cr_id)
        cr.status = ChangeRequestStatus.REJECTED.value
        cr.resolved_by_user_id = actor.id
        cr.resolved_at = now_utc()
        return await self._save(cr)

    # PUBLIC_INTERFACE
    async def toggle_active(self, actor: User, doc_id: str) -> Document:
        if not is_super_admin(actor):
            raise PermissionDeniedError("Only a Super Admin can activate or deactivate documents.")
        doc = await self.get(doc_id)
        doc.is_active = not doc.is_active
        return await self._save(doc)

    # PUBLIC_INTERFACE
    async def move(self, actor: User, doc_id: str, folder_id: str) -> Document:
        if not await self._can_create(actor):
            raise PermissionDeniedError("You are not allowed to organise documents.")
        doc = await self.get(doc_id)
        if not await self.repo.get(DocumentFolder, folder_id):
            raise NotFoundError("Folder", folder_id)
        doc.folder_id = folder_id
        return await self._save(doc)

    # PUBLIC_INTERFACE
    async def set_training_requirements(self, actor: User, doc_id: str, payload: TrainingRequirements) -> Document:
        if not is_admin(actor):
            raise PermissionDeniedError("Administrator access required.")
        doc = await self.get(doc_id)
        doc.training_required_roles = list(payload.training_required_roles)
        doc.training_required_sites = list(payload.training_required_sites)
        return await self._save(doc)

    async def reference_documents(self, doc: Document) -> List[Document]:
        return await self.repo.documents_by_ids(list(doc.reference_doc_ids or []))

    # Folders

    # PUBLIC_INTERFACE
    async def create_folder(self, actor: User, payload: FolderCreate) -> DocumentFolder:
        if not await self._can_create(actor):
            raise PermissionDeniedError("You are not allowed to create folders.")
        folder = DocumentFolder(name=payload.name, parent_id=payload.parent_id or ROOT_FOLDER_ID)
        await self.repo.add(folder)
        return await self._save(folder)

    # PUBLIC_INTERFACE
    async def delete_folder(self, actor: User, folder_id: str) -> None:
        """Delete a user folder; its documents fall back to the root folder."""
        if not await self._can_create(actor):
            raise PermissionDeniedError("You are not allowed to delete folders.")
        folder = await self.repo.get(DocumentFolder, folder_id)
        if not folder:
            raise NotFoundError("Folder", folder_id)
        if folder.is_system or folder.id in SYSTEM_FOLDER_IDS:
            raise WorkflowError("System folders cannot be deleted.")
        await self.repo.move_folder_contents(folder.id, ROOT_FOLDER_ID)
        await self.repo.delete(folder)
        await self.repo.commit()
