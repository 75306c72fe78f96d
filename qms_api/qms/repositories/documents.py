from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select, update

from qms.db.models.documents import DocChangeRequest, Document, DocumentFolder, DocumentType
from .base import BaseRepository


class DocumentRepository(BaseRepository):
    """Repository for documents, folders, types and change requests."""

    async def list_documents(
        self,
        *,
        folder_id: Optional[str] = None,
        status: Optional[str] = None,
        doc_type: Optional[str] = None,
        search: Optional[str] = None,
        active_only: bool = False,
        limit: int = 200,
        offset: int = 0,
    ) -> List[Document]:
        stmt = select(Document)
        if folder_id:
            stmt = stmt.where(Document.folder_id == folder_id)
        if status:
            stmt = stmt.where(Document.status == status)
        if doc_type:
            stmt = stmt.where(Document.type == doc_type)
        if search:
            like = f"%{search.lower()}%"
            stmt = stmt.where(
                func.lower(Document.title).like(like) | func.lower(Document.doc_number).like(like)
            )
        if active_only:
            stmt = stmt.where(Document.is_active.is_(True))
        stmt = stmt.order_by(Document.doc_number, Document.version.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def count_doc_numbers_with_prefix(self, prefix: str) -> int:
        """Count revisions whose number starts with the prefix (numbering follows revision count)."""
        stmt = select(func.count()).select_from(Document).where(Document.doc_number.like(f"{prefix}%"))
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def doc_number_exists(self, doc_number: str) -> bool:
        stmt = select(Document.id).where(Document.doc_number == doc_number).limit(1)
        return (await self.scalar_one_or_none(stmt)) is not None

    async def approved_versions(self, doc_number: str, *, exclude_id: str) -> List[Document]:
        stmt = select(Document).where(
            Document.doc_number == doc_number,
            Document.status == "APPROVED",
            Document.id != exclude_id,
        )
        return list(await self.scalars(stmt))

    async def documents_by_ids(self, doc_ids: List[str]) -> List[Document]:
        if not doc_ids:
            return []
        stmt = select(Document).where(Document.id.in_(doc_ids))
        return list(await self.scalars(stmt))

    async def move_folder_contents(self, from_folder_id: str, to_folder_id: str) -> None:
        await self.execute(
            update(Document).where(Document.folder_id == from_folder_id).values(folder_id=to_folder_id)
        )

    # Types / folders
    async def get_type_by_prefix(self, prefix: str) -> Optional[DocumentType]:
        stmt = select(DocumentType).where(DocumentType.prefix == prefix)
        return await self.scalar_one_or_none(stmt)

    async def list_folders(self) -> List[DocumentFolder]:
        return await self.list_all(DocumentFolder, DocumentFolder.is_system.desc(), DocumentFolder.name)

    # Change requests
    async def list_change_requests(
        self, *, document_id: Optional[str] = None, status: Optional[str] = None
    ) -> List[DocChangeRequest]:
        stmt = select(DocChangeRequest)
        if document_id:
            stmt = stmt.where(DocChangeRequest.document_id == document_id)
        if status:
            stmt = stmt.where(DocChangeRequest.status == status)
        stmt = stmt.order_by(DocChangeRequest.created_at.desc())
        return list(await self.scalars(stmt))
