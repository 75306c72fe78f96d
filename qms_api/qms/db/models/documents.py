from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, IdPkMixin, TimestampMixin
from .enums import ChangeRequestStatus, DocStatus

ROOT_FOLDER_ID = "root"
ARCHIVE_FOLDER_ID = "archive"


class Document(IdPkMixin, TimestampMixin, Base):
    """
    Controlled document revision.

    Each revision is its own row; revisions of one document share doc_number and
    differ by version.
    """
    __tablename__ = "documents"

    doc_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    version: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_uploaded_file: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    folder_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, default=ROOT_FOLDER_ID)
    is_redline: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    approver_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    approved_by_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=DocStatus.DRAFT.value, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    training_required_roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    training_required_sites: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    reference_doc_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)


class DocumentType(IdPkMixin, TimestampMixin, Base):
    """Document type and the numbering prefix it contributes (SOP, POL, WI, FRM...)."""
    __tablename__ = "document_types"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    prefix: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)


class DocumentFolder(IdPkMixin, TimestampMixin, Base):
    __tablename__ = "document_folders"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class DocChangeRequest(IdPkMixin, TimestampMixin, Base):
    """Request to revise an approved document."""
    __tablename__ = "doc_change_requests"

    document_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    requested_by_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    assigned_to_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=ChangeRequestStatus.PENDING.value
    )
    resolved_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    new_document_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)


class DocTemplate(IdPkMixin, TimestampMixin, Base):
    __tablename__ = "doc_templates"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    type: Mapped[str] = mapped_column(String(8), nullable=False, default="TEXT")
    file_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
