from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from qms.db.models.enums import ChangeRequestStatus, DocStatus
from .common import CamelModel, IDModel, Timestamps


class DocumentRead(IDModel, Timestamps):
    doc_number: str
    title: str
    type: str
    version: float
    content: str = ""
    is_uploaded_file: bool = False
    folder_id: Optional[str] = None
    is_redline: bool = False
    author_id: str
    approver_ids: List[str] = Field(default_factory=list)
    approved_by_ids: List[str] = Field(default_factory=list)
    status: DocStatus
    is_active: bool = True
    training_required_roles: List[str] = Field(default_factory=list)
    training_required_sites: List[str] = Field(default_factory=list)
    reference_doc_ids: List[str] = Field(default_factory=list)


class DocumentSave(CamelModel):
    """
    Create/edit payload. `submit` sends the document for approval instead of saving a draft.
    Title and type are validated by the service so the error lists both.
    """
    title: Optional[str] = None
    type: Optional[str] = None
    content: str = ""
    is_uploaded_file: bool = False
    folder_id: Optional[str] = None
    is_redline: bool = False
    approver_ids: List[str] = Field(default_factory=list)
    training_required_roles: List[str] = Field(default_factory=list)
    training_required_sites: List[str] = Field(default_factory=list)
    reference_doc_ids: List[str] = Field(default_factory=list)
    submit: bool = Field(False, description="Save as PENDING_APPROVAL instead of DRAFT")


class DocumentMove(CamelModel):
    folder_id: str = Field(..., min_length=1)


class TrainingRequirements(CamelModel):
    training_required_roles: List[str] = Field(default_factory=list)
    training_required_sites: List[str] = Field(default_factory=list)


class RevisionRequest(CamelModel):
    comment: Optional[str] = None


class ChangeRequestRead(IDModel, Timestamps):
    document_id: str
    requested_by_user_id: str
    reason: str
    assigned_to_user_id: Optional[str] = None
    status: ChangeRequestStatus
    resolved_by_user_id: Optional[str] = None
    resolved_at: Optional[datetime] = None
    new_document_id: Optional[str] = None


class ChangeRequestCreate(CamelModel):
    reason: str = Field(..., min_length=1)


class DocumentTypeRead(IDModel, Timestamps):
    name: str
    prefix: str


class DocumentTypeCreate(CamelModel):
    name: str = Field(..., min_length=1)
    prefix: str = Field(..., min_length=1, max_length=16)


class FolderRead(IDModel, Timestamps):
    name: str
    parent_id: Optional[str] = None
    is_system: bool = False


class FolderCreate(CamelModel):
    name: str = Field(..., min_length=1)
    parent_id: Optional[str] = None


class TemplateRead(IDModel, Timestamps):
    name: str
    content: str = ""
    type: str = "TEXT"
    file_name: Optional[str] = None


class TemplateCreate(CamelModel):
    name: str = Field(..., min_length=1)
    content: str = ""
    type: str = Field("TEXT", pattern="^(TEXT|FILE)$")
    file_name: Optional[str] = None


class DocumentGlobalConfig(CamelModel):
    """Users allowed to create documents/folders and to approve change requests."""
    allowed_creators: List[str] = Field(default_factory=list)
    change_request_approvers: List[str] = Field(default_factory=list)
