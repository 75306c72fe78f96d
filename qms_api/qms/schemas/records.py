from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from qms.db.models.enums import QualityRecordStatus
from qms.db.models.records import DEFAULT_RETENTION_YEARS
from .common import CamelModel, IDModel, Timestamps


class QualityRecordRead(IDModel, Timestamps):
    record_number: str
    title: str
    type: str
    content: str = ""
    is_uploaded_file: bool = False
    creator_id: str
    location_id: Optional[str] = None
    department_id: Optional[str] = None
    status: QualityRecordStatus
    retention_years: int = DEFAULT_RETENTION_YEARS
    approver_ids: List[str] = Field(default_factory=list)
    reference_doc_ids: List[str] = Field(default_factory=list)


class QualityRecordSave(CamelModel):
    """
    Create/edit payload. `type` is a record type prefix; when omitted the first configured
    type is used. Location and department default to the creator's.
    """
    title: Optional[str] = None
    type: Optional[str] = None
    content: str = ""
    is_uploaded_file: bool = False
    location_id: Optional[str] = None
    department_id: Optional[str] = None
    retention_years: int = Field(DEFAULT_RETENTION_YEARS, ge=1)
    approver_ids: List[str] = Field(default_factory=list)
    reference_doc_ids: List[str] = Field(default_factory=list)


class RecordTypeRead(IDModel, Timestamps):
    name: str
    prefix: str


class RecordTypeCreate(CamelModel):
    name: str = Field(..., min_length=1)
    prefix: str = Field(..., min_length=1, max_length=16)


class RecordTemplateRead(IDModel, Timestamps):
    name: str
    content: str = ""


class RecordTemplateCreate(CamelModel):
    name: str = Field(..., min_length=1)
    content: str = ""


class RecordGlobalConfig(CamelModel):
    """Users allowed to create records and to manage record templates."""
    allowed_creators: List[str] = Field(default_factory=list)
    template_managers: List[str] = Field(default_factory=list)
