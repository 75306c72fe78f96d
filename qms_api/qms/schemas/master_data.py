from __future__ import annotations

from typing import Optional

from pydantic import Field

from qms.db.models.enums import RecordStatus
from .common import CamelModel, IDModel, Timestamps


class MasterItemRead(IDModel, Timestamps):
    """Item master read model."""
    item_number: str
    description: str = ""
    manufacturing_site: str = ""
    customer_name: str = ""
    status: RecordStatus


class MasterItemCreate(CamelModel):
    item_number: str = Field(..., min_length=1)
    description: str = ""
    manufacturing_site: str = ""
    customer_name: str = ""
    status: RecordStatus = RecordStatus.ACTIVE


class MasterItemUpdate(CamelModel):
    item_number: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    manufacturing_site: Optional[str] = None
    customer_name: Optional[str] = None
    status: Optional[RecordStatus] = None


class PartyRead(IDModel, Timestamps):
    """Customer or supplier read model."""
    name: str
    email: str = ""
    phone: str = ""
    status: RecordStatus


class PartyCreate(CamelModel):
    name: str = Field(..., min_length=1)
    email: str = ""
    phone: str = ""
    status: RecordStatus = RecordStatus.ACTIVE


class PartyUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[RecordStatus] = None


class ImportResult(CamelModel):
    """Outcome of a CSV bulk import."""
    created: int = 0
    updated: int = 0
    skipped: int = 0
