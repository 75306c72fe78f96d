from __future__ import annotations

from typing import List, Optional

from sqlalchemy import JSON, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, IdPkMixin, TimestampMixin
from .enums import QualityRecordStatus

DEFAULT_RETENTION_YEARS = 5


class QualityRecord(IdPkMixin, TimestampMixin, Base):
    """
    Retained evidence such as cleaning logs and maintenance sheets.

    Unlike documents, records are not revised or approved; they stay ACTIVE until archived.
    """
    __tablename__ = "quality_records"

    record_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_uploaded_file: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    creator_id: Mapped[str] = mapped_column(String(64), nullable=False)
    location_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    department_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=QualityRecordStatus.ACTIVE.value, index=True
    )
    retention_years: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_RETENTION_YEARS)
    approver_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    reference_doc_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)


class RecordType(IdPkMixin, TimestampMixin, Base):
    """Record type and its numbering prefix (CLN, MNT...)."""
    __tablename__ = "record_types"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    prefix: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)


class RecordTemplate(IdPkMixin, TimestampMixin, Base):
    __tablename__ = "record_templates"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
