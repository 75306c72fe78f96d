from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, IdPkMixin, TimestampMixin, utcnow
from .enums import NCRStatus, QATicketStatus


class QATicket(IdPkMixin, TimestampMixin, Base):
    """Job ticket under QA inspection."""
    __tablename__ = "qa_tickets"

    ticket_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    item_number: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    customer_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    process_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_by_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=QATicketStatus.OPEN.value, index=True)
    is_new_item_entry: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    applicable_form_ids: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)


class QAInspectionRecord(IdPkMixin, TimestampMixin, Base):
    """Filled inspection form for one ticket and stage; values are keyed by field id."""
    __tablename__ = "qa_inspections"

    ticket_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    form_id: Mapped[str] = mapped_column(String(64), nullable=False)
    inspector_id: Mapped[str] = mapped_column(String(64), nullable=False)
    stage: Mapped[str] = mapped_column(String(16), nullable=False)
    values: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_ncr_triggered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class NCRRecord(IdPkMixin, TimestampMixin, Base):
    """Non-conformance raised from a failed inspection."""
    __tablename__ = "ncr_records"

    ticket_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    inspection_type: Mapped[str] = mapped_column(Text, nullable=False)
    inspection_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    inspector_id: Mapped[str] = mapped_column(String(64), nullable=False)
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=NCRStatus.OPEN.value, index=True)

    # disposition
    disposition_action: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    justification: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    defective_quantity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price_per_thousand: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ncr_owner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sub_category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dispositioned_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    dispositioned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # root cause analysis
    root_cause: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    corrective_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assigned_to_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    rca_due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    submitted_for_review_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # closure
    resolved_by_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def total_cost(self) -> Optional[float]:
        if self.defective_quantity is None or self.price_per_thousand is None:
            return None
        return self.defective_quantity * self.price_per_thousand
