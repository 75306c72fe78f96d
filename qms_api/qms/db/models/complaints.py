from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, IdPkMixin, TimestampMixin
from .enums import ComplaintStage


class CustomerComplaint(IdPkMixin, TimestampMixin, Base):
    """Customer complaint moving through details, containment and RCA stages."""
    __tablename__ = "customer_complaints"

    ticket_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    customer_id: Mapped[str] = mapped_column(Text, nullable=False)
    logged_by_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    stage: Mapped[str] = mapped_column(String(16), nullable=False, default=ComplaintStage.DETAILS.value, index=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # details
    owner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    invoice_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sub_category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issue_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    defective_quantity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    price_per_unit: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # containment
    containment_action: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    selected_return_address_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_material_returned: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_rework_possible: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    rework_ticket_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_material_discarded: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    is_evidence_submitted: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # root cause analysis
    root_cause: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    corrective_action: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    assigned_to_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
