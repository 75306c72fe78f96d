from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, IdPkMixin, TimestampMixin
from .enums import IncidentStatus, TreatmentType


class SafetyIncident(IdPkMixin, TimestampMixin, Base):
    """Recordable injury report."""
    __tablename__ = "safety_incidents"

    report_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    injured_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reported_by_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    incident_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    incident_time: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)
    severity: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    treatment_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default=TreatmentType.FIRST_AID.value
    )
    was_treated_in_er: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    was_hospitalized_overnight: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_privacy_case: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    physician_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    facility_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=IncidentStatus.SUBMITTED.value, index=True
    )


class NearMiss(IdPkMixin, TimestampMixin, Base):
    """Injury free event (IFE) or observation (IFO)."""
    __tablename__ = "near_misses"

    report_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(String(8), nullable=False)
    reported_by_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    event_person_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=IncidentStatus.SUBMITTED.value
    )


class SafetyObservation(IdPkMixin, TimestampMixin, Base):
    """Safety observation with an optional corrective action assigned to a user."""
    __tablename__ = "safety_observations"

    report_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    reported_by_user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    location_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    specific_location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    details: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=IncidentStatus.SUBMITTED.value
    )

    assigned_action_user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    action_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    action_due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    action_taken: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    action_completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
