from __future__ import annotations

from datetime import date
from typing import List, Optional

from sqlalchemy import JSON, Date, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, IdPkMixin, TimestampMixin
from .enums import UserRole, UserStatus


class User(IdPkMixin, TimestampMixin, Base):
    """Plant user. Access is decided by role plus per-module config lists."""
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    username: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    hashed_password: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default=UserRole.USER.value)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=UserStatus.PENDING.value)
    system_role_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    department_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    location_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    manager_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    joined_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE.value

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN.value


class SystemRole(IdPkMixin, TimestampMixin, Base):
    """Job role used for training assignment and module access (e.g. 'Press Operator')."""
    __tablename__ = "system_roles"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    module_access: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)


class Department(IdPkMixin, TimestampMixin, Base):
    __tablename__ = "departments"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)


class Location(IdPkMixin, TimestampMixin, Base):
    """Plant site."""
    __tablename__ = "locations"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
