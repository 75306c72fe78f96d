from __future__ import annotations

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, IdPkMixin, TimestampMixin
from .enums import RecordStatus


class MasterItem(IdPkMixin, TimestampMixin, Base):
    """Item master record (printed item/job number)."""
    __tablename__ = "master_items"

    item_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    manufacturing_site: Mapped[str] = mapped_column(Text, nullable=False, default="")
    customer_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)


class MasterCustomer(IdPkMixin, TimestampMixin, Base):
    """Customer master record."""
    __tablename__ = "master_customers"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phone: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)


class MasterSupplier(IdPkMixin, TimestampMixin, Base):
    """Supplier master record."""
    __tablename__ = "master_suppliers"

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    email: Mapped[str] = mapped_column(Text, nullable=False, default="")
    phone: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(16), nullable=False, default=RecordStatus.ACTIVE.value)
