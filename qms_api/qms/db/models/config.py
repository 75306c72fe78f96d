from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from qms.db.base import Base, TimestampMixin


class ModuleConfig(TimestampMixin, Base):
    """
    Singleton configuration document per module (safety, documents, qa, ncr, complaints).

    The JSON payload is validated by the matching *GlobalConfig schema on read and write.
    """
    __tablename__ = "module_configs"

    key: Mapped[str] = mapped_column(String(32), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
