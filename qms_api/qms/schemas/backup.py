from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field

from .common import CamelModel


class BackupRange(CamelModel):
    start: Optional[date] = None
    end: Optional[date] = None


class BackupMeta(CamelModel):
    version: str = "1.0"
    exported_by: str
    date: str = Field(..., description="ISO-8601 export timestamp")
    range: BackupRange


class BackupFile(CamelModel):
    """Backup document: `{meta, data}` with one array per exported module."""
    meta: BackupMeta
    data: Dict[str, List[Dict[str, Any]]] = Field(default_factory=dict)


class RestoreResult(CamelModel):
    restored: Dict[str, int] = Field(default_factory=dict)
    total: int = 0
    message: str = ""
