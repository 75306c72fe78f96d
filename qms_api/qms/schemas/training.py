from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from qms.db.models.enums import TrainingStatus, TrainingType
from .common import CamelModel, IDModel, Timestamps


class TrainingRecordRead(IDModel, Timestamps):
    user_id: str
    type: TrainingType
    reference_id: str
    version: Optional[float] = None
    status: TrainingStatus
    assigned_date: datetime
    completed_date: Optional[datetime] = None
    due_date: Optional[datetime] = None


class TrainingAssignment(CamelModel):
    """One line of a user's training plan, derived from documents and learning resources."""
    type: TrainingType
    reference_id: str
    title: str
    version: Optional[float] = None
    status: TrainingStatus
    due_date: datetime
    completed_date: Optional[datetime] = None
    record_id: Optional[str] = None


class LearningResourceRead(IDModel, Timestamps):
    title: str
    description: str = ""
    url: str
    thumbnail_url: Optional[str] = None
    assigned_role_ids: List[str] = Field(default_factory=list)
    is_self_assignable: bool = False
    duration_minutes: int = 0


class LearningResourceCreate(CamelModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    url: str = Field(..., min_length=1)
    thumbnail_url: Optional[str] = None
    assigned_role_ids: List[str] = Field(default_factory=list)
    is_self_assignable: bool = False
    duration_minutes: int = Field(0, ge=0)
