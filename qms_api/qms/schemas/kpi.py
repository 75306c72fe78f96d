from __future__ import annotations

from typing import Dict, Optional

from pydantic import Field

from .common import CamelModel


class KpiFilters(CamelModel):
    location_id: Optional[str] = None
    department_id: Optional[str] = None
    user_id: Optional[str] = None


class KpiSummary(CamelModel):
    """Dashboard metrics; each mapping is label -> count unless noted."""
    filters: KpiFilters
    incidents_total: int = 0
    incidents_by_severity: Dict[str, int] = Field(default_factory=dict)
    incidents_by_month: Dict[str, int] = Field(default_factory=dict, description="YYYY-MM -> count")
    near_misses_total: int = 0
    observations_total: int = 0
    documents_by_status: Dict[str, int] = Field(default_factory=dict)
    documents_by_type: Dict[str, int] = Field(default_factory=dict)
    training_completed: int = 0
    training_pending: int = 0
    training_overdue: int = 0
    ncrs_by_status: Dict[str, int] = Field(default_factory=dict)
    ncr_total_cost: float = 0.0
    complaints_by_stage: Dict[str, int] = Field(default_factory=dict)
