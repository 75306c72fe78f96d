from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from qms.db.models.enums import (
    NCRAction,
    NCRStatus,
    ProcessType,
    QAFieldType,
    QAInspectionStage,
    QATicketStatus,
)
from .common import CamelModel, IDModel, Timestamps


# QA configuration

class QAFieldConfig(CamelModel):
    id: str = Field(..., min_length=1)
    label: str
    type: QAFieldType
    is_mandatory: bool = False
    options: List[str] = Field(default_factory=list, description="Choices for DROPDOWN / BUTTON_GROUP")
    fail_options: List[str] = Field(default_factory=list, description="Choices that raise an NCR")
    help_text: Optional[str] = None


class QAFormConfig(CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    process_type: ProcessType
    fields: List[QAFieldConfig] = Field(default_factory=list)
    applicable_stages: List[QAInspectionStage] = Field(default_factory=list)


class QAGlobalConfig(CamelModel):
    company_logo_url: Optional[str] = None
    forms: List[QAFormConfig] = Field(default_factory=list)
    inspection_guide: Optional[str] = None


# Tickets and inspections

class QATicketRead(IDModel, Timestamps):
    """QA job ticket read model."""
    ticket_number: str
    item_number: str
    description: str = ""
    customer_name: str = ""
    process_type: ProcessType
    created_by_id: str
    status: QATicketStatus
    is_new_item_entry: bool = False
    applicable_form_ids: List[str] = Field(default_factory=list)


class QATicketCreate(CamelModel):
    ticket_number: Optional[str] = None
    item_number: Optional[str] = None
    description: str = ""
    customer_name: str = ""
    process_type: Optional[ProcessType] = None
    applicable_form_ids: Optional[List[str]] = Field(
        None, description="Defaults to every configured form for the process type"
    )


class QAInspectionRead(IDModel, Timestamps):
    """Inspection record read model."""
    ticket_id: str
    form_id: str
    inspector_id: str
    stage: QAInspectionStage
    values: Dict[str, Any] = Field(default_factory=dict)
    is_ncr_triggered: bool = False


class QAInspectionSubmit(CamelModel):
    form_id: str = Field(..., min_length=1)
    stage: QAInspectionStage
    values: Dict[str, Any] = Field(default_factory=dict)


# NCR

class NCRCategory(CamelModel):
    id: str
    name: str
    sub_categories: List[str] = Field(default_factory=list)


class NCRGlobalConfig(CamelModel):
    owner_user_ids: List[str] = Field(default_factory=list)
    rca_completer_user_ids: List[str] = Field(default_factory=list)
    categories: List[NCRCategory] = Field(default_factory=list)


class NCRRead(IDModel, Timestamps):
    """Nonconformance read model, including derived cost and RCA label."""
    ticket_id: Optional[str] = None
    inspection_type: str
    inspection_id: Optional[str] = None
    inspector_id: str
    detected_at: datetime
    status: NCRStatus

    disposition_action: Optional[NCRAction] = None
    justification: Optional[str] = None
    defective_quantity: Optional[float] = None
    price_per_thousand: Optional[float] = None
    ncr_owner_id: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    dispositioned_by: Optional[str] = None
    dispositioned_at: Optional[datetime] = None

    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    rca_due_date: Optional[date] = None
    submitted_for_review_at: Optional[datetime] = None

    resolved_by_user_id: Optional[str] = None
    closed_at: Optional[datetime] = None

    total_cost: Optional[float] = None
    rca_status_label: Optional[str] = None


NCR_DERIVED_FIELDS = {"total_cost", "rca_status_label"}


class NCRDisposition(CamelModel):
    """Disposition form. Completeness is checked by the service so the NCR stays OPEN on failure."""
    disposition_action: Optional[NCRAction] = None
    justification: Optional[str] = None
    defective_quantity: Optional[float] = Field(None, ge=0)
    price_per_thousand: Optional[float] = Field(None, ge=0)
    ncr_owner_id: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None


class NCRRcaAssignment(CamelModel):
    assigned_to_user_id: Optional[str] = None
    rca_due_date: Optional[date] = None
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None


class NCRRcaSubmit(CamelModel):
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None


class NCROwnerReview(CamelModel):
    decision: Literal["CLOSE", "REJECT"]
    comment: Optional[str] = None
