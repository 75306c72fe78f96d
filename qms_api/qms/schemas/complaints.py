from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from qms.db.models.enums import ComplaintStage, ContainmentAction
from .common import CamelModel, IDModel, Timestamps
from .quality import NCRCategory


class ComplaintRead(IDModel, Timestamps):
    ticket_id: Optional[str] = None
    customer_id: str
    logged_by_user_id: str
    stage: ComplaintStage
    revision: int = 1

    owner_id: Optional[str] = None
    invoice_number: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    issue_description: Optional[str] = None
    defective_quantity: Optional[float] = None
    price_per_unit: Optional[float] = None
    total_cost: Optional[float] = None

    containment_action: Optional[ContainmentAction] = None
    selected_return_address_id: Optional[str] = None
    is_material_returned: Optional[bool] = None
    is_rework_possible: Optional[bool] = None
    rework_ticket_number: Optional[str] = None
    is_material_discarded: Optional[bool] = None
    is_evidence_submitted: Optional[bool] = None

    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    due_date: Optional[date] = None

    closed_at: Optional[datetime] = None


class ComplaintCreate(CamelModel):
    ticket_id: str = Field(..., min_length=1, description="QA ticket the complaint is raised against")


class ComplaintDetails(CamelModel):
    owner_id: Optional[str] = None
    invoice_number: Optional[str] = None
    category: Optional[str] = None
    sub_category: Optional[str] = None
    issue_description: Optional[str] = None
    defective_quantity: Optional[float] = Field(None, ge=0)
    price_per_unit: Optional[float] = Field(None, ge=0)


class ComplaintContainment(CamelModel):
    containment_action: Optional[ContainmentAction] = None
    selected_return_address_id: Optional[str] = None
    is_material_returned: Optional[bool] = None
    is_rework_possible: Optional[bool] = None
    rework_ticket_number: Optional[str] = None
    is_material_discarded: Optional[bool] = None
    is_evidence_submitted: Optional[bool] = None


class ComplaintRca(CamelModel):
    root_cause: Optional[str] = None
    corrective_action: Optional[str] = None
    assigned_to_user_id: Optional[str] = None
    due_date: Optional[date] = None


class ReturnAddress(CamelModel):
    id: str
    label: str
    address: str


class ComplaintGlobalConfig(CamelModel):
    company_logo_url: Optional[str] = None
    return_addresses: List[ReturnAddress] = Field(default_factory=list)
    categories: List[NCRCategory] = Field(default_factory=list)
