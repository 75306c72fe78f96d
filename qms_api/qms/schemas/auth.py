from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field

from qms.db.models.enums import UserRole, UserStatus
from .common import CamelModel, IDModel, Timestamps


class TokenPair(BaseModel):
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AccessCodeRequest(CamelModel):
    code: str = Field(..., min_length=1, description="Super administrator access code")


class SignupRequest(CamelModel):
    """Self-registration; the account stays Pending until an administrator approves it."""
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1)
    department_id: Optional[str] = None
    location_id: Optional[str] = None


class Message(BaseModel):
    message: str


class UserRead(IDModel, Timestamps):
    """User read model (no credentials)."""
    name: str
    username: str
    email: Optional[str] = None
    role: UserRole
    status: UserStatus
    system_role_id: Optional[str] = None
    department_id: Optional[str] = None
    location_id: Optional[str] = None
    manager_id: Optional[str] = None
    joined_date: Optional[date] = None


class UserCreate(CamelModel):
    name: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1, max_length=128)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, description="Initial password; users without one cannot sign in")
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    system_role_id: Optional[str] = None
    department_id: Optional[str] = None
    location_id: Optional[str] = None
    manager_id: Optional[str] = None
    joined_date: Optional[date] = None


class UserUpdate(CamelModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[UserRole] = None
    system_role_id: Optional[str] = None
    department_id: Optional[str] = None
    location_id: Optional[str] = None
    manager_id: Optional[str] = None
    joined_date: Optional[date] = None


class SystemRoleRead(IDModel, Timestamps):
    name: str
    description: Optional[str] = None
    module_access: List[str] = Field(default_factory=list)


class SystemRoleCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    module_access: List[str] = Field(default_factory=list)


class DepartmentRead(IDModel, Timestamps):
    name: str


class DepartmentCreate(CamelModel):
    name: str = Field(..., min_length=1)


class LocationRead(IDModel, Timestamps):
    name: str
    address: Optional[str] = None


class LocationCreate(CamelModel):
    name: str = Field(..., min_length=1)
    address: Optional[str] = None


class OrgChartNode(CamelModel):
    """A person in the reporting tree with their direct reports."""
    user: UserRead
    reports: List[OrgChartNode] = Field(default_factory=list)
