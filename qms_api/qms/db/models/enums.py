"""
Enumerations shared by ORM models, schemas and services.

Values are stored as plain strings so rows exported by the web client round-trip
unchanged.
"""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    MANAGER = "Manager"
    USER = "User"


class UserStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    OBSOLETE = "Obsolete"


class IncidentStatus(str, Enum):
    SUBMITTED = "SUBMITTED"
    ACTION_PENDING_REVIEW = "ACTION_PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"


class TreatmentType(str, Enum):
    FIRST_AID = "FIRST_AID"
    MEDICAL_TREATMENT = "MEDICAL_TREATMENT"
    ER = "ER"
    HOSPITALIZATION = "HOSPITALIZATION"


class NearMissType(str, Enum):
    IFE = "IFE"  # injury free event (unsafe condition)
    IFO = "IFO"  # injury free observation (unsafe act)


class DocStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    REVISION_REQUESTED = "REVISION_REQUESTED"
    OBSOLETE = "OBSOLETE"


class ChangeRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TrainingType(str, Enum):
    DOCUMENT = "DOCUMENT"
    VIDEO = "VIDEO"


class TrainingStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"


class RecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ProcessType(str, Enum):
    FLEXO = "FLEXO"
    CARTON = "CARTON"


class QATicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    LOCKED_NCR = "LOCKED_NCR"
    COMPLETED = "COMPLETED"


class QAInspectionStage(str, Enum):
    MAKE_READY = "MAKE_READY"
    IN_PROCESS = "IN_PROCESS"
    FINAL = "FINAL"


class QAFieldType(str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    PASS_FAIL_NA = "PASS_FAIL_NA"
    DROPDOWN = "DROPDOWN"
    BUTTON_GROUP = "BUTTON_GROUP"
    TEXTAREA = "TEXTAREA"


class NCRStatus(str, Enum):
    OPEN = "OPEN"
    PENDING_RCA = "PENDING_RCA"
    PENDING_REVIEW = "PENDING_REVIEW"
    CLOSED = "CLOSED"


class NCRAction(str, Enum):
    RELEASE = "RELEASE"
    DISCARD = "DISCARD"
    REWORK = "REWORK"


class ComplaintStage(str, Enum):
    DETAILS = "DETAILS"
    CONTAINMENT = "CONTAINMENT"
    RCA = "RCA"
    CLOSED = "CLOSED"


class ContainmentAction(str, Enum):
    RETURN_FOR_CREDIT = "RETURN_FOR_CREDIT"
    RETURN_FOR_REPLACEMENT = "RETURN_FOR_REPLACEMENT"
    SORT_AT_CUSTOMER = "SORT_AT_CUSTOMER"
    REWORK_AT_CUSTOMER = "REWORK_AT_CUSTOMER"
    DISCARD_AT_CUSTOMER = "DISCARD_AT_CUSTOMER"
    NA = "NA"


class QualityRecordStatus(str, Enum):
    ACTIVE = "ACTIVE"
    ARCHIVED = "ARCHIVED"
