"""
Database seeding utilities for plant reference data.

Seeds:
- Sites (Main Plant - Frankston, Warehouse B, Distribution Center) and departments
- System roles with their module access
- The 'admin' super administrator account
- Document types and the system folders (root, archive) plus two starter folders
- Quality record types (cleaning and maintenance logs)
- Default configuration for the safety, QA, NCR, complaint and records modules

Every step is idempotent: rows are looked up by id and only created when missing,
and module configs are only written when none is stored yet.

Usage:
  python -m qms.db.run_migrations upgrade head
  python -m qms.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Dict, List, Tuple, Type

from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.security import get_password_hash
from qms.core.settings import get_app_settings
from qms.db.base import Base
from qms.db.models import (
    Department,
    DocumentFolder,
    DocumentType,
    Location,
    ModuleConfig,
    RecordType,
    SystemRole,
    User,
)
from qms.db.models.documents import ARCHIVE_FOLDER_ID, ROOT_FOLDER_ID
from qms.db.models.enums import UserRole, UserStatus
from qms.db.session import session_scope

logger = logging.getLogger(__name__)

ADMIN_USER_ID = "100"

LOCATIONS: List[Tuple[str, str]] = [
    ("1", "Main Plant - Frankston"),
    ("2", "Warehouse B"),
    ("3", "Distribution Center"),
]

DEPARTMENTS: List[Tuple[str, str]] = [
    ("1", "Quality Assurance"),
    ("2", "Production"),
    ("3", "Safety / EHS"),
    ("4", "Management"),
    ("5", "Warehouse"),
]

SYSTEM_ROLES: List[Tuple[str, str, List[str]]] = [
    ("R1", "Quality Manager", ["DASHBOARD", "DOCUMENTS", "TRAINING"]),
    ("R2", "Production Supervisor", ["DASHBOARD", "SAFETY", "TRAINING"]),
    ("R3", "Safety Officer", ["DASHBOARD", "SAFETY", "TRAINING", "DOCUMENTS"]),
    ("R4", "Operator", ["DASHBOARD", "SAFETY", "TRAINING"]),
]

DOCUMENT_TYPES: List[Tuple[str, str, str]] = [
    ("dt-1", "Standard Operating Procedure", "SOP"),
    ("dt-2", "Policy", "POL"),
    ("dt-3", "Work Instruction", "WI"),
    ("dt-4", "Form", "FRM"),
]

FOLDERS: List[Tuple[str, str, str | None, bool]] = [
    (ROOT_FOLDER_ID, "General Docs", None, True),
    (ARCHIVE_FOLDER_ID, "Archive", ROOT_FOLDER_ID, True),
    ("sop", "Standard Operating Procedures", ROOT_FOLDER_ID, False),
    ("policies", "Company Policies", ROOT_FOLDER_ID, False),
]

RECORD_TYPES: List[Tuple[str, str, str]] = [
    ("rt-1", "Cleaning Log", "CLN"),
    ("rt-2", "Maintenance Log", "MNT"),
]

SAFETY_GUIDE = (
    "Welcome to the Safety Module.\n\n"
    "1. Report Incidents: Use this form for any injury or medical event.\n"
    "2. Near Misses: Log events that could have caused harm but didn't.\n"
    "3. Observations: Note unsafe behaviors or conditions to improve safety culture.\n\n"
    "For critical emergencies, call 911 immediately before logging in the system."
)


def _pass_fail_field(field_id: str, label: str) -> Dict[str, Any]:
    return {
        "id": field_id,
        "label": label,
        "type": "PASS_FAIL_NA",
        "isMandatory": True,
        "options": [],
        "failOptions": ["FAIL"],
    }


MODULE_CONFIGS: Dict[str, Dict[str, Any]] = {
    "safety": {
        "safetyApprovers": [ADMIN_USER_ID],
        "safetyGuide": SAFETY_GUIDE,
    },
    "documents": {
        "allowedCreators": [ADMIN_USER_ID],
        "changeRequestApprovers": [ADMIN_USER_ID],
    },
    "qa": {
        "forms": [
            {
                "id": "frm-1",
                "name": "Carton Glue Line Inspection",
                "processType": "CARTON",
                "applicableStages": ["MAKE_READY", "IN_PROCESS", "FINAL"],
                "fields": [
                    _pass_fail_field("f1", "Glue Adhesion Test"),
                    _pass_fail_field("f2", "Barcode Scan"),
                    _pass_fail_field("f3", "Visual Appearance"),
                ],
            }
        ],
        "inspectionGuide": "Ensure all safety guards are in place before starting inspection.",
    },
    "ncr": {
        "ownerUserIds": [ADMIN_USER_ID],
        "rcaCompleterUserIds": [ADMIN_USER_ID],
        "categories": [
            {"id": "cat-1", "name": "Material Defect", "subCategories": ["Paper Quality", "Ink Issue"]},
            {"id": "cat-2", "name": "Process Error", "subCategories": ["Wrong Setup", "Operator Error"]},
        ],
    },
    "complaints": {
        "returnAddresses": [
            {"id": "addr-1", "label": "Main Warehouse", "address": "123 Packaging Way, Frankston, TX 75763"},
        ],
        "categories": [
            {"id": "ccat-1", "name": "Product Quality", "subCategories": ["Damaged", "Wrong Print"]},
            {"id": "ccat-2", "name": "Logistics", "subCategories": ["Late Delivery", "Short Shipment"]},
        ],
    },
    "records": {
        "allowedCreators": [ADMIN_USER_ID],
        "templateManagers": [ADMIN_USER_ID],
    },
}


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the database with plant reference data.

    This function:
      - Seeds sites, departments and system roles
      - Creates the super administrator account when missing
      - Seeds document types and folders
      - Seeds quality record types
      - Stores default module configs that are not configured yet
    """
    async with session_scope() as session:
        await _seed_organization(session)
        await _seed_admin(session)
        await _seed_documents(session)
        await _seed_records(session)
        await _seed_module_configs(session)


async def _ensure(session: AsyncSession, model: Type[Base], pk: str, **values: Any) -> bool:
    """Insert a row with the given primary key unless it exists. Returns True when created."""
    if await session.get(model, pk) is not None:
        return False
    session.add(model(id=pk, **values))
    return True


async def _seed_organization(session: AsyncSession) -> None:
    created = 0
    for loc_id, name in LOCATIONS:
        created += await _ensure(session, Location, loc_id, name=name)
    for dept_id, name in DEPARTMENTS:
        created += await _ensure(session, Department, dept_id, name=name)
    for role_id, name, modules in SYSTEM_ROLES:
        created += await _ensure(session, SystemRole, role_id, name=name, module_access=list(modules))
    await session.flush()
    logger.info("Seeded %d organization rows", created)


async def _seed_admin(session: AsyncSession) -> None:
    """
    Create the 'admin' super administrator. An existing account keeps its password.
    """
    created = await _ensure(
        session,
        User,
        ADMIN_USER_ID,
        name="Admin User",
        username="admin",
        email=f"admin@{get_app_settings().USER_EMAIL_DOMAIN}",
        hashed_password=get_password_hash(get_app_settings().SEED_ADMIN_PASSWORD),
        role=UserRole.SUPER_ADMIN.value,
        status=UserStatus.ACTIVE.value,
        system_role_id="R1",
        department_id="4",
        location_id="1",
        joined_date=date.today(),
    )
    await session.flush()
    if created:
        logger.info("Created super admin account 'admin'")


async def _seed_documents(session: AsyncSession) -> None:
    for type_id, name, prefix in DOCUMENT_TYPES:
        await _ensure(session, DocumentType, type_id, name=name, prefix=prefix)
    # Parents first so archive/sop/policies always hang off an existing root
    for folder_id, name, parent_id, is_system in FOLDERS:
        await _ensure(session, DocumentFolder, folder_id, name=name, parent_id=parent_id, is_system=is_system)
    await session.flush()


async def _seed_records(session: AsyncSession) -> None:
    for type_id, name, prefix in RECORD_TYPES:
        await _ensure(session, RecordType, type_id, name=name, prefix=prefix)
    await session.flush()


async def _seed_module_configs(session: AsyncSession) -> None:
    for key, data in MODULE_CONFIGS.items():
        if await session.get(ModuleConfig, key) is not None:
            continue
        session.add(ModuleConfig(key=key, data=data))
        logger.info("Stored default %s configuration", key)
    await session.flush()


def main() -> None:
    """
    Entrypoint for running seeding as a script.
    """
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
