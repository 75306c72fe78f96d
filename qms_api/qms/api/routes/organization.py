from __future__ import annotations

import io
from typing import List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.core.settings import get_app_settings
from qms.db.models.organization import Department, Location, SystemRole
from qms.repositories.security import SecurityRepository
from qms.schemas.auth import (
    DepartmentCreate,
    DepartmentRead,
    LocationCreate,
    LocationRead,
    OrgChartNode,
    SystemRoleCreate,
    SystemRoleRead,
)
from qms.services.pdf import render_org_chart_pdf
from qms.services.users import UserService, build_org_tree

router = APIRouter(prefix="/org", tags=["Organization"])


async def _get_or_404(repo: SecurityRepository, model: Type, entity_id: str, label: str):
    entity = await repo.get(model, entity_id)
    if not entity:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return entity


async def _upsert(repo: SecurityRepository, entity, payload) -> None:
    for key, value in payload.model_dump().items():
        setattr(entity, key, value)
    await repo.add(entity)
    await repo.commit()
    await repo.refresh(entity)


# System roles

# PUBLIC_INTERFACE
@router.get(
    "/roles",
    response_model=List[SystemRoleRead],
    summary="List system roles",
    dependencies=[Depends(get_current_active_user)],
)
async def list_roles(session: AsyncSession = Depends(get_db)) -> List[SystemRoleRead]:
    repo = SecurityRepository(session)
    return [SystemRoleRead.model_validate(r) for r in await repo.list_system_roles()]


# PUBLIC_INTERFACE
@router.post(
    "/roles",
    response_model=SystemRoleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create system role",
    dependencies=[Depends(require_admin)],
)
async def create_role(payload: SystemRoleCreate, session: AsyncSession = Depends(get_db)) -> SystemRoleRead:
    repo = SecurityRepository(session)
    if any(r.name == payload.name for r in await repo.list_system_roles()):
        raise HTTPException(status_code=400, detail="Role already exists")
    role = SystemRole()
    await _upsert(repo, role, payload)
    return SystemRoleRead.model_validate(role)


# PUBLIC_INTERFACE
@router.put(
    "/roles/{role_id}",
    response_model=SystemRoleRead,
    summary="Update system role",
    dependencies=[Depends(require_admin)],
)
async def update_role(
    payload: SystemRoleCreate, role_id: str = Path(...), session: AsyncSession = Depends(get_db)
) -> SystemRoleRead:
    repo = SecurityRepository(session)
    role = await _get_or_404(repo, SystemRole, role_id, "Role")
    await _upsert(repo, role, payload)
    return SystemRoleRead.model_validate(role)


# PUBLIC_INTERFACE
@router.delete(
    "/roles/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete system role",
    dependencies=[Depends(require_admin)],
)
async def delete_role(role_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> None:
    repo = SecurityRepository(session)
    await repo.delete(await _get_or_404(repo, SystemRole, role_id, "Role"))
    await repo.commit()


# Departments

# PUBLIC_INTERFACE
@router.get(
    "/departments",
    response_model=List[DepartmentRead],
    summary="List departments",
    dependencies=[Depends(get_current_active_user)],
)
async def list_departments(session: AsyncSession = Depends(get_db)) -> List[DepartmentRead]:
    repo = SecurityRepository(session)
    return [DepartmentRead.model_validate(d) for d in await repo.list_departments()]


# PUBLIC_INTERFACE
@router.post(
    "/departments",
    response_model=DepartmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create department",
    dependencies=[Depends(require_admin)],
)
async def create_department(payload: DepartmentCreate, session: AsyncSession = Depends(get_db)) -> DepartmentRead:
    repo = SecurityRepository(session)
    department = Department()
    await _upsert(repo, department, payload)
    return DepartmentRead.model_validate(department)


# PUBLIC_INTERFACE
@router.delete(
    "/departments/{department_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete department",
    dependencies=[Depends(require_admin)],
)
async def delete_department(department_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> None:
    repo = SecurityRepository(session)
    await repo.delete(await _get_or_404(repo, Department, department_id, "Department"))
    await repo.commit()


# Locations

# PUBLIC_INTERFACE
@router.get(
    "/locations",
    response_model=List[LocationRead],
    summary="List locations",
)
async def list_locations(session: AsyncSession = Depends(get_db)) -> List[LocationRead]:
    """Public: the signup form needs the site list before the user has an account."""
    repo = SecurityRepository(session)
    return [LocationRead.model_validate(x) for x in await repo.list_locations()]


# PUBLIC_INTERFACE
@router.post(
    "/locations",
    response_model=LocationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create location",
    dependencies=[Depends(require_admin)],
)
async def create_location(payload: LocationCreate, session: AsyncSession = Depends(get_db)) -> LocationRead:
    repo = SecurityRepository(session)
    location = Location()
    await _upsert(repo, location, payload)
    return LocationRead.model_validate(location)


# PUBLIC_INTERFACE
@router.put(
    "/locations/{location_id}",
    response_model=LocationRead,
    summary="Update location",
    dependencies=[Depends(require_admin)],
)
async def update_location(
    payload: LocationCreate, location_id: str = Path(...), session: AsyncSession = Depends(get_db)
) -> LocationRead:
    repo = SecurityRepository(session)
    location = await _get_or_404(repo, Location, location_id, "Location")
    await _upsert(repo, location, payload)
    return LocationRead.model_validate(location)


# PUBLIC_INTERFACE
@router.delete(
    "/locations/{location_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete location",
    dependencies=[Depends(require_admin)],
)
async def delete_location(location_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> None:
    repo = SecurityRepository(session)
    await repo.delete(await _get_or_404(repo, Location, location_id, "Location"))
    await repo.commit()


# Org chart

def _site(location_id: Optional[str]) -> Optional[str]:
    return None if not location_id or location_id.upper() == "ALL" else location_id


# PUBLIC_INTERFACE
@router.get(
    "/chart",
    response_model=List[OrgChartNode],
    summary="Org chart",
    description="Reporting trees built from each user's manager. `locationId=ALL` or no value shows every site.",
    dependencies=[Depends(get_current_active_user)],
)
async def org_chart(
    session: AsyncSession = Depends(get_db),
    location_id: Optional[str] = Query(None, alias="locationId"),
) -> List[OrgChartNode]:
    people = await UserService(session).org_chart_members(_site(location_id))
    return build_org_tree(people)


# PUBLIC_INTERFACE
@router.get(
    "/chart/pdf",
    summary="Org chart PDF",
    response_description="PDF stream",
    dependencies=[Depends(get_current_active_user)],
)
async def org_chart_pdf(
    session: AsyncSession = Depends(get_db),
    location_id: Optional[str] = Query(None, alias="locationId"),
):
    people = await UserService(session).org_chart_members(_site(location_id))
    pdf = render_org_chart_pdf(people, get_app_settings().COMPANY_NAME)
    headers = {"Content-Disposition": 'attachment; filename="OrgChart.pdf"'}
    return StreamingResponse(io.BytesIO(pdf), media_type="application/pdf", headers=headers)
