from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.db.models.organization import User
from qms.schemas.auth import UserCreate, UserRead, UserUpdate
from qms.services.users import UserService

router = APIRouter(prefix="/users", tags=["Users"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[UserRead],
    summary="List users",
    description=(
        "List the users the caller may manage: Super Admin sees everyone, Admin everyone but "
        "Super Admins, Manager only direct reports."
    ),
)
async def list_users(
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> List[UserRead]:
    users = await UserService(session).list_visible(actor)
    return [UserRead.model_validate(u) for u in users]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user. Only a Super Admin may create another Super Admin.",
)
async def create_user(
    payload: UserCreate,
    actor: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> UserRead:
    user = await UserService(session).create(actor, payload)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.get(
    "/{user_id}",
    response_model=UserRead,
    summary="Get user",
    dependencies=[Depends(get_current_active_user)],
)
async def get_user(
    user_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> UserRead:
    return UserRead.model_validate(await UserService(session).get(user_id))


# PUBLIC_INTERFACE
@router.patch(
    "/{user_id}",
    response_model=UserRead,
    summary="Update user",
)
async def update_user(
    payload: UserUpdate,
    user_id: str = Path(...),
    actor: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> UserRead:
    user = await UserService(session).update(actor, user_id, payload)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.post(
    "/{user_id}/approve",
    response_model=UserRead,
    summary="Approve pending user",
    description="Pending -> Active.",
)
async def approve_user(
    user_id: str = Path(...),
    actor: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> UserRead:
    return UserRead.model_validate(await UserService(session).approve(actor, user_id))


# PUBLIC_INTERFACE
@router.post(
    "/{user_id}/toggle-status",
    response_model=UserRead,
    summary="Activate / deactivate user",
    description="Active <-> Inactive.",
)
async def toggle_user_status(
    user_id: str = Path(...),
    actor: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> UserRead:
    return UserRead.model_validate(await UserService(session).toggle_status(actor, user_id))


# PUBLIC_INTERFACE
@router.post(
    "/{user_id}/obsolete",
    response_model=UserRead,
    summary="Mark user obsolete",
    description="Retire an Inactive account.",
)
async def mark_user_obsolete(
    user_id: str = Path(...),
    actor: User = Depends(require_admin),
    session: AsyncSession = Depends(get_db),
) -> UserRead:
    return UserRead.model_validate(await UserService(session).mark_obsolete(actor, user_id))
