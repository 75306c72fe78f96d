from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_current_active_user, get_db, require_admin
from qms.db.models.organization import User
from qms.schemas.training import (
    LearningResourceCreate,
    LearningResourceRead,
    TrainingAssignment,
    TrainingRecordRead,
)
from qms.services.training import TrainingService

router = APIRouter(prefix="/training", tags=["Training"])


# PUBLIC_INTERFACE
@router.get(
    "/my",
    response_model=List[TrainingAssignment],
    summary="My training plan",
    description="Documents and videos the caller must be trained on, ordered by due date.",
)
async def my_training(
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> List[TrainingAssignment]:
    return await TrainingService(session).my_assignments(user)


# PUBLIC_INTERFACE
@router.get(
    "/records",
    response_model=List[TrainingRecordRead],
    summary="List training records",
    description="Admins may list any user's records; everyone else sees only their own.",
)
async def list_training_records(
    user_id: Optional[str] = Query(None, alias="userId"),
    actor: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> List[TrainingRecordRead]:
    records = await TrainingService(session).list_records(actor, user_id)
    return [TrainingRecordRead.model_validate(r) for r in records]


# PUBLIC_INTERFACE
@router.post(
    "/documents/{doc_id}/sign-off",
    response_model=TrainingRecordRead,
    summary="Sign off document training",
)
async def sign_off_document(
    doc_id: str = Path(...),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> TrainingRecordRead:
    return TrainingRecordRead.model_validate(await TrainingService(session).sign_off_document(user, doc_id))


# PUBLIC_INTERFACE
@router.post(
    "/resources/{resource_id}/complete",
    response_model=TrainingRecordRead,
    summary="Mark video training complete",
)
async def complete_video(
    resource_id: str = Path(...),
    user: User = Depends(get_current_active_user),
    session: AsyncSession = Depends(get_db),
) -> TrainingRecordRead:
    return TrainingRecordRead.model_validate(await TrainingService(session).complete_video(user, resource_id))


# Learning resources

# PUBLIC_INTERFACE
@router.get(
    "/resources",
    response_model=List[LearningResourceRead],
    summary="List learning resources",
    dependencies=[Depends(get_current_active_user)],
)
async def list_resources(session: AsyncSession = Depends(get_db)) -> List[LearningResourceRead]:
    return [LearningResourceRead.model_validate(r) for r in await TrainingService(session).list_resources()]


# PUBLIC_INTERFACE
@router.post(
    "/resources",
    response_model=LearningResourceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create learning resource",
    dependencies=[Depends(require_admin)],
)
async def create_resource(
    payload: LearningResourceCreate,
    session: AsyncSession = Depends(get_db),
) -> LearningResourceRead:
    return LearningResourceRead.model_validate(await TrainingService(session).create_resource(payload))


# PUBLIC_INTERFACE
@router.put(
    "/resources/{resource_id}",
    response_model=LearningResourceRead,
    summary="Update learning resource",
    dependencies=[Depends(require_admin)],
)
async def update_resource(
    payload: LearningResourceCreate,
    resource_id: str = Path(...),
    session: AsyncSession = Depends(get_db),
) -> LearningResourceRead:
    return LearningResourceRead.model_validate(await TrainingService(session).update_resource(resource_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/resources/{resource_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete learning resource",
    dependencies=[Depends(require_admin)],
)
async def delete_resource(resource_id: str = Path(...), session: AsyncSession = Depends(get_db)) -> None:
    await TrainingService(session).delete_resource(resource_id)
