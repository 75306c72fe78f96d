from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select

from qms.db.models.enums import UserRole
from qms.db.models.organization import Department, Location, SystemRole, User
from .base import BaseRepository


class SecurityRepository(BaseRepository):
    """Repository for users and the organization reference tables."""

    # Users
    async def get_user_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(User.username == username)
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        return await self.get(User, user_id)

    async def list_users(
        self,
        *,
        exclude_roles: Optional[List[str]] = None,
        manager_id: Optional[str] = None,
        status: Optional[str] = None,
        location_id: Optional[str] = None,
        exclude_statuses: Optional[List[str]] = None,
        limit: int = 1000,
        offset: int = 0,
    ) -> List[User]:
        stmt = select(User)
        if exclude_roles:
            stmt = stmt.where(User.role.not_in(exclude_roles))
        if manager_id:
            stmt = stmt.where(User.manager_id == manager_id)
        if status:
            stmt = stmt.where(User.status == status)
        if location_id:
            stmt = stmt.where(User.location_id == location_id)
        if exclude_statuses:
            stmt = stmt.where(User.status.not_in(exclude_statuses))
        stmt = stmt.order_by(User.name).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def first_super_admin(self) -> Optional[User]:
        stmt = (
            select(User)
            .where(User.role == UserRole.SUPER_ADMIN.value)
            .order_by(User.created_at)
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)

    async def users_by_ids(self, user_ids: List[str]) -> List[User]:
        if not user_ids:
            return []
        stmt = select(User).where(User.id.in_(user_ids))
        return list(await self.scalars(stmt))

    # System roles / departments / locations
    async def list_system_roles(self) -> List[SystemRole]:
        return await self.list_all(SystemRole, SystemRole.name)

    async def list_departments(self) -> List[Department]:
        return await self.list_all(Department, Department.name)

    async def list_locations(self) -> List[Location]:
        return await self.list_all(Location, Location.name)
