from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from qms.db.models.enums import UserRole


class BaseService:
    """
    Base class for services. Holds a session for use across multiple repositories.

    Services should keep business logic and orchestration, delegating data access
    to repositories. A service method validates everything before mutating rows so
    that a rejected transition leaves the record untouched.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _save(self, entity: Any) -> Any:
        """Commit the unit of work and reload the entity's column state."""
        await self.session.commit()
        await self.session.refresh(entity)
        return entity


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_super_admin(user: Any) -> bool:
    return getattr(user, "role", None) == UserRole.SUPER_ADMIN.value


def is_admin(user: Any) -> bool:
    return getattr(user, "role", None) in (UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value)
