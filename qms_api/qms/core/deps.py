from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.logging import user_id_var
from qms.core.security import ACCESS_TOKEN, decode_token
from qms.db.models.enums import UserRole, UserStatus
from qms.db.models.organization import User
from qms.db.session import get_async_session
from qms.repositories.security import SecurityRepository

logger = logging.getLogger(__name__)

# OAuth2 bearer (used by docs); login endpoint path referenced here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

ADMIN_ROLES = (UserRole.SUPER_ADMIN.value, UserRole.ADMIN.value)


# PUBLIC_INTERFACE
async def get_db(session: AsyncSession = Depends(get_async_session)) -> AsyncSession:
    """
    Return the request-scoped AsyncSession.

    Routes depend on this rather than on get_async_session directly so tests can
    override a single dependency.
    """
    return session


# PUBLIC_INTERFACE
async def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_db),
) -> User:
    """Resolve and return the current user from the Authorization bearer token."""
    try:
        claims = decode_token(token, ACCESS_TOKEN)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(str(claims["sub"]))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    user_id_var.set(user.id)
    return user


# PUBLIC_INTERFACE
async def get_current_active_user(user: User = Depends(get_current_user)) -> User:
    """Ensure user is active."""
    if user.status != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """
    Create a dependency that requires the current user to hold one of the given roles
    (Super Admin, Admin, Manager, User). Returns the user.
    """

    async def _dep(user: User = Depends(get_current_active_user)) -> User:
        if user.role not in required:
            logger.warning("User %s with role %s denied; requires one of %s", user.id, user.role, required)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _dep


# PUBLIC_INTERFACE
require_admin = require_roles(*ADMIN_ROLES)
