from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from qms.core.deps import get_current_active_user, get_db
from qms.core.security import REFRESH_TOKEN, create_access_token, create_refresh_token, decode_token
from qms.db.models.enums import UserStatus
from qms.db.models.organization import User
from qms.repositories.security import SecurityRepository
from qms.schemas.auth import (
    AccessCodeRequest,
    Message,
    RefreshRequest,
    SignupRequest,
    TokenPair,
    UserRead,
)
from qms.services.users import UserService

router = APIRouter(prefix="/auth", tags=["Auth"])


def _issue_tokens(user: User) -> TokenPair:
    access = create_access_token(subject=user.id, role=user.role)
    refresh = create_refresh_token(subject=user.id)
    return TokenPair(access_token=access, refresh_token=refresh)


# PUBLIC_INTERFACE
@router.post(
    "/signup",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up",
    description="Self-register a user account. The account is Pending until an administrator approves it.",
)
async def signup(payload: SignupRequest, session: AsyncSession = Depends(get_db)) -> UserRead:
    """Register a new Pending user."""
    user = await UserService(session).signup(payload)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description="Authenticate using OAuth2 password form (username/password) and receive access/refresh tokens.",
)
async def login_for_tokens(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_db),
) -> TokenPair:
    """Authenticate user and issue tokens. Pending and deactivated accounts are refused."""
    user = await UserService(session).authenticate(form_data.username, form_data.password)
    return _issue_tokens(user)


# PUBLIC_INTERFACE
@router.post(
    "/access-code",
    response_model=TokenPair,
    summary="Super admin access code login",
    description="Sign in as the super administrator using the configured access code.",
)
async def login_with_access_code(payload: AccessCodeRequest, session: AsyncSession = Depends(get_db)) -> TokenPair:
    user = await UserService(session).authenticate_access_code(payload.code)
    return _issue_tokens(user)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Issue a new access token from a valid refresh token.",
)
async def refresh_token(payload: RefreshRequest, session: AsyncSession = Depends(get_db)) -> TokenPair:
    """Validate refresh token and issue a new access token pair."""
    try:
        claims: Dict[str, Any] = decode_token(payload.refresh_token, REFRESH_TOKEN)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")

    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(str(claims.get("sub")))
    if not user or user.status != UserStatus.ACTIVE.value:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return _issue_tokens(user)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=Message,
    summary="Logout",
    description="Stateless logout. Clients should discard tokens. No server state maintained.",
)
async def logout() -> Message:
    """Acknowledge logout in stateless JWT systems."""
    return Message(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserRead,
    summary="Read current user",
    description="Return the current authenticated user.",
)
async def read_current_user(user: User = Depends(get_current_active_user)) -> UserRead:
    """Return current user profile."""
    return UserRead.model_validate(user)
