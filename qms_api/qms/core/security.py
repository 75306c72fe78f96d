from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from qms.core.settings import get_app_settings

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Check a password against a bcrypt hash. Accounts without a hash never match."""
    if not hashed_password:
        return False
    return _pwd_context.verify(plain_password, hashed_password)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    return _pwd_context.hash(password)


def _sign(claims: Dict[str, Any], lifetime_minutes: int, token_type: str) -> str:
    settings = get_app_settings()
    issued = datetime.now(tz=timezone.utc)
    body = dict(claims, iat=issued, exp=issued + timedelta(minutes=lifetime_minutes), type=token_type)
    return jwt.encode(body, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def create_access_token(subject: str, role: Optional[str] = None, expires_minutes: Optional[int] = None) -> str:
    """Signed access token carrying the user id (`sub`) and the user's role."""
    minutes = expires_minutes or get_app_settings().ACCESS_TOKEN_EXPIRE_MINUTES
    return _sign({"sub": subject, "role": role}, minutes, ACCESS_TOKEN)


# PUBLIC_INTERFACE
def create_refresh_token(subject: str, expires_minutes: Optional[int] = None) -> str:
    minutes = expires_minutes or get_app_settings().REFRESH_TOKEN_EXPIRE_MINUTES
    return _sign({"sub": subject}, minutes, REFRESH_TOKEN)


# PUBLIC_INTERFACE
def decode_token(token: str, token_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify signature and expiry and return the claims.

    When `token_type` is given the token must be of that type. Raises JWTError otherwise,
    and when the token has no subject.
    """
    settings = get_app_settings()
    claims = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    if token_type is not None and claims.get("type") != token_type:
        raise JWTError(f"Expected a {token_type} token")
    if not claims.get("sub"):
        raise JWTError("Token has no subject")
    return claims


# PUBLIC_INTERFACE
def get_token_subject(token: str) -> Optional[str]:
    """User id from a valid access token, or None."""
    try:
        return str(decode_token(token, ACCESS_TOKEN)["sub"])
    except JWTError:
        return None
