"""
A+ Marketplace Backend — Route Dependencies
=============================================

What:  The bearer-token guard shared by every authenticated route.
How:   `HTTPBearer(auto_error=False)` extracts the token so a missing header
       becomes our own 401 envelope instead of FastAPI's 403; the token is
       decoded with PyJWT and the caller loaded from the database.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.exceptions import AuthenticationError, PermissionDeniedError
from aplus.models.user import User
from aplus.services.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def authenticate_token(db: AsyncSession, token: Optional[str]) -> User:
    """
    Resolve a raw bearer token to its user.

    Raises:
        AuthenticationError: missing, malformed or expired token, or the
            account no longer exists
    """
    if not token:
        raise AuthenticationError(code="auth.missing_token")

    payload = decode_access_token(token)
    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError(code="auth.invalid_token")

    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError(code="auth.invalid_token")
    return user


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    token = credentials.credentials if credentials else None
    user = await authenticate_token(db, token)
    # Read by the access log
    request.state.user_id = user.id
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise PermissionDeniedError(code="auth.forbidden")
    return user
