# spabook/dependencies.py
from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.core.config import settings
from spabook.core.exceptions import AuthError, ForbiddenError
from spabook.core.security import ACCESS, InvalidTokenError, decode_token
from spabook.db.sql import get_session
from spabook.modules.users.repository import get_by_id
from spabook.modules.users.models import User

# IMPORTANT: use /auth/token here so Swagger sends username/password to that endpoint
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_PREFIX}/auth/token",
    auto_error=False,
)


async def user_from_token(session: AsyncSession, token: str | None) -> User:
    """
    Resolve an access token to an active user.
    Raises AuthError / ForbiddenError; shared by HTTP and WebSocket routes.
    """
    try:
        payload = decode_token(token, expected_type=ACCESS)
    except InvalidTokenError as exc:
        raise AuthError(str(exc))

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthError("invalid_token")

    user = await get_by_id(session, user_id)
    if not user:
        raise AuthError("user_not_found")
    if not user.is_active:
        raise ForbiddenError("user_inactive")
    return user


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_session),
) -> User:
    try:
        return await user_from_token(session, token)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.code,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except ForbiddenError as exc:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=exc.code,
        )


def require_roles(*roles: str):
    """
    Role guard factory. Example: Depends(require_roles("admin"))
    """
    async def _guard(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="insufficient_role",
            )
        return user

    return _guard
