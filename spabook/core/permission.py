# spabook/core/permission.py
from __future__ import annotations

import uuid
from typing import Callable, Awaitable
from fastapi import Depends, HTTPException, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.db.sql import get_session
from spabook.dependencies import get_current_user
from spabook.modules.users.models import User


def require_owner_or_admin(
    owner_id_getter: Callable[[AsyncSession, uuid.UUID], Awaitable[uuid.UUID | None]],
):
    """
    Guard for /{appointment_id} routes: admins pass, patients only for
    resources whose owner (as returned by `owner_id_getter`) is themselves.
    """
    async def dep(
        appointment_id: uuid.UUID = Path(...),
        db: AsyncSession = Depends(get_session),
        user: User = Depends(get_current_user),
    ):
        # admin → let it pass
        if user.is_admin:
            return user

        owner = await owner_id_getter(db, appointment_id)
        if owner is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="appointment_not_found",
            )

        if str(owner) != str(user.id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="not_owner",
            )

        return user

    return dep
