# spabook/modules/users/repository.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.modules.users.models import User, UserRole


class EmailAlreadyExistsError(Exception):
    """The insert hit uq_users_email."""


async def get_by_id(session: AsyncSession, user_id: UUID) -> Optional[User]:
    return await session.get(User, user_id)


async def get_by_email(session: AsyncSession, email: str) -> Optional[User]:
    """Emails are stored lowercase; the lookup normalizes the same way."""
    res = await session.execute(select(User).where(User.email == email.strip().lower()))
    return res.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password_hash: str,
    full_name: str,
    role: UserRole = UserRole.PATIENT,
) -> User:
    user = User(
        email=email.strip().lower(),
        password_hash=password_hash,
        full_name=full_name.strip(),
        role=role.value,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError as exc:
        message = str(exc.orig).lower()
        if "uq_users_email" not in message and "users.email" not in message:
            raise
        raise EmailAlreadyExistsError(user.email) from exc
    await session.refresh(user)
    return user


async def set_role(session: AsyncSession, *, email: str, role: UserRole) -> int:
    res = await session.execute(
        update(User).where(User.email == email.strip().lower()).values(role=role.value)
    )
    return res.rowcount or 0  # type: ignore
