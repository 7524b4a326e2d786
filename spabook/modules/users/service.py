# spabook/modules/users/service.py
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from spabook.core.config import settings
from spabook.core.exceptions import AuthError, ConflictError, NotFoundError
from spabook.core.security import (
    REFRESH,
    InvalidTokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from spabook.modules.log import write_audit_log
from spabook.modules.users import repository as users_repo
from spabook.modules.users.models import User, UserRole
from spabook.modules.users.schemas import LoginRequest, LoginResponse, RegisterRequest, UserPublic

logger = logging.getLogger(__name__)


class EmailAlreadyExists(ConflictError):
    default_code = "email_already_exists"


class InvalidCredentials(AuthError):
    default_code = "invalid_credentials"


class UserNotFound(NotFoundError):
    default_code = "user_not_found"


def to_public(user: User) -> UserPublic:
    return UserPublic.model_validate(user)


async def register_user(session: AsyncSession, payload: RegisterRequest) -> UserPublic:
    """
    Sign-up always creates a patient. Reception accounts are promoted
    afterwards (see promote_to_admin).
    """
    if await users_repo.get_by_email(session, payload.email):
        raise EmailAlreadyExists()

    try:
        user = await users_repo.create_user(
            session,
            email=payload.email,
            password_hash=hash_password(payload.password.get_secret_value()),
            full_name=payload.full_name,
        )
    except users_repo.EmailAlreadyExistsError as exc:
        # lost a race with a concurrent sign-up
        raise EmailAlreadyExists() from exc

    await write_audit_log(session, user.id, "REGISTER", user.email)
    logger.info("Registered patient %s", user.id)
    return to_public(user)


def issue_tokens(user: User) -> LoginResponse:
    return LoginResponse(
        access_token=create_access_token(subject=str(user.id), email=user.email, role=user.role),
        expires_in=settings.ACCESS_EXPIRES_MIN * 60,
        refresh_token=create_refresh_token(subject=str(user.id)),
    )


async def login_user(session: AsyncSession, payload: LoginRequest) -> LoginResponse:
    user = await users_repo.get_by_email(session, payload.email)
    password_ok = user is not None and verify_password(
        payload.password.get_secret_value(), user.password_hash
    )
    if not password_ok or not user.is_active:
        logger.warning("Failed login for %s", payload.email)
        raise InvalidCredentials()
    return issue_tokens(user)


async def refresh_tokens(session: AsyncSession, refresh_token: str) -> LoginResponse:
    """Exchange a refresh token for a new pair; the refresh token rotates too."""
    try:
        payload = decode_token(refresh_token, expected_type=REFRESH)
        user_id = uuid.UUID(str(payload["sub"]))
    except InvalidTokenError as exc:
        raise AuthError(str(exc)) from exc
    except ValueError as exc:
        raise AuthError("invalid_token") from exc

    user = await users_repo.get_by_id(session, user_id)
    if user is None or not user.is_active:
        raise AuthError("invalid_token")
    return issue_tokens(user)


async def promote_to_admin(session: AsyncSession, email: str) -> UserPublic:
    user = await users_repo.get_by_email(session, email)
    if not user:
        raise UserNotFound()
    await users_repo.set_role(session, email=email, role=UserRole.ADMIN)
    await session.refresh(user)
    logger.info("User %s promoted to admin", user.id)
    return to_public(user)
