# spabook/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.db.sql import get_session
from spabook.dependencies import get_current_user
from spabook.modules.users import service as users_svc
from spabook.modules.users.models import User
from spabook.modules.users.schemas import (
    LoginRequest,
    LoginResponse,
    RefreshRequest,
    RegisterRequest,
    UserPublic,
)

router = APIRouter(prefix="/auth", tags=["auth"])

_BAD_LOGIN = {401: {"description": "Unknown email, wrong password or inactive account"}}


@router.post(
    "/register",
    response_model=UserPublic,
    status_code=status.HTTP_201_CREATED,
    summary="Patient sign-up",
    responses={409: {"description": "Email already registered"}},
)
async def auth_register(payload: RegisterRequest, session: AsyncSession = Depends(get_session)):
    """
    Creates a `patient` account. The password must pass the sign-up policy
    (8+ characters with upper, lower, digit and special); violations come
    back as 422 with the Spanish rule messages.
    """
    return await users_svc.register_user(session, payload)


@router.post("/login", response_model=LoginResponse, responses=_BAD_LOGIN)
async def auth_login(payload: LoginRequest, session: AsyncSession = Depends(get_session)):
    return await users_svc.login_user(session, payload)


@router.post(
    "/token",
    response_model=LoginResponse,
    summary="OAuth2 password form, used by the Swagger UI",
    responses=_BAD_LOGIN,
)
async def auth_token(
    form: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_session),
):
    try:
        payload = LoginRequest(email=form.username, password=form.password)
    except ValidationError:
        # a username that is not an email can never match an account
        raise users_svc.InvalidCredentials()
    return await users_svc.login_user(session, payload)


@router.get("/me", response_model=UserPublic)
async def auth_me(current_user: User = Depends(get_current_user)):
    return users_svc.to_public(current_user)


@router.post("/refresh", response_model=LoginResponse, responses={401: {"description": "Bad refresh token"}})
async def auth_refresh(payload: RefreshRequest, session: AsyncSession = Depends(get_session)):
    return await users_svc.refresh_tokens(session, payload.refresh_token)
