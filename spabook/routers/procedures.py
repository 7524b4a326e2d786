# spabook/routers/procedures.py
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.db.sql import get_session
from spabook.dependencies import require_roles
from spabook.modules.procedures import service as procedures_svc
from spabook.modules.procedures.schemas import ProcedureCreate, ProcedurePublic, ProcedureUpdate
from spabook.modules.users.models import User

router = APIRouter(tags=["procedures"])


@router.get(
    "/procedures",
    response_model=List[ProcedurePublic],
    summary="Active treatments, ordered by name",
)
async def procedures_list(session: AsyncSession = Depends(get_session)):
    return await procedures_svc.list_active_procedures(session)


@router.get(
    "/procedures/all",
    response_model=List[ProcedurePublic],
    summary="All treatments including disabled ones (admin)",
)
async def procedures_list_all(
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_roles("admin")),
):
    return await procedures_svc.list_all_procedures(session)


@router.get(
    "/procedures/{procedure_id}",
    response_model=ProcedurePublic,
    responses={404: {"description": "Unknown or disabled procedure"}},
)
async def procedures_detail(procedure_id: UUID, session: AsyncSession = Depends(get_session)):
    return await procedures_svc.get_procedure(session, procedure_id)


@router.post(
    "/procedures",
    response_model=ProcedurePublic,
    status_code=status.HTTP_201_CREATED,
)
async def procedures_create(
    payload: ProcedureCreate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_roles("admin")),
):
    return await procedures_svc.create_procedure(session, payload, admin)


@router.patch("/procedures/{procedure_id}", response_model=ProcedurePublic)
async def procedures_update(
    procedure_id: UUID,
    payload: ProcedureUpdate,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_roles("admin")),
):
    return await procedures_svc.update_procedure(session, procedure_id, payload, admin)


@router.delete(
    "/procedures/{procedure_id}",
    response_model=ProcedurePublic,
    summary="Disable a procedure (soft delete)",
)
async def procedures_disable(
    procedure_id: UUID,
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_roles("admin")),
):
    return await procedures_svc.disable_procedure(session, procedure_id, admin)
