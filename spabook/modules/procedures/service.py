# spabook/modules/procedures/service.py
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from spabook.core.config import settings
from spabook.core.exceptions import NotFoundError
from spabook.modules.log import write_audit_log
from spabook.modules.procedures import repository as repo
from spabook.modules.procedures.models import Procedure
from spabook.modules.procedures.schemas import ProcedureCreate, ProcedurePublic, ProcedureUpdate
from spabook.modules.users.models import User

logger = logging.getLogger(__name__)

IMAGE_BUCKET = "procedures"


def resolve_image_url(path: str | None) -> str:
    """
    Absolute URLs are returned as-is; bucket-relative paths are joined to
    the public storage URL. Empty string when there is nothing to show.
    """
    if not path:
        return ""
    if path.startswith("http"):
        return path
    if not settings.STORAGE_PUBLIC_URL:
        return ""
    clean = path.lstrip("/")
    return f"{settings.STORAGE_PUBLIC_URL.rstrip('/')}/{IMAGE_BUCKET}/{clean}"


def _to_public(proc: Procedure) -> ProcedurePublic:
    dto = ProcedurePublic.model_validate(proc)
    return dto.model_copy(update={"image_url": resolve_image_url(proc.image_url)})


async def list_active_procedures(session: AsyncSession) -> list[ProcedurePublic]:
    return [_to_public(p) for p in await repo.list_procedures(session)]


async def list_all_procedures(session: AsyncSession) -> list[ProcedurePublic]:
    return [_to_public(p) for p in await repo.list_procedures(session, include_inactive=True)]


async def get_procedure(
    session: AsyncSession, procedure_id: UUID, *, include_inactive: bool = False
) -> ProcedurePublic:
    proc = await repo.get_procedure(session, procedure_id)
    if proc is None or (not proc.is_active and not include_inactive):
        raise NotFoundError("procedure_not_found")
    return _to_public(proc)


async def create_procedure(
    session: AsyncSession, payload: ProcedureCreate, admin: User
) -> ProcedurePublic:
    proc = await repo.create_procedure(session, **payload.model_dump())
    await session.commit()
    logger.info("Procedure %s created by %s", proc.id, admin.id)
    return _to_public(proc)


async def update_procedure(
    session: AsyncSession, procedure_id: UUID, payload: ProcedureUpdate, admin: User
) -> ProcedurePublic:
    values = payload.model_dump(exclude_unset=True)
    if not await repo.update_procedure(session, procedure_id, **values):
        raise NotFoundError("procedure_not_found")
    await session.commit()
    proc = await repo.get_procedure(session, procedure_id)
    await session.refresh(proc)
    logger.info("Procedure %s updated by %s: %s", procedure_id, admin.id, sorted(values))
    return _to_public(proc)


async def disable_procedure(
    session: AsyncSession, procedure_id: UUID, admin: User
) -> ProcedurePublic:
    """Soft-disable; existing appointments keep their reference."""
    if not await repo.update_procedure(session, procedure_id, is_active=False):
        raise NotFoundError("procedure_not_found")
    await write_audit_log(session, admin.id, "DISABLE_PROCEDURE", str(procedure_id))
    await session.commit()
    proc = await repo.get_procedure(session, procedure_id)
    await session.refresh(proc)
    return _to_public(proc)
