# spabook/modules/procedures/repository.py
from __future__ import annotations

from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.modules.procedures.models import Procedure


async def list_procedures(
    session: AsyncSession, *, include_inactive: bool = False
) -> Sequence[Procedure]:
    stmt = select(Procedure)
    if not include_inactive:
        stmt = stmt.where(Procedure.is_active.is_(True))
    rows = await session.execute(stmt.order_by(Procedure.name))
    return rows.scalars().all()


async def get_procedure(session: AsyncSession, procedure_id: UUID) -> Optional[Procedure]:
    return await session.get(Procedure, procedure_id)


async def create_procedure(session: AsyncSession, **values: Any) -> Procedure:
    proc = Procedure(**values)
    session.add(proc)
    await session.flush()
    await session.refresh(proc)
    return proc


async def update_procedure(session: AsyncSession, procedure_id: UUID, **values: Any) -> int:
    if not values:
        return 1 if await get_procedure(session, procedure_id) else 0
    res = await session.execute(
        update(Procedure).where(Procedure.id == procedure_id).values(**values)
    )
    return res.rowcount or 0  # type: ignore
