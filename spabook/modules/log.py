from __future__ import annotations

import uuid

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.modules.users.models import AuditLog


async def write_audit_log(
    session: AsyncSession,
    user_id: uuid.UUID | None,
    action: str,
    details: str | None = None,
):
    """
    Write an audit log entry in the caller's transaction.

    action:
        "REGISTER"
        "BOOK_APPOINTMENT"
        "RESCHEDULE_APPOINTMENT"
        "SET_APPOINTMENT_STATUS"
        "DISABLE_PROCEDURE"
    """
    stmt = insert(AuditLog).values(
        user_id=user_id,
        action=action,
        details=details[:500] if details else details,
    )
    await session.execute(stmt)
