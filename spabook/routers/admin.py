# spabook/routers/admin.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.db.sql import get_session
from spabook.dependencies import require_roles
from spabook.modules.stats.service import (
    Statistics,
    Summary,
    TimeRange,
    get_statistics,
    get_summary,
)
from spabook.modules.users.models import User

# Create an admin router to collect administrative APIs
router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/summary", response_model=Summary, summary="Dashboard counters")
async def admin_summary(
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_roles("admin")),
):
    return await get_summary(session)


@router.get("/stats", response_model=Statistics, summary="Revenue and booking statistics")
async def admin_stats(
    time_range: TimeRange = Query("month", alias="range"),
    session: AsyncSession = Depends(get_session),
    admin: User = Depends(require_roles("admin")),
):
    """
    - totals per status and revenue (confirmed + completed)
    - per-procedure counts, most booked first
    - daily series for the last 7 / 30 / 365 days, monthly series for `year`
    """
    return await get_statistics(session, time_range)
