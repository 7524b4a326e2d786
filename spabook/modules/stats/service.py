# spabook/modules/stats/service.py
"""
Dashboard figures for administrators.

build_statistics() is pure: it works on already fetched rows, so it can be
tested without a database. Revenue counts confirmed and completed
appointments only.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Literal, Optional

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.core.config import settings
from spabook.db.base import as_utc
from spabook.modules.appointments.models import Appointment, ApptStatus
from spabook.modules.appointments.service import fetch_all_for_stats

TimeRange = Literal["week", "month", "year"]

RANGE_DAYS = {"week": 7, "month": 30, "year": 365}
UNNAMED_PROCEDURE = "Sin especificar"
_EARNING = {ApptStatus.CONFIRMED.value, ApptStatus.COMPLETED.value}


@dataclass(frozen=True)
class StatRow:
    day: date  # local calendar day of the appointment
    status: str
    procedure_name: Optional[str] = None
    price: Optional[Decimal] = None


class StatusTotals(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0


class ProcedureStat(BaseModel):
    name: str
    count: int
    revenue: float


class DailyStat(BaseModel):
    date: str
    count: int
    revenue: float


class MonthlyStat(BaseModel):
    month: str
    count: int
    revenue: float


class Statistics(BaseModel):
    range: str
    totals: StatusTotals
    total_revenue: float
    procedures: list[ProcedureStat]
    daily: list[DailyStat]
    monthly: list[MonthlyStat]


class Summary(BaseModel):
    total: int
    pending: int
    confirmed: int


def _price(row: StatRow) -> Decimal:
    return row.price if row.price is not None else Decimal("0")


def _revenue(rows: Iterable[StatRow]) -> float:
    return float(sum((_price(r) for r in rows if r.status in _EARNING), Decimal("0")))


def _month_starts(today: date, count: int) -> list[date]:
    """First day of each of the last `count` months, oldest first, ending with today's."""
    year, month = today.year, today.month
    out = []
    for _ in range(count):
        out.append(date(year, month, 1))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(out))


def build_statistics(rows: list[StatRow], time_range: TimeRange, today: date) -> Statistics:
    if time_range not in RANGE_DAYS:
        raise ValueError(f"unknown range: {time_range}")

    counts = Counter(r.status for r in rows)
    totals = StatusTotals(
        total=len(rows),
        pending=counts[ApptStatus.PENDING.value],
        confirmed=counts[ApptStatus.CONFIRMED.value],
        completed=counts[ApptStatus.COMPLETED.value],
        cancelled=counts[ApptStatus.CANCELLED.value],
    )

    per_proc: dict[str, list[StatRow]] = {}
    for r in rows:
        if r.status in _EARNING:
            per_proc.setdefault(r.procedure_name or UNNAMED_PROCEDURE, []).append(r)
    procedures = sorted(
        (ProcedureStat(name=name, count=len(items), revenue=_revenue(items))
         for name, items in per_proc.items()),
        key=lambda p: p.count,
        reverse=True,
    )

    by_day: dict[date, list[StatRow]] = {}
    for r in rows:
        by_day.setdefault(r.day, []).append(r)
    start = today - timedelta(days=RANGE_DAYS[time_range])
    daily = []
    d = start
    while d <= today:
        items = by_day.get(d, [])
        daily.append(DailyStat(date=d.isoformat(), count=len(items), revenue=_revenue(items)))
        d += timedelta(days=1)

    monthly = []
    if time_range == "year":
        for first in _month_starts(today, 12):
            items = [r for r in rows if (r.day.year, r.day.month) == (first.year, first.month)]
            monthly.append(
                MonthlyStat(month=first.strftime("%Y-%m"), count=len(items), revenue=_revenue(items))
            )

    return Statistics(
        range=time_range,
        totals=totals,
        total_revenue=_revenue(rows),
        procedures=procedures,
        daily=daily,
        monthly=monthly,
    )


def _to_stat_row(appt: Appointment) -> StatRow:
    local_day = as_utc(appt.appointment_date).astimezone(settings.tz).date()
    proc = appt.procedure
    return StatRow(
        day=local_day,
        status=appt.status,
        procedure_name=proc.name if proc else None,
        price=proc.price if proc else None,
    )


async def get_statistics(
    session: AsyncSession, time_range: TimeRange, *, today: date | None = None
) -> Statistics:
    rows = [_to_stat_row(a) for a in await fetch_all_for_stats(session)]
    today = today or datetime.now(settings.tz).date()
    return build_statistics(rows, time_range, today)


async def get_summary(session: AsyncSession) -> Summary:
    res = await session.execute(
        select(Appointment.status, func.count()).group_by(Appointment.status)
    )
    counts = {status: n for status, n in res.all()}
    return Summary(
        total=sum(counts.values()),
        pending=counts.get(ApptStatus.PENDING.value, 0),
        confirmed=counts.get(ApptStatus.CONFIRMED.value, 0),
    )
