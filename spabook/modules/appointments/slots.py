# spabook/modules/appointments/slots.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.core.config import settings
from spabook.core.exceptions import RemoteWriteError, TransientIOError
from spabook.db.base import as_utc
from spabook.modules.appointments.models import ACTIVE_STATUSES, Appointment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotState:
    time: str
    available: bool
    reason: Optional[str] = None  # "booked" | "past"


def hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def day_window(day: date, tz: ZoneInfo | None = None) -> tuple[datetime, datetime]:
    """[local midnight, next local midnight) of `day`, as UTC instants."""
    tz = tz or settings.tz
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def combine_slot(day: date, slot: time, tz: ZoneInfo | None = None) -> datetime:
    """Local day + slot start time -> UTC instant."""
    tz = tz or settings.tz
    return datetime.combine(day, slot, tzinfo=tz).astimezone(timezone.utc)


def local_hhmm(instant: datetime, tz: ZoneInfo | None = None) -> str:
    return as_utc(instant).astimezone(tz or settings.tz).strftime("%H:%M")


def parse_slot(value: str, slots: Iterable[time] | None = None) -> Optional[time]:
    """Return the matching fixed slot for 'HH:MM', or None if it is not one of them."""
    try:
        wanted = time.fromisoformat(value.strip())
    except (AttributeError, ValueError):
        return None
    for slot in slots if slots is not None else settings.slots:
        if slot == wanted:
            return slot
    return None


async def list_occupied_slots(
    session: AsyncSession, day: date, *, tz: ZoneInfo | None = None
) -> set[str]:
    """
    Local 'HH:MM' start times of the active (pending/confirmed) appointments
    on `day`. Read-only. Backend failures are raised, never turned into an
    empty set.
    """
    tz = tz or settings.tz
    start, end = day_window(day, tz)
    stmt = select(Appointment.appointment_date).where(
        Appointment.appointment_date >= start,
        Appointment.appointment_date < end,
        Appointment.status.in_(ACTIVE_STATUSES),
    )
    try:
        rows = (await session.execute(stmt)).scalars().all()
    except (OperationalError, PoolTimeoutError) as exc:
        logger.error("Occupied slot lookup for %s failed: %s", day, exc)
        raise TransientIOError() from exc
    except SQLAlchemyError as exc:
        logger.error("Occupied slot lookup for %s rejected: %s", day, exc)
        raise RemoteWriteError("read_failed") from exc
    return {local_hhmm(r, tz) for r in rows}


def available_slots(
    day: date,
    slots: Iterable[time],
    booked: set[str],
    now: datetime,
    *,
    tz: ZoneInfo | None = None,
) -> list[SlotState]:
    """One entry per fixed slot, in order: offered unless booked or already started."""
    tz = tz or settings.tz
    now_utc = as_utc(now)
    out: list[SlotState] = []
    for slot in slots:
        label = hhmm(slot)
        if label in booked:
            out.append(SlotState(label, False, "booked"))
        elif combine_slot(day, slot, tz) <= now_utc:
            out.append(SlotState(label, False, "past"))
        else:
            out.append(SlotState(label, True))
    return out
