# spabook/routers/appointments.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.core.config import settings
from spabook.core.permission import require_owner_or_admin
from spabook.db.sql import get_session
from spabook.dependencies import get_current_user, require_roles
from spabook.modules.appointments.schemas import (
    AppointmentListItem,
    AppointmentPublic,
    BookingRequest,
    BookingResult,
    OccupiedSlots,
    RescheduleRequest,
    RescheduleResult,
    SlotAvailability,
    StatusFilter,
    StatusUpdateRequest,
)
from spabook.modules.appointments.service import (
    book_appointment,
    get_appointment,
    get_owner_id,
    list_appointments,
    reschedule_appointment,
    set_appointment_status,
)
from spabook.modules.appointments.slots import available_slots, list_occupied_slots
from spabook.modules.notifications.email import EmailSender, get_email_sender
from spabook.modules.realtime.hub import RealtimeHub, get_hub
from spabook.modules.users.models import User

router = APIRouter(tags=["appointments"])


# Slots (declared before /appointments/{appointment_id})
@router.get(
    "/appointments/slots/occupied",
    response_model=OccupiedSlots,
    summary="Start times already taken on a day (spa local time)",
)
async def appointments_occupied_slots(
    day: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    occupied = await list_occupied_slots(session, day)
    return OccupiedSlots(date=day, occupied=sorted(occupied))


@router.get(
    "/appointments/slots",
    response_model=List[SlotAvailability],
    summary="Fixed daily slots with availability",
)
async def appointments_slots(
    day: date = Query(..., alias="date"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    booked = await list_occupied_slots(session, day)
    now = datetime.now(settings.tz)
    return [
        SlotAvailability.model_validate(s)
        for s in available_slots(day, settings.slots, booked, now)
    ]


@router.post(
    "/appointments",
    response_model=BookingResult,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment (transactional execution)",
    responses={
        409: {"description": "Slot already taken"},
        422: {"description": "Missing field, unknown slot, past slot or unavailable procedure"},
    },
)
async def appointments_create(
    payload: BookingRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),  # Bearer required
    hub: RealtimeHub = Depends(get_hub),
    email_sender: EmailSender = Depends(get_email_sender),
):
    return await book_appointment(
        session, current_user, payload, hub=hub, email_sender=email_sender
    )


@router.get(
    "/appointments",
    response_model=List[AppointmentListItem],
    summary="Own appointments (patients) or all appointments (admins)",
)
async def appointments_list(
    status_filter: StatusFilter = Query(StatusFilter.all, alias="status"),
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await list_appointments(session, current_user, status_filter)


@router.get(
    "/appointments/{appointment_id}",
    response_model=AppointmentListItem,
    summary="One appointment (owner or admin)",
)
async def appointments_detail(
    appointment_id: UUID,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_owner_or_admin(get_owner_id)),
):
    return await get_appointment(session, current_user, appointment_id)


@router.post(
    "/appointments/{appointment_id}/reschedule",
    response_model=RescheduleResult,
    summary="Cancel an appointment and book its replacement atomically",
)
async def appointments_reschedule(
    appointment_id: UUID,
    payload: RescheduleRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_owner_or_admin(get_owner_id)),
    hub: RealtimeHub = Depends(get_hub),
):
    return await reschedule_appointment(
        session, current_user, appointment_id, payload, hub=hub
    )


@router.patch(
    "/appointments/{appointment_id}/status",
    response_model=AppointmentPublic,
    summary="Change an appointment's status (admin)",
    responses={
        404: {"description": "Appointment not found"},
        409: {"description": "Transition not allowed or status changed concurrently"},
    },
)
async def appointments_set_status(
    appointment_id: UUID,
    payload: StatusUpdateRequest,
    session: AsyncSession = Depends(get_session),
    current_user: User = Depends(require_roles("admin")),
    hub: RealtimeHub = Depends(get_hub),
):
    return await set_appointment_status(
        session, current_user, appointment_id, payload.status.value, hub=hub
    )
