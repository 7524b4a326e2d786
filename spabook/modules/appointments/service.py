# spabook/modules/appointments/service.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.core.exceptions import (
    BookingValidationError,
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    NotificationError,
    RealtimeError,
    RemoteWriteError,
    SpaError,
    TransientIOError,
)
from spabook.db.base import as_utc
from spabook.modules.appointments.models import Appointment, ApptStatus
from spabook.modules.appointments.schemas import (
    AppointmentListItem,
    AppointmentPublic,
    BookingRequest,
    BookingResult,
    RescheduleRequest,
    RescheduleResult,
    StatusFilter,
)
from spabook.modules.appointments.slots import (
    combine_slot,
    hhmm,
    list_occupied_slots,
    parse_slot,
)
from spabook.modules.appointments.status import (
    DEFAULT_PROCEDURE_NAME,
    ensure_transition,
    is_active,
)
from spabook.modules.log import write_audit_log
from spabook.modules.notifications.email import EmailSender
from spabook.modules.notifications.templates import (
    booking_confirmation_html,
    booking_confirmation_subject,
)
from spabook.modules.procedures.models import Procedure
from spabook.modules.procedures.schemas import ProcedureSummary
from spabook.modules.realtime.hub import (
    EVENT_INSERT,
    EVENT_REFRESH,
    EVENT_STATUS_CHANGED,
    EVENT_UPDATE,
    TOPIC_CHANGES,
    TOPIC_NOTIFICATIONS,
    TOPIC_REFETCH,
    RealtimeHub,
)
from spabook.modules.users.models import User
from spabook.modules.users.schemas import ProfileSummary

logger = logging.getLogger(__name__)

def _to_public(appt: Appointment) -> AppointmentPublic:
    return AppointmentPublic.model_validate(appt)


def _to_list_item(appt: Appointment) -> AppointmentListItem:
    base = _to_public(appt).model_dump()
    return AppointmentListItem(
        **base,
        procedure=ProcedureSummary.model_validate(appt.procedure) if appt.procedure else None,
        profile=ProfileSummary.model_validate(appt.patient) if appt.patient else None,
    )


def _row(appt: Appointment) -> dict[str, Any]:
    return _to_public(appt).model_dump(mode="json")


def _publish(hub: RealtimeHub, topic: str, event: str, payload: dict[str, Any] | None = None) -> None:
    """Best effort; a realtime failure never undoes a committed write."""
    try:
        hub.publish(topic, event, payload)
    except RealtimeError as exc:
        logger.warning("Realtime publish %s on %s skipped: %s", event, topic, exc.code)


def _now(now: Optional[datetime]) -> datetime:
    return as_utc(now) if now is not None else datetime.now(timezone.utc)


def _validate_slot_request(
    payload: BookingRequest, now: datetime
) -> tuple[date, time, datetime]:
    """
    Required fields, slot membership and not-in-the-past.
    Returns (local day, slot, UTC instant).
    """
    if payload.date is None or not payload.time or payload.procedure_id is None:
        raise BookingValidationError("missing_required_field")
    slot = parse_slot(payload.time)
    if slot is None:
        raise BookingValidationError("invalid_slot")
    instant = combine_slot(payload.date, slot)
    if instant <= now:
        raise BookingValidationError("slot_in_past")
    return payload.date, slot, instant


async def _active_procedure(session: AsyncSession, procedure_id: UUID) -> Procedure:
    proc = await session.get(Procedure, procedure_id)
    if proc is None or not proc.is_active:
        raise BookingValidationError("procedure_unavailable")
    return proc


async def _ensure_slot_free(session: AsyncSession, day: date, slot: time) -> None:
    if hhmm(slot) in await list_occupied_slots(session, day):
        raise ConflictError("slot_already_taken")


def _is_slot_clash(exc: IntegrityError) -> bool:
    # PostgreSQL names the index; SQLite only names the column
    message = str(exc.orig).lower() if exc.orig else str(exc).lower()
    return "uq_appt_active_slot" in message or "appointments.appointment_date" in message


async def _write(session: AsyncSession, code: str) -> None:
    """Flush + commit, mapping backend failures to domain errors."""
    try:
        await session.flush()
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if _is_slot_clash(exc):
            raise ConflictError("slot_already_taken") from exc
        logger.error("Constraint violation (%s): %s", code, exc.orig)
        raise RemoteWriteError(code) from exc
    except (OperationalError, PoolTimeoutError) as exc:
        await session.rollback()
        raise TransientIOError() from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise RemoteWriteError(code) from exc


# BOOK
async def book_appointment(
    session: AsyncSession,
    user: User,
    payload: BookingRequest,
    *,
    hub: RealtimeHub,
    email_sender: EmailSender,
    now: Optional[datetime] = None,
) -> BookingResult:
    """
    Create a pending appointment for the caller.

    - The occupied-slot check and the insert share one transaction; the
      partial unique index on active slots rejects a racing insert, and
      both paths surface as ConflictError('slot_already_taken').
    - The change event and the confirmation email go out after commit.
      Email failure is logged and reported via `email_sent`.
    """
    day, slot, instant = _validate_slot_request(payload, _now(now))
    proc = await _active_procedure(session, payload.procedure_id)
    await _ensure_slot_free(session, day, slot)

    appt = Appointment(
        patient_id=user.id,
        procedure_id=proc.id,
        appointment_date=instant,
        status=ApptStatus.PENDING.value,
        notes=payload.notes or None,
    )
    session.add(appt)
    await write_audit_log(
        session, user.id, "BOOK_APPOINTMENT", f"{proc.name} {day.isoformat()} {hhmm(slot)}"
    )
    await _write(session, "insert_failed")
    await session.refresh(appt)
    logger.info("Appointment %s booked by %s for %s %s", appt.id, user.id, day, hhmm(slot))

    _publish(hub, TOPIC_CHANGES, EVENT_INSERT, {"new": _row(appt)})

    email_sent = False
    try:
        await email_sender.send(
            to=user.email,
            subject=booking_confirmation_subject(),
            html=booking_confirmation_html(proc.name, day, hhmm(slot)),
        )
        email_sent = True
    except NotificationError as exc:
        logger.error("Confirmation email for appointment %s failed: %s", appt.id, exc)

    return BookingResult(appointment=_to_public(appt), email_sent=email_sent)


# RESCHEDULE
async def reschedule_appointment(
    session: AsyncSession,
    user: User,
    appointment_id: UUID,
    payload: RescheduleRequest,
    *,
    hub: RealtimeHub,
    now: Optional[datetime] = None,
) -> RescheduleResult:
    """
    Cancel the original and book the replacement in one transaction.
    If anything after the cancellation fails, the rollback restores the
    original, so the patient is never left with neither appointment.
    """
    original = await session.get(Appointment, appointment_id)
    if original is None:
        raise NotFoundError("appointment_not_found")
    if not user.is_admin and original.patient_id != user.id:
        raise ForbiddenError("not_owner")
    if not is_active(original.status):
        # only pending or confirmed appointments can be moved
        raise InvalidTransitionError(original.status, ApptStatus.CANCELLED.value)

    day, slot, instant = _validate_slot_request(payload, _now(now))
    proc = await _active_procedure(session, payload.procedure_id)
    current = original.status

    try:
        res = await session.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == current)
            .values(status=ApptStatus.CANCELLED.value)
            .execution_options(synchronize_session=False)
        )
        if (res.rowcount or 0) != 1:
            raise ConflictError("status_changed")

        await _ensure_slot_free(session, day, slot)
        replacement = Appointment(
            patient_id=original.patient_id,
            procedure_id=proc.id,
            appointment_date=instant,
            status=ApptStatus.PENDING.value,
            notes=payload.notes or None,
        )
        session.add(replacement)
        await write_audit_log(
            session,
            user.id,
            "RESCHEDULE_APPOINTMENT",
            f"{appointment_id} -> {day.isoformat()} {hhmm(slot)}",
        )
    except SpaError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        raise RemoteWriteError("cancel_failed") from exc

    await _write(session, "insert_failed")
    await session.refresh(original)
    await session.refresh(replacement)
    logger.info("Appointment %s rescheduled to %s by %s", appointment_id, replacement.id, user.id)

    _publish(hub, TOPIC_CHANGES, EVENT_UPDATE, {"new": _row(original)})
    _publish(hub, TOPIC_CHANGES, EVENT_INSERT, {"new": _row(replacement)})
    _publish(hub, TOPIC_REFETCH, EVENT_REFRESH, {})

    return RescheduleResult(cancelled=_to_public(original), appointment=_to_public(replacement))


# STATUS
async def set_appointment_status(
    session: AsyncSession,
    admin: User,
    appointment_id: UUID,
    new_status: str | ApptStatus,
    *,
    hub: RealtimeHub,
) -> AppointmentPublic:
    """
    Admin status change guarded by the lifecycle and a compare-and-swap
    update, so a concurrent change made after the row was read is
    reported instead of overwritten.
    """
    target = new_status.value if isinstance(new_status, ApptStatus) else str(new_status)

    appt = await session.get(Appointment, appointment_id)
    if appt is None:
        raise NotFoundError("appointment_not_found")
    current = appt.status
    ensure_transition(current, target)

    try:
        res = await session.execute(
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.status == current)
            .values(status=target)
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        await session.rollback()
        raise RemoteWriteError("update_failed") from exc
    if (res.rowcount or 0) == 0:
        await session.rollback()
        raise ConflictError("status_changed")

    await write_audit_log(
        session, admin.id, "SET_APPOINTMENT_STATUS", f"{appointment_id} {current} -> {target}"
    )
    await _write(session, "update_failed")
    await session.refresh(appt)
    logger.info("Appointment %s status %s -> %s by %s", appointment_id, current, target, admin.id)

    procedure_name = appt.procedure.name if appt.procedure else DEFAULT_PROCEDURE_NAME
    _publish(
        hub,
        TOPIC_NOTIFICATIONS,
        EVENT_STATUS_CHANGED,
        {
            "appointmentId": str(appt.id),
            "patientId": str(appt.patient_id),
            "procedureName": procedure_name,
            "newStatus": target,
        },
    )
    _publish(hub, TOPIC_REFETCH, EVENT_REFRESH, {})
    _publish(hub, TOPIC_CHANGES, EVENT_UPDATE, {"new": _row(appt)})

    return _to_public(appt)


# LIST / DETAIL
async def list_appointments(
    session: AsyncSession,
    user: User,
    status_filter: StatusFilter = StatusFilter.all,
) -> List[AppointmentListItem]:
    """
    Patients see their own appointments, admins see all.
    Ordered by appointment date ascending.
    """
    stmt = select(Appointment).order_by(Appointment.appointment_date.asc())
    if not user.is_admin:
        stmt = stmt.where(Appointment.patient_id == user.id)
    if status_filter is not StatusFilter.all:
        stmt = stmt.where(Appointment.status == status_filter.value)

    rows = (await session.execute(stmt)).unique().scalars().all()
    return [_to_list_item(a) for a in rows]


async def get_appointment(
    session: AsyncSession, user: User, appointment_id: UUID
) -> AppointmentListItem:
    appt = await session.get(Appointment, appointment_id)
    if appt is None:
        raise NotFoundError("appointment_not_found")
    if not user.is_admin and appt.patient_id != user.id:
        raise ForbiddenError("not_owner")
    return _to_list_item(appt)


async def get_owner_id(session: AsyncSession, appointment_id: UUID) -> Optional[UUID]:
    res = await session.execute(
        select(Appointment.patient_id).where(Appointment.id == appointment_id)
    )
    return res.scalar_one_or_none()


async def fetch_all_for_stats(session: AsyncSession) -> list[Appointment]:
    rows = await session.execute(select(Appointment).order_by(Appointment.appointment_date.asc()))
    return list(rows.unique().scalars().all())
