from datetime import datetime, time, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from conftest import BOOK_DAY, NOW
from spabook.core.config import settings
from spabook.core.exceptions import ConflictError, RemoteWriteError, TransientIOError
from spabook.modules.appointments import service as appt_svc
from spabook.modules.appointments.models import Appointment
from spabook.modules.appointments.schemas import BookingRequest
from spabook.modules.appointments.slots import (
    available_slots,
    combine_slot,
    day_window,
    list_occupied_slots,
    local_hhmm,
    parse_slot,
)


async def _insert(session, patient, procedure, day, hh, mm, status="pending"):
    appt = Appointment(
        patient_id=patient.id,
        procedure_id=procedure.id,
        appointment_date=combine_slot(day, time(hh, mm)),
        status=status,
    )
    session.add(appt)
    await session.commit()
    return appt


def test_day_window_is_local_midnight_in_utc():
    start, end = day_window(BOOK_DAY)
    # Bogota is UTC-5 all year
    assert start == datetime(2025, 3, 10, 5, 0, tzinfo=timezone.utc)
    assert end == datetime(2025, 3, 11, 5, 0, tzinfo=timezone.utc)


def test_combine_and_back_to_local():
    instant = combine_slot(BOOK_DAY, time(9, 0))
    assert instant == datetime(2025, 3, 10, 14, 0, tzinfo=timezone.utc)
    assert local_hhmm(instant) == "09:00"
    # naive values (as SQLite returns them) are read as UTC
    assert local_hhmm(instant.replace(tzinfo=None)) == "09:00"


def test_parse_slot_only_accepts_fixed_slots():
    assert parse_slot("10:00") == time(10, 0)
    assert parse_slot(" 14:00 ") == time(14, 0)
    assert parse_slot("10:30") is None
    assert parse_slot("13:00") is None
    assert parse_slot("later") is None


async def test_occupied_slots_scenario(session, patient, procedure):
    await _insert(session, patient, procedure, BOOK_DAY, 10, 0, "pending")
    await _insert(session, patient, procedure, BOOK_DAY, 14, 0, "confirmed")

    booked = await list_occupied_slots(session, BOOK_DAY)
    assert booked == {"10:00", "14:00"}

    states = available_slots(BOOK_DAY, settings.slots, booked, NOW)
    assert [s.time for s in states] == [s.strftime("%H:%M") for s in settings.slots]
    by_time = {s.time: s for s in states}
    assert not by_time["10:00"].available and by_time["10:00"].reason == "booked"
    assert not by_time["14:00"].available
    assert by_time["09:00"].available and by_time["09:00"].reason is None
    assert sum(1 for s in states if s.available) == len(settings.slots) - 2


async def test_cancelled_and_completed_do_not_occupy(session, patient, procedure):
    await _insert(session, patient, procedure, BOOK_DAY, 10, 0, "cancelled")
    await _insert(session, patient, procedure, BOOK_DAY, 11, 0, "completed")
    await _insert(session, patient, procedure, BOOK_DAY, 12, 0, "pending")

    assert await list_occupied_slots(session, BOOK_DAY) == {"12:00"}


async def test_window_respects_local_day(session, patient, procedure):
    # 18:00 local is 23:00 UTC the same day; it belongs to BOOK_DAY only
    await _insert(session, patient, procedure, BOOK_DAY, 18, 0)
    await _insert(session, patient, procedure, BOOK_DAY + timedelta(days=1), 9, 0)

    assert await list_occupied_slots(session, BOOK_DAY) == {"18:00"}
    assert await list_occupied_slots(session, BOOK_DAY + timedelta(days=1)) == {"09:00"}
    assert await list_occupied_slots(session, BOOK_DAY - timedelta(days=1)) == set()


def test_past_slots_not_offered():
    # 12:30 local on the booking day
    now = datetime(2025, 3, 10, 17, 30, tzinfo=timezone.utc)
    states = {s.time: s for s in available_slots(BOOK_DAY, settings.slots, set(), now)}
    assert states["09:00"].reason == "past"
    assert states["12:00"].reason == "past"
    assert states["14:00"].available


async def test_occupied_is_idempotent_after_failed_booking(session, patient, other_patient, procedure, hub, email_sender):
    await _insert(session, patient, procedure, BOOK_DAY, 10, 0)
    before = await list_occupied_slots(session, BOOK_DAY)

    payload = BookingRequest(date=BOOK_DAY, time="10:00", procedure_id=procedure.id)
    with pytest.raises(ConflictError):
        await appt_svc.book_appointment(
            session, other_patient, payload, hub=hub, email_sender=email_sender, now=NOW
        )

    assert await list_occupied_slots(session, BOOK_DAY) == before == {"10:00"}


async def test_backend_errors_are_not_an_empty_set(session, monkeypatch):
    async def down(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(session, "execute", down)
    with pytest.raises(TransientIOError):
        await list_occupied_slots(session, BOOK_DAY)


async def test_backend_rejection_maps_to_remote_error(session, monkeypatch):
    async def broken(*args, **kwargs):
        raise ProgrammingError("SELECT", {}, Exception("no such table"))

    monkeypatch.setattr(session, "execute", broken)
    with pytest.raises(RemoteWriteError) as err:
        await list_occupied_slots(session, BOOK_DAY)
    assert not isinstance(err.value, TransientIOError)
    assert err.value.code == "read_failed"


async def test_slots_routes(client, patient, procedure):
    from conftest import api, auth_headers, future_day

    day = future_day()
    headers = auth_headers(patient)
    resp = await client.post(
        api("/appointments"),
        json={"date": day.isoformat(), "time": "11:00", "procedure_id": str(procedure.id)},
        headers=headers,
    )
    assert resp.status_code == 201

    resp = await client.get(api("/appointments/slots/occupied"), params={"date": day.isoformat()}, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"date": day.isoformat(), "occupied": ["11:00"]}

    resp = await client.get(api("/appointments/slots"), params={"date": day.isoformat()}, headers=headers)
    assert resp.status_code == 200
    slots = {s["time"]: s for s in resp.json()}
    assert slots["11:00"] == {"time": "11:00", "available": False, "reason": "booked"}
    assert slots["09:00"]["available"] is True
