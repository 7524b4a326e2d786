# spabook/modules/appointments/status.py
"""
Appointment lifecycle.

    pending   -> confirmed | cancelled
    confirmed -> completed
    completed, cancelled: terminal

Pure functions only; the database side lives in service.py.
"""
from __future__ import annotations

from spabook.core.exceptions import InvalidTransitionError
from spabook.modules.appointments.models import ACTIVE_STATUSES, ApptStatus

TRANSITIONS: dict[str, frozenset[str]] = {
    ApptStatus.PENDING.value: frozenset({ApptStatus.CONFIRMED.value, ApptStatus.CANCELLED.value}),
    ApptStatus.CONFIRMED.value: frozenset({ApptStatus.COMPLETED.value}),
    ApptStatus.COMPLETED.value: frozenset(),
    ApptStatus.CANCELLED.value: frozenset(),
}

DEFAULT_PROCEDURE_NAME = "Procedimiento"

_MESSAGES = {
    ApptStatus.CONFIRMED.value: "¡Tu cita para {name} ha sido confirmada!",
    ApptStatus.CANCELLED.value: "Tu cita para {name} ha sido cancelada.",
    ApptStatus.COMPLETED.value: "Tu cita para {name} ha sido marcada como completada.",
}
_FALLBACK_MESSAGE = "El estado de tu cita para {name} ha cambiado."


def _value(status: str | ApptStatus) -> str:
    return status.value if isinstance(status, ApptStatus) else str(status)


def allowed_transitions(current: str | ApptStatus) -> frozenset[str]:
    return TRANSITIONS.get(_value(current), frozenset())


def can_transition(current: str | ApptStatus, target: str | ApptStatus) -> bool:
    return _value(target) in allowed_transitions(current)


def ensure_transition(current: str | ApptStatus, target: str | ApptStatus) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionError(_value(current), _value(target))


def is_active(status: str | ApptStatus) -> bool:
    """Active appointments occupy their slot."""
    return _value(status) in ACTIVE_STATUSES


def status_change_message(procedure_name: str | None, new_status: str | ApptStatus) -> str:
    """Patient-facing notice shown when an admin changes an appointment's status."""
    name = procedure_name or DEFAULT_PROCEDURE_NAME
    template = _MESSAGES.get(_value(new_status), _FALLBACK_MESSAGE)
    return template.format(name=name)
