# spabook/core/exceptions.py
from __future__ import annotations


# Domain errors; routers / the app-level handler map them to HTTP
class SpaError(Exception):
    """Base for all domain errors. `code` is the short machine-readable detail."""

    status_code = 500
    default_code = "internal_error"

    def __init__(self, code: str | None = None, *, message: str | None = None):
        self.code = code or self.default_code
        super().__init__(message or self.code)


class BookingValidationError(SpaError):
    """Missing or invalid booking fields."""

    status_code = 422
    default_code = "missing_required_field"


class AuthError(SpaError):
    """No authenticated session."""

    status_code = 401
    default_code = "not_authenticated"


class ForbiddenError(SpaError):
    status_code = 403
    default_code = "forbidden"


class NotFoundError(SpaError):
    status_code = 404
    default_code = "not_found"


class ConflictError(SpaError):
    """Slot already taken, or the row changed under us."""

    status_code = 409
    default_code = "conflict"


class InvalidTransitionError(ConflictError):
    default_code = "invalid_status_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(message=f"cannot move appointment from '{current}' to '{target}'")


class RemoteWriteError(SpaError):
    """Insert/update rejected by the database."""

    status_code = 502
    default_code = "write_failed"


class TransientIOError(RemoteWriteError):
    """Connectivity / timeout problem; the caller may retry."""

    status_code = 503
    default_code = "database_unavailable"


class NotificationError(SpaError):
    """Email or chat collaborator failed."""

    status_code = 502
    default_code = "notification_failed"


class RealtimeError(SpaError):
    status_code = 400
    default_code = "realtime_error"
