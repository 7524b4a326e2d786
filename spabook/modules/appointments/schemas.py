# spabook/modules/appointments/schemas.py
from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from spabook.db.base import as_utc
from spabook.modules.procedures.schemas import ProcedureSummary
from spabook.modules.users.schemas import ProfileSummary


class StatusValue(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class StatusFilter(str, Enum):
    """Listing filter: one status, or `all`."""
    all = "all"
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"


class BookingRequest(BaseModel):
    """
    Payload to book a slot.
    - patient_id comes from the authenticated user, never from the client.
    - Fields are optional here so a missing one is reported as
      `missing_required_field` instead of a schema error.
    """
    date: Optional[dt.date] = None
    time: Optional[str] = Field(default=None, description="Slot start, HH:MM local time")
    procedure_id: Optional[UUID] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class RescheduleRequest(BookingRequest):
    """Same shape as a booking; the target appointment comes from the path."""


class StatusUpdateRequest(BaseModel):
    status: StatusValue


class AppointmentPublic(BaseModel):
    id: UUID
    patient_id: UUID
    procedure_id: UUID
    appointment_date: dt.datetime
    status: str
    notes: Optional[str] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @field_validator("appointment_date", "created_at", "updated_at")
    @classmethod
    def _utc(cls, v: dt.datetime) -> dt.datetime:
        return as_utc(v)

    class Config:
        from_attributes = True


class AppointmentListItem(AppointmentPublic):
    """Listing row with the embedded procedure and patient profile."""
    procedure: Optional[ProcedureSummary] = None
    profile: Optional[ProfileSummary] = None


class BookingResult(BaseModel):
    appointment: AppointmentPublic
    email_sent: bool


class RescheduleResult(BaseModel):
    cancelled: AppointmentPublic
    appointment: AppointmentPublic


class SlotAvailability(BaseModel):
    time: str
    available: bool
    reason: Optional[str] = None

    class Config:
        from_attributes = True


class OccupiedSlots(BaseModel):
    date: dt.date
    occupied: List[str]
