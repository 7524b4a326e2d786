# spabook/modules/appointments/models.py
from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spabook.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin
from spabook.modules.procedures.models import Procedure
from spabook.modules.users.models import User


class ApptStatus(str, PyEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Statuses that hold a slot
ACTIVE_STATUSES = (ApptStatus.PENDING.value, ApptStatus.CONFIRMED.value)

_ACTIVE_SQL = "status IN ('pending', 'confirmed')"


class Appointment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    One booking of a procedure at a slot instant (stored in UTC).
    Rescheduling cancels the row and inserts a new one; rows are never deleted.
    """

    __tablename__ = "appointments"

    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    procedure_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("procedures.id", ondelete="RESTRICT"),
        nullable=False,
    )

    appointment_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ApptStatus.PENDING.value,
        server_default=ApptStatus.PENDING.value,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped[Optional[User]] = relationship(
        "User",
        foreign_keys=[patient_id],
        lazy="joined",
    )
    procedure: Mapped[Optional[Procedure]] = relationship(
        "Procedure",
        foreign_keys=[procedure_id],
        lazy="joined",
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
            name="ck_appt_status_valid",
        ),
        # One active booking per slot instant (global capacity)
        Index(
            "uq_appt_active_slot",
            "appointment_date",
            unique=True,
            postgresql_where=text(_ACTIVE_SQL),
            sqlite_where=text(_ACTIVE_SQL),
        ),
        Index("ix_appt_date_status", "appointment_date", "status"),
        Index("ix_appt_patient_date", "patient_id", "appointment_date"),
    )
