# spabook/modules/procedures/models.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, Numeric, String, Text, true
from sqlalchemy.orm import Mapped, mapped_column

from spabook.db.base import Base, UUIDPKMixin, TimestampMixin, ReprMixin


class Procedure(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    A bookable spa treatment. Never deleted: disabled via is_active.
    """

    __tablename__ = "procedures"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    detailed_description: Mapped[Optional[str]] = mapped_column(Text)
    benefits: Mapped[Optional[str]] = mapped_column(Text)
    preparation: Mapped[Optional[str]] = mapped_column(Text)

    duration_minutes: Mapped[int] = mapped_column(
        Integer, nullable=False, default=60, server_default="60"
    )
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    image_url: Mapped[Optional[str]] = mapped_column(String(500))
    video_url: Mapped[Optional[str]] = mapped_column(String(500))

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=true()
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="ck_procedures_duration_positive"),
        CheckConstraint("price IS NULL OR price >= 0", name="ck_procedures_price_non_negative"),
        Index("ix_procedures_active_name", "is_active", "name"),
    )
