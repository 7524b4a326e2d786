# spabook/modules/procedures/schemas.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, Field, StringConstraints, field_validator

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]


class ProcedureCreate(BaseModel):
    name: NameStr
    description: Optional[str] = None
    detailed_description: Optional[str] = None
    benefits: Optional[str] = None
    preparation: Optional[str] = None
    duration_minutes: int = Field(default=60, gt=0, le=600)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    is_active: bool = True


class ProcedureUpdate(BaseModel):
    """Partial update; only fields present in the body are written."""
    name: Optional[NameStr] = None
    description: Optional[str] = None
    detailed_description: Optional[str] = None
    benefits: Optional[str] = None
    preparation: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, gt=0, le=600)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("name", "duration_minutes", "is_active", mode="before")
    @classmethod
    def not_null(cls, v):
        # omit the key to leave a column unchanged; these columns are NOT NULL
        if v is None:
            raise ValueError("may not be null")
        return v


class ProcedurePublic(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    detailed_description: Optional[str] = None
    benefits: Optional[str] = None
    preparation: Optional[str] = None
    duration_minutes: int
    price: Optional[Decimal] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ProcedureSummary(BaseModel):
    """Embedded in appointment listings."""
    name: str
    price: Optional[Decimal] = None

    class Config:
        from_attributes = True
