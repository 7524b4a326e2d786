# spabook/modules/users/schemas.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, SecretStr, StringConstraints, field_validator

from spabook.core.security import password_policy_errors


class Role(str, Enum):
    patient = "patient"
    admin = "admin"


NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=120)]


class RegisterRequest(BaseModel):
    email: EmailStr = Field(...)
    password: SecretStr = Field(..., description="8+ chars with upper, lower, digit and special")
    full_name: NameStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: SecretStr) -> SecretStr:
        errors = password_policy_errors(v.get_secret_value())
        if errors:
            raise ValueError("; ".join(errors))
        return v


class UserPublic(BaseModel):
    id: UUID
    email: EmailStr
    role: Role
    full_name: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProfileSummary(BaseModel):
    """Patient profile as shown to administrators."""
    full_name: str
    email: EmailStr

    class Config:
        from_attributes = True


# --- Login / Refresh ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: SecretStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class TokenPair(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_token: str | None = None


LoginResponse = TokenPair


class RefreshRequest(BaseModel):
    refresh_token: str
