# spabook/core/security.py
from __future__ import annotations

import re
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from spabook.core.config import settings

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(
    schemes=["bcrypt_sha256", "bcrypt"],
    default="bcrypt_sha256",
    deprecated="auto",
)

# Same rules and wording the booking site shows at sign-up
PASSWORD_RULES = (
    (re.compile(r".{8,}", re.S), "La contraseña debe tener al menos 8 caracteres"),
    (re.compile(r"[A-Z]"), "La contraseña debe incluir al menos una letra mayúscula"),
    (re.compile(r"[a-z]"), "La contraseña debe incluir al menos una letra minúscula"),
    (re.compile(r"[0-9]"), "La contraseña debe incluir al menos un número"),
    (
        re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>?]"),
        "La contraseña debe incluir al menos un carácter especial",
    ),
)


def password_policy_errors(password: str) -> list[str]:
    """Messages for every rule the password breaks; empty list means accepted."""
    return [message for rule, message in PASSWORD_RULES if not rule.search(password)]


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("empty password")
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password or not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # not a passlib hash
        return False


class InvalidTokenError(Exception):
    """The message is the short code reported to the client."""


def _encode(subject: str, token_type: str, lifetime: timedelta, **claims: Any) -> str:
    issued = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
        "jti": uuid.uuid4().hex,
    }
    payload.update({k: v for k, v in claims.items() if v is not None})
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=ALGORITHM)


def create_access_token(*, subject: str, email: Optional[str] = None, role: Optional[str] = None) -> str:
    return _encode(
        subject, ACCESS, timedelta(minutes=settings.ACCESS_EXPIRES_MIN), email=email, role=role
    )


def create_refresh_token(*, subject: str) -> str:
    return _encode(subject, REFRESH, timedelta(days=settings.REFRESH_EXPIRES_DAYS))


def decode_token(token: Optional[str], expected_type: Optional[str] = None) -> Dict[str, Any]:
    """
    Verify signature and expiry. With `expected_type`, a token of the other
    kind is refused with `invalid_token_type`.
    """
    if not token:
        raise InvalidTokenError("not_authenticated")
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError("invalid_token") from exc

    if "sub" not in payload or "type" not in payload:
        raise InvalidTokenError("invalid_token")
    if expected_type is not None and payload["type"] != expected_type:
        raise InvalidTokenError("invalid_token_type")
    return payload
