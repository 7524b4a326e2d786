# spabook/db/sql.py
from __future__ import annotations

import logging
import uuid
from typing import Any, AsyncIterator

from fastapi import Request
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from spabook.core.config import settings
from spabook.core.security import InvalidTokenError, decode_token
from spabook.db.base import Base
from spabook.modules.users.models import AuditLog

logger = logging.getLogger(__name__)


def _engine_kwargs(dsn: str) -> dict[str, Any]:
    if dsn.startswith("sqlite"):
        # In-memory SQLite must share one connection across the app
        if ":memory:" in dsn or dsn.rstrip("/").endswith("aiosqlite:"):
            return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_pre_ping": True,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
    }


engine = create_async_engine(
    settings.SQL_DSN,
    echo=settings.DB_ECHO,
    **_engine_kwargs(settings.SQL_DSN),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


def _user_id_from_request(request: Request) -> uuid.UUID | None:
    """Best-effort subject of the bearer token, only used to tag audit rows."""
    auth = request.headers.get("Authorization", "")
    if not auth.lower().startswith("bearer "):
        return None
    try:
        payload = decode_token(auth.split(" ", 1)[1].strip())
        return uuid.UUID(str(payload.get("sub")))
    except (InvalidTokenError, ValueError):
        return None


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Automatically apply commit/rollback and write audit logs.
    """
    async with AsyncSessionLocal() as session:
        user_id = _user_id_from_request(request)
        action = f"{request.method} {request.url.path}"

        try:
            yield session

            await session.commit()

            if request.method != "GET":
                await session.execute(
                    insert(AuditLog).values(
                        user_id=user_id,
                        action=f"{action} COMMIT",
                        details="Operation completed successfully",
                    )
                )
                await session.commit()

        except Exception as exc:
            await session.rollback()

            try:
                await session.execute(
                    insert(AuditLog).values(
                        user_id=user_id,
                        action=f"{action} ROLLBACK",
                        details=str(exc)[:500],
                    )
                )
                await session.commit()
            except SQLAlchemyError as audit_exc:
                # the database itself may be what failed
                logger.error("Could not write rollback audit for %s: %s", action, audit_exc)
                await session.rollback()

            raise


async def init_db(*, drop: bool = False) -> None:
    """
    Create all tables registered on Base.metadata.
    """
    # register every model on Base.metadata
    from spabook.modules.appointments import models as _appointments  # noqa: F401
    from spabook.modules.procedures import models as _procedures  # noqa: F401
    from spabook.modules.users import models as _users  # noqa: F401

    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (drop=%s)", drop)
