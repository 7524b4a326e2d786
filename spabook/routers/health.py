# spabook/routers/health.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.db.sql import get_session

router = APIRouter(prefix="/health")


@router.get("")
async def health_root():
    return {"status": "ok"}


@router.get("/db", responses={503: {"description": "Database unreachable"}})
async def health_db(session: AsyncSession = Depends(get_session)):
    """Readiness check: one round trip to the database, plus the configured backend."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="database_unavailable") from exc
    return {"status": "ok", "database": session.bind.dialect.name}
