# spabook/routers/dev.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from spabook.db.sql import get_session
from spabook.modules.users.schemas import UserPublic
from spabook.modules.users.service import promote_to_admin

# Mounted by main.py only when DEBUG is on
router = APIRouter(prefix="/_dev", tags=["dev"])


@router.post("/promote-admin", response_model=UserPublic)
async def promote_admin(email: str, db: AsyncSession = Depends(get_session)):
    """Give reception rights to an existing account."""
    return await promote_to_admin(db, email.strip().lower())
