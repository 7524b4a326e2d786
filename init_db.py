# init_db.py
import asyncio
import logging

from sqlalchemy import select

from spabook.core.logging import setup_logging
from spabook.db.sql import AsyncSessionLocal, init_db
from spabook.modules.procedures.catalogue import DEFAULT_CATALOGUE
from spabook.modules.procedures.models import Procedure

logger = logging.getLogger("init_db")


async def seed_procedures() -> int:
    """Insert the house catalogue; procedures that already exist by name are left alone."""
    added = 0
    async with AsyncSessionLocal() as session:
        existing = set((await session.execute(select(Procedure.name))).scalars().all())
        for item in DEFAULT_CATALOGUE:
            if item["name"] in existing:
                continue
            session.add(Procedure(**item))
            added += 1
        await session.commit()
    return added


async def init_models(drop: bool = True):
    await init_db(drop=drop)
    added = await seed_procedures()
    logger.info("Database schema recreated, %d procedure(s) seeded", added)


if __name__ == "__main__":
    setup_logging(as_json=False)
    asyncio.run(init_models())
