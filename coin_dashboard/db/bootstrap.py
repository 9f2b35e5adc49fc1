# coin_dashboard/db/bootstrap.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine

from coin_dashboard.db import models  # noqa: F401  (registers tables on Base.metadata)
from coin_dashboard.db.session import Base


async def ensure_tables(engine: AsyncEngine) -> None:
    """
    Create the state tables idempotently at startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
