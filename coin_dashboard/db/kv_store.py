# coin_dashboard/db/kv_store.py
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from coin_dashboard.db.models import KeyValueEntry
from coin_dashboard.utils.time import utcnow


class KeyValueStore:
    """Durable string key -> string value mapping backed by the state database."""

    def __init__(self, session_factory_fn: Callable[[], AsyncSession]):
        self._session_factory = session_factory_fn

    async def get(self, key: str) -> Optional[str]:
        async with self._session_factory() as session:
            res = await session.execute(select(KeyValueEntry.value).where(KeyValueEntry.key == key))
            return res.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        stmt = sqlite_insert(KeyValueEntry).values(key=key, value=value, updated_at=utcnow())
        stmt = stmt.on_conflict_do_update(
            index_elements=["key"],
            set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()
