# coin_dashboard/services/watchlist.py
from __future__ import annotations

import asyncio
import json
import logging
from typing import Dict, Iterable, Iterator, List

from coin_dashboard.db.kv_store import KeyValueStore

logger = logging.getLogger("coin_dashboard.watchlist")

DEFAULT_KEY = "crypto-watchlist"


class Watchlist:
    """
    Ordered set of asset ids, persisted as a JSON array under one key.

    Loaded once; every toggle rewrites the full set before returning.
    """

    def __init__(self, store: KeyValueStore, key: str = DEFAULT_KEY, ids: Iterable[str] = ()):
        self._store = store
        self._key = key
        # dict keeps insertion order and gives O(1) membership
        self._ids: Dict[str, None] = dict.fromkeys(ids)
        self._lock = asyncio.Lock()

    @classmethod
    async def load(cls, store: KeyValueStore, key: str = DEFAULT_KEY) -> "Watchlist":
        raw = await store.get(key)
        ids: List[str] = []
        if raw:
            try:
                data = json.loads(raw)
            except ValueError:
                data = None
            if isinstance(data, list):
                ids = [str(x) for x in data if x]
            else:
                logger.warning("⚠️ ignoring unreadable watchlist | key=%s", key)
        return cls(store, key, ids)

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    def __contains__(self, coin_id: object) -> bool:
        return coin_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    async def toggle(self, coin_id: str) -> bool:
        """Flip membership of `coin_id`, persist, and return the new membership."""
        if not coin_id:
            raise ValueError("coin_id is required")

        async with self._lock:
            updated = dict(self._ids)
            if coin_id in updated:
                del updated[coin_id]
                member = False
            else:
                updated[coin_id] = None
                member = True

            await self._store.set(self._key, json.dumps(list(updated)))
            self._ids = updated

        logger.info("watchlist %s | id=%s | size=%d", "add" if member else "remove", coin_id, len(updated))
        return member
