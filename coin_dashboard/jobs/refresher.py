# coin_dashboard/jobs/refresher.py
from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Set, TypeVar

from coin_dashboard.services.errors import MarketDataError
from coin_dashboard.utils.time import iso_z, utcnow

logger = logging.getLogger("coin_dashboard.refresher")

T = TypeVar("T")


class PeriodicRefresher(Generic[T]):
    """
    Keeps the last good value of one data set and refreshes it on a timer.

    Each tick launches a fetch without waiting for earlier ones. Fetches are
    numbered when started; a result is applied only if it is newer than the
    last applied one, so a slow old response cannot overwrite a fresher
    snapshot. Failures leave the current value in place.
    """

    def __init__(self, name: str, fetch: Callable[[], Awaitable[T]], interval_s: float = 30.0):
        self.name = name
        self._fetch = fetch
        self._interval_s = max(1.0, float(interval_s))

        self._value: Optional[T] = None
        self._issued_seq = 0
        self._applied_seq = 0

        self.last_success_utc: Optional[datetime] = None
        self.last_success_ms: Optional[int] = None
        self.last_error: Optional[str] = None
        self.last_error_utc: Optional[datetime] = None
        self.consecutive_failures = 0
        self.superseded = 0

        self._stop_event: Optional[asyncio.Event] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    # ----------------------------
    # read side
    # ----------------------------
    @property
    def current(self) -> Optional[T]:
        return self._value

    @property
    def running(self) -> bool:
        return bool(self._loop_task and not self._loop_task.done())

    def info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "running": self.running,
            "interval_s": self._interval_s,
            "has_value": self._value is not None,
            "issued_seq": self._issued_seq,
            "applied_seq": self._applied_seq,
            "inflight": len(self._inflight),
            "superseded": self.superseded,
            "last_success_iso": iso_z(self.last_success_utc),
            "last_success_ms": self.last_success_ms,
            "consecutive_failures": self.consecutive_failures,
            "last_error_iso": iso_z(self.last_error_utc),
            "last_error": self.last_error,
        }

    # ----------------------------
    # one refresh
    # ----------------------------
    async def refresh(self) -> bool:
        """Run one fetch; True if its result became the current value."""
        self._issued_seq += 1
        seq = self._issued_seq
        t0 = time.perf_counter()

        try:
            value = await self._fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if seq <= self._applied_seq:
                self.superseded += 1
                logger.info("%s dropped stale failure | seq=%d | applied=%d | err=%s", self.name, seq, self._applied_seq, e)
                return False
            self._record_failure(e)
            if isinstance(e, MarketDataError):
                logger.warning("⚠️ %s refresh failed | seq=%d | err=%s", self.name, seq, e)
            else:
                logger.exception("❌ %s refresh error | seq=%d", self.name, seq)
            return False

        dt_ms = int((time.perf_counter() - t0) * 1000)
        if seq <= self._applied_seq:
            self.superseded += 1
            logger.info("%s dropped stale result | seq=%d | applied=%d", self.name, seq, self._applied_seq)
            return False

        self._value = value
        self._applied_seq = seq
        self.last_success_utc = utcnow()
        self.last_success_ms = dt_ms
        self.consecutive_failures = 0
        logger.info("✅ %s refreshed | seq=%d | %dms", self.name, seq, dt_ms)
        return True

    def _record_failure(self, e: BaseException) -> None:
        self.last_error = repr(e)[:300]
        self.last_error_utc = utcnow()
        self.consecutive_failures += 1

    # ----------------------------
    # timer loop
    # ----------------------------
    def _spawn_refresh(self) -> None:
        task = asyncio.create_task(self.refresh(), name=f"{self.name}:refresh")
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _loop(self, stop_event: asyncio.Event) -> None:
        logger.info("%s refresher started | interval_s=%s", self.name, self._interval_s)
        while not stop_event.is_set():
            self._spawn_refresh()

            # stop-aware sleep
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval_s)
            except asyncio.TimeoutError:
                pass
        logger.info("🛑 %s refresher stopped", self.name)

    def start(self) -> None:
        if self.running:
            logger.warning("⚠️ %s refresher already started", self.name)
            return
        self._stop_event = asyncio.Event()
        self._loop_task = asyncio.create_task(self._loop(self._stop_event), name=f"{self.name}:loop")

    async def stop(self, timeout_s: float = 6.0) -> None:
        if self._stop_event:
            self._stop_event.set()

        tasks = [t for t in [self._loop_task, *self._inflight] if t is not None]
        try:
            if tasks:
                await asyncio.wait_for(asyncio.gather(*tasks, return_exceptions=True), timeout=timeout_s)
        except asyncio.TimeoutError:
            for t in tasks:
                if not t.done():
                    t.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._loop_task = None
            self._stop_event = None
            self._inflight.clear()
