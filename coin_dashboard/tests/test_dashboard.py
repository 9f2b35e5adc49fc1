from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from coin_dashboard.config.settings import Settings
from coin_dashboard.db import models  # noqa: F401
from coin_dashboard.db.session import Base
from coin_dashboard.main import build_dashboard, load_market_board
from coin_dashboard.schemas.market import GlobalSnapshot, MarketRecord


def _rec(coin_id: str, rank: int, change=None) -> MarketRecord:
    return MarketRecord(
        id=coin_id,
        symbol=coin_id[:3],
        name=coin_id.title(),
        market_cap_rank=rank,
        price_change_percentage_24h=change,
    )


COINS = [
    _rec("bitcoin", 1, 1.0),
    _rec("ethereum", 2, -2.0),
    _rec("solana", 5, 6.0),
    _rec("dogecoin", 8, None),
]


class _FakeClient:
    def __init__(self):
        self.started: list[str] = []
        self.both_started = asyncio.Event()
        self.batched: list[list[str]] = []
        self.closed = False

    async def _mark(self, name: str) -> None:
        self.started.append(name)
        if {"markets", "trending"} <= set(self.started):
            self.both_started.set()
        # neither call can finish until the other has been issued
        await asyncio.wait_for(self.both_started.wait(), timeout=1)

    async def fetch_markets(self, page=1, per_page=50):
        await self._mark("markets")
        return COINS[:per_page]

    async def fetch_trending(self):
        await self._mark("trending")
        return ["solana", "pepe", "bitcoin"]

    async def fetch_markets_by_ids(self, ids):
        self.batched.append(list(ids))
        by_id = {c.id: c for c in COINS}
        return [by_id[i] for i in ids if i in by_id]

    async def fetch_global_snapshot(self):
        return GlobalSnapshot(total_market_cap=2.5e12, total_volume=1e11, dominance={"btc": 52.0})

    async def aclose(self):
        self.closed = True


@pytest_asyncio.fixture
async def sessionmaker():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    try:
        yield Session
    finally:
        await engine.dispose()


def _settings() -> Settings:
    return replace(Settings.from_env(), MOVERS_LIMIT=5, TRENDING_LIMIT=2, MARKETS_PER_PAGE=50)


@pytest.mark.asyncio
async def test_market_board_fetches_concurrently_then_batches_trending():
    client = _FakeClient()
    board = await load_market_board(client, per_page=50, trending_limit=2)

    assert [c.id for c in board.coins] == ["bitcoin", "ethereum", "solana", "dogecoin"]
    assert client.batched == [["solana", "pepe"]]
    assert [c.id for c in board.trending] == ["solana"]


@pytest.mark.asyncio
async def test_dashboard_tabs_and_watchlist(sessionmaker):
    client = _FakeClient()
    dash = await build_dashboard(_settings(), session_factory_fn=sessionmaker, client=client)

    # nothing fetched yet: empty views, no crash
    assert dash.tab("all") == []
    assert dash.sentiment().up_ratio == 0

    assert await dash.markets.refresh() is True
    assert await dash.global_stats.refresh() is True

    assert [c.id for c in dash.tab("all")] == ["bitcoin", "ethereum", "solana", "dogecoin"]
    assert [c.id for c in dash.tab("all", sort_field="price_change_percentage_24h", direction="desc")] == [
        "solana",
        "bitcoin",
        "ethereum",
        "dogecoin",
    ]
    assert [c.id for c in dash.tab("all", query="eth")] == ["ethereum"]
    assert [c.id for c in dash.tab("trending")] == ["solana"]
    assert [c.id for c in dash.tab("gainers")] == ["solana", "bitcoin"]
    assert [c.id for c in dash.tab("losers")] == ["ethereum"]
    assert dash.tab("watchlist") == []

    assert await dash.toggle_watchlist("dogecoin") is True
    assert [c.id for c in dash.tab("watchlist")] == ["dogecoin"]

    s = dash.sentiment()
    assert (s.up, s.down) == (2, 1)
    assert dash.global_snapshot.dominance_of("btc") == 52.0

    info = dash.info()
    assert info["watchlist_size"] == 1
    assert info["markets"]["applied_seq"] == 1

    with pytest.raises(ValueError):
        dash.tab("favourites")

    await dash.aclose()
    assert client.closed


@pytest.mark.asyncio
async def test_watchlist_survives_rebuild(sessionmaker):
    dash = await build_dashboard(_settings(), session_factory_fn=sessionmaker, client=_FakeClient())
    await dash.toggle_watchlist("solana")
    await dash.aclose()

    again = await build_dashboard(_settings(), session_factory_fn=sessionmaker, client=_FakeClient())
    assert "solana" in again.watchlist
    await again.aclose()


@pytest.mark.asyncio
async def test_start_and_stop_run_both_refreshers(sessionmaker):
    dash = await build_dashboard(_settings(), session_factory_fn=sessionmaker, client=_FakeClient())
    dash.start()
    for _ in range(50):
        await asyncio.sleep(0)
        if dash.markets.current is not None and dash.global_snapshot is not None:
            break

    await dash.stop()
    assert dash.markets.current is not None
    assert dash.global_snapshot is not None
    assert not dash.markets.running
    assert not dash.global_stats.running
