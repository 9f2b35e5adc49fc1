# coin_dashboard/main.py
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from coin_dashboard.config.settings import Settings, get_settings
from coin_dashboard.db.kv_store import KeyValueStore
from coin_dashboard.jobs.refresher import PeriodicRefresher
from coin_dashboard.schemas.market import GlobalSnapshot, MarketRecord
from coin_dashboard.services.coingecko import CoinGeckoClient
from coin_dashboard.services.market_view import (
    ASC,
    Sentiment,
    filter_by_text,
    sentiment,
    sort_by,
    top_gainers,
    top_losers,
    watchlist_records,
)
from coin_dashboard.services.watchlist import Watchlist

logger = logging.getLogger("coin_dashboard.main")

TABS = ("all", "trending", "gainers", "losers", "watchlist")


@dataclass(frozen=True)
class MarketBoard:
    coins: List[MarketRecord] = field(default_factory=list)
    trending: List[MarketRecord] = field(default_factory=list)


async def load_market_board(client: CoinGeckoClient, per_page: int = 50, trending_limit: int = 15) -> MarketBoard:
    """Market page and trending ids in parallel, then trending ids resolved in one batch."""
    coins, trending_ids = await asyncio.gather(
        client.fetch_markets(page=1, per_page=per_page),
        client.fetch_trending(),
    )
    trending = await client.fetch_markets_by_ids(trending_ids[:trending_limit])
    return MarketBoard(coins=coins, trending=trending)


class Dashboard:
    """
    Wires one client, the watchlist and the two independent refreshers.
    The presentation layer reads `tab()`, `global_snapshot` and `sentiment()`.
    """

    def __init__(self, client: CoinGeckoClient, watchlist: Watchlist, settings: Settings):
        self.client = client
        self.watchlist = watchlist
        self.settings = settings

        self.markets: PeriodicRefresher[MarketBoard] = PeriodicRefresher(
            "markets",
            lambda: load_market_board(client, settings.MARKETS_PER_PAGE, settings.TRENDING_LIMIT),
            settings.MARKETS_REFRESH_SECONDS,
        )
        self.global_stats: PeriodicRefresher[GlobalSnapshot] = PeriodicRefresher(
            "global",
            client.fetch_global_snapshot,
            settings.GLOBAL_REFRESH_SECONDS,
        )

    @property
    def board(self) -> MarketBoard:
        return self.markets.current or MarketBoard()

    @property
    def global_snapshot(self) -> Optional[GlobalSnapshot]:
        return self.global_stats.current

    def tab(
        self,
        name: str = "all",
        query: str = "",
        sort_field: str = "market_cap_rank",
        direction: str = ASC,
    ) -> List[MarketRecord]:
        board = self.board
        limit = self.settings.MOVERS_LIMIT

        if name == "all":
            records = board.coins
        elif name == "trending":
            records = board.trending
        elif name == "gainers":
            return filter_by_text(top_gainers(board.coins, limit), query)
        elif name == "losers":
            return filter_by_text(top_losers(board.coins, limit), query)
        elif name == "watchlist":
            records = watchlist_records(board.coins, self.watchlist)
        else:
            raise ValueError(f"Unknown tab: {name}")

        return sort_by(filter_by_text(records, query), sort_field, direction)

    def sentiment(self) -> Sentiment:
        return sentiment(self.board.coins)

    async def toggle_watchlist(self, coin_id: str) -> bool:
        return await self.watchlist.toggle(coin_id)

    def info(self) -> Dict[str, Any]:
        return {
            "markets": self.markets.info(),
            "global": self.global_stats.info(),
            "watchlist_size": len(self.watchlist),
        }

    def start(self) -> None:
        self.markets.start()
        self.global_stats.start()
        logger.info("✅ dashboard started")

    async def stop(self) -> None:
        await asyncio.gather(self.markets.stop(), self.global_stats.stop())
        logger.info("🛑 dashboard stopped")

    async def aclose(self) -> None:
        await self.stop()
        await self.client.aclose()


async def build_dashboard(
    settings: Optional[Settings] = None,
    session_factory_fn: Optional[Callable[[], AsyncSession]] = None,
    client: Optional[CoinGeckoClient] = None,
) -> Dashboard:
    """Create state tables, load the watchlist and build the single API client."""
    settings = settings or get_settings()

    if session_factory_fn is None:
        from coin_dashboard.db.bootstrap import ensure_tables
        from coin_dashboard.db.session import engine, session_factory

        await ensure_tables(engine)
        session_factory_fn = session_factory

    watchlist = await Watchlist.load(KeyValueStore(session_factory_fn), settings.WATCHLIST_KEY)
    client = client or CoinGeckoClient.from_settings(settings)
    return Dashboard(client, watchlist, settings)
