"""Client for the public CoinGecko API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx
from pydantic import ValidationError

from coin_dashboard.config.settings import Settings
from coin_dashboard.schemas.market import DetailedRecord, GlobalSnapshot, MarketRecord, TrendingCoin
from coin_dashboard.services.errors import DataError
from coin_dashboard.services.retry import RetryPolicy, Sleep, send_with_retries

logger = logging.getLogger("coin_dashboard.coingecko")

MAX_PER_PAGE = 250
VS_CURRENCY = "usd"


class CoinGeckoClient:
    """
    One instance per process; pass it to whatever needs market data.

    Every request carries the API-key header and goes through the retry
    driver, so callers only ever see success or a MarketDataError.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: str = "",
        api_key_header: str = "x-cg-demo-api-key",
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._http = http
        self._api_key = api_key
        self._api_key_header = api_key_header
        self._retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "CoinGeckoClient":
        http = httpx.AsyncClient(
            base_url=settings.COINGECKO_BASE_URL,
            timeout=settings.COINGECKO_TIMEOUT_SECONDS,
            transport=transport,
        )
        return cls(
            http,
            api_key=settings.COINGECKO_API_KEY,
            api_key_header=settings.COINGECKO_API_KEY_HEADER,
            retry_policy=RetryPolicy(
                max_retries=settings.COINGECKO_MAX_RETRIES,
                base_delay_s=settings.COINGECKO_BACKOFF_BASE_SECONDS,
            ),
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "CoinGeckoClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ----------------------------
    # transport
    # ----------------------------
    def _headers(self) -> Dict[str, str]:
        return {
            self._api_key_header: self._api_key,
            "Accept": "application/json",
        }

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async def _send() -> httpx.Response:
            return await self._http.get(path, params=params, headers=self._headers())

        response = await send_with_retries(_send, self._retry_policy, sleep=self._sleep, label=f"GET {path}")
        logger.debug("GET %s -> %d", path, response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise DataError(f"GET {path} returned a non-JSON body") from exc

    @staticmethod
    def _parse_markets(path: str, payload: Any) -> List[MarketRecord]:
        if not isinstance(payload, list):
            raise DataError(f"GET {path} expected a list, got {type(payload).__name__}")
        try:
            return [MarketRecord.from_api(item) for item in payload]
        except (ValidationError, TypeError, ValueError) as exc:
            raise DataError(f"GET {path} returned a malformed market record: {exc}") from exc

    # ----------------------------
    # public API
    # ----------------------------
    async def fetch_markets(self, page: int = 1, per_page: int = 50) -> List[MarketRecord]:
        """Return one page of assets ordered by market cap, with 7d sparkline and 7d change."""
        if page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= per_page <= MAX_PER_PAGE:
            raise ValueError(f"per_page must be between 1 and {MAX_PER_PAGE}")

        params = {
            "vs_currency": VS_CURRENCY,
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": page,
            "sparkline": "true",
            "price_change_percentage": "7d",
        }
        payload = await self._get_json("/coins/markets", params)
        return self._parse_markets("/coins/markets", payload)

    async def fetch_trending_coins(self) -> List[TrendingCoin]:
        payload = await self._get_json("/search/trending")
        coins = payload.get("coins") if isinstance(payload, dict) else None
        if not isinstance(coins, list):
            raise DataError("GET /search/trending is missing the 'coins' list")
        try:
            return [TrendingCoin.model_validate(entry["item"]) for entry in coins]
        except (ValidationError, KeyError, TypeError) as exc:
            raise DataError(f"GET /search/trending returned a malformed entry: {exc}") from exc

    async def fetch_trending(self) -> List[str]:
        """Return the ids of currently trending assets, in upstream order."""
        return [coin.id for coin in await self.fetch_trending_coins()]

    async def fetch_markets_by_ids(self, ids: Iterable[str]) -> List[MarketRecord]:
        """
        Resolve a set of ids to market records in one batched call.

        Results follow the order of `ids`; ids upstream does not know are dropped.
        """
        wanted = list(dict.fromkeys(i for i in ids if i))
        if not wanted:
            return []
        if len(wanted) > MAX_PER_PAGE:
            raise ValueError(f"at most {MAX_PER_PAGE} ids per batch")

        params = {
            "ids": ",".join(wanted),
            "vs_currency": VS_CURRENCY,
            "per_page": len(wanted),
            "sparkline": "true",
            "price_change_percentage": "7d",
        }
        payload = await self._get_json("/coins/markets", params)
        by_id = {r.id: r for r in self._parse_markets("/coins/markets", payload)}
        return [by_id[i] for i in wanted if i in by_id]

    async def fetch_detail(self, coin_id: str) -> DetailedRecord:
        if not coin_id:
            raise ValueError("coin_id is required")

        path = f"/coins/{coin_id}"
        params = {
            "localization": "false",
            "tickers": "false",
            "market_data": "true",
            "community_data": "false",
            "developer_data": "false",
            "sparkline": "true",
        }
        payload = await self._get_json(path, params)
        if not isinstance(payload, dict):
            raise DataError(f"GET {path} expected an object")
        try:
            return DetailedRecord.from_api(payload)
        except (ValidationError, TypeError, AttributeError) as exc:
            raise DataError(f"GET {path} returned a malformed detail record: {exc}") from exc

    async def fetch_global_snapshot(self) -> GlobalSnapshot:
        payload = await self._get_json("/global")
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise DataError("GET /global is missing the 'data' object")
        try:
            return GlobalSnapshot.from_api(data)
        except ValidationError as exc:
            raise DataError(f"GET /global returned a malformed snapshot: {exc}") from exc

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Free-text coin search; returns the upstream 'coins' entries."""
        query = query.strip()
        if not query:
            return []
        payload = await self._get_json("/search", {"query": query})
        coins = payload.get("coins") if isinstance(payload, dict) else None
        if not isinstance(coins, list):
            raise DataError("GET /search is missing the 'coins' list")
        return coins
