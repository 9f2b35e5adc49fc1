"""Pydantic models for CoinGecko market payloads."""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _usd(block: Any) -> Any:
    # CoinGecko detail payloads nest per-currency values: {"usd": 1.0, "eur": ...}
    if isinstance(block, dict):
        return block.get("usd")
    return block


def _block(payload: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = payload.get(key) or {}
    if not isinstance(value, dict):
        raise TypeError(f"{key} must be an object, got {type(value).__name__}")
    return value


class MarketRecord(BaseModel):
    """One asset row from /coins/markets. Percentages may be None (unknown)."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str
    image: Optional[str] = None
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    market_cap_rank: Optional[int] = Field(default=None, ge=1)
    fully_diluted_valuation: Optional[float] = None
    total_volume: Optional[float] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    price_change_24h: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    price_change_percentage_7d: Optional[float] = None
    market_cap_change_24h: Optional[float] = None
    market_cap_change_percentage_24h: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    ath: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    ath_date: Optional[str] = None
    atl: Optional[float] = None
    atl_change_percentage: Optional[float] = None
    atl_date: Optional[str] = None
    sparkline: Tuple[float, ...] = ()

    @field_validator("sparkline", mode="before")
    @classmethod
    def drop_missing_samples(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(v for v in value if v is not None)
        return value

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "MarketRecord":
        data = dict(payload)
        sparkline = data.pop("sparkline_in_7d", None) or {}
        data["sparkline"] = sparkline.get("price") if isinstance(sparkline, dict) else None
        if "price_change_percentage_7d" not in data:
            data["price_change_percentage_7d"] = data.get("price_change_percentage_7d_in_currency")
        return cls.model_validate(data)


class GlobalSnapshot(BaseModel):
    """Aggregate market figures from /global (USD)."""

    model_config = ConfigDict(frozen=True)

    total_market_cap: float
    total_volume: float
    dominance: Dict[str, float] = Field(default_factory=dict)
    market_cap_change_percentage_24h: Optional[float] = None
    active_cryptocurrencies: Optional[int] = None
    markets: Optional[int] = None

    def dominance_of(self, symbol: str) -> Optional[float]:
        return self.dominance.get(symbol.lower())

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "GlobalSnapshot":
        return cls.model_validate(
            {
                "total_market_cap": _usd(data.get("total_market_cap")),
                "total_volume": _usd(data.get("total_volume")),
                "dominance": data.get("market_cap_percentage") or {},
                "market_cap_change_percentage_24h": data.get("market_cap_change_percentage_24h_usd"),
                "active_cryptocurrencies": data.get("active_cryptocurrencies"),
                "markets": data.get("markets"),
            }
        )


class TrendingCoin(BaseModel):
    """A single entry from /search/trending."""

    id: str
    name: str
    symbol: str
    market_cap_rank: Optional[int] = None
    thumb: Optional[str] = None
    score: Optional[int] = None


class DetailedRecord(BaseModel):
    """Extended per-asset fields from /coins/{id}, flattened to USD."""

    model_config = ConfigDict(frozen=True)

    id: str
    symbol: str
    name: str
    description: str = ""
    image: Optional[str] = None
    homepage: Tuple[str, ...] = ()
    blockchain_sites: Tuple[str, ...] = ()
    market_cap_rank: Optional[int] = Field(default=None, ge=1)
    current_price: Optional[float] = None
    market_cap: Optional[float] = None
    fully_diluted_valuation: Optional[float] = None
    total_volume: Optional[float] = None
    high_24h: Optional[float] = None
    low_24h: Optional[float] = None
    price_change_24h: Optional[float] = None
    price_change_percentage_24h: Optional[float] = None
    price_change_percentage_7d: Optional[float] = None
    price_change_percentage_30d: Optional[float] = None
    market_cap_change_percentage_24h: Optional[float] = None
    circulating_supply: Optional[float] = None
    total_supply: Optional[float] = None
    max_supply: Optional[float] = None
    ath: Optional[float] = None
    ath_change_percentage: Optional[float] = None
    ath_date: Optional[str] = None
    atl: Optional[float] = None
    atl_change_percentage: Optional[float] = None
    atl_date: Optional[str] = None
    sparkline: Tuple[float, ...] = ()

    @field_validator("homepage", "blockchain_sites", mode="before")
    @classmethod
    def drop_blank_links(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(v for v in value if v)
        return value

    @field_validator("sparkline", mode="before")
    @classmethod
    def drop_missing_samples(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(v for v in value if v is not None)
        return value

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "DetailedRecord":
        md = _block(payload, "market_data")
        links = _block(payload, "links")
        description = payload.get("description") or {}
        if isinstance(description, dict):
            description = description.get("en") or ""
        image = payload.get("image") or {}
        sparkline = md.get("sparkline_7d") or {}

        return cls.model_validate(
            {
                "id": payload.get("id"),
                "symbol": payload.get("symbol"),
                "name": payload.get("name"),
                "description": description,
                "image": image.get("large") if isinstance(image, dict) else image,
                "homepage": links.get("homepage"),
                "blockchain_sites": links.get("blockchain_site"),
                "market_cap_rank": payload.get("market_cap_rank") or md.get("market_cap_rank"),
                "current_price": _usd(md.get("current_price")),
                "market_cap": _usd(md.get("market_cap")),
                "fully_diluted_valuation": _usd(md.get("fully_diluted_valuation")),
                "total_volume": _usd(md.get("total_volume")),
                "high_24h": _usd(md.get("high_24h")),
                "low_24h": _usd(md.get("low_24h")),
                "price_change_24h": md.get("price_change_24h"),
                "price_change_percentage_24h": md.get("price_change_percentage_24h"),
                "price_change_percentage_7d": md.get("price_change_percentage_7d"),
                "price_change_percentage_30d": md.get("price_change_percentage_30d"),
                "market_cap_change_percentage_24h": md.get("market_cap_change_percentage_24h"),
                "circulating_supply": md.get("circulating_supply"),
                "total_supply": md.get("total_supply"),
                "max_supply": md.get("max_supply"),
                "ath": _usd(md.get("ath")),
                "ath_change_percentage": _usd(md.get("ath_change_percentage")),
                "ath_date": _usd(md.get("ath_date")),
                "atl": _usd(md.get("atl")),
                "atl_change_percentage": _usd(md.get("atl_change_percentage")),
                "atl_date": _usd(md.get("atl_date")),
                "sparkline": sparkline.get("price") if isinstance(sparkline, dict) else None,
            }
        )
