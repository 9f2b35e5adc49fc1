# coin_dashboard/config/settings.py
from __future__ import annotations

import os
from dataclasses import dataclass


def parse_int(value: str | None, default: int) -> int:
    if value is None or value.strip() == "":
        return default
    return int(value)


def parse_float(value: str | None, default: float) -> float:
    if value is None or value.strip() == "":
        return default
    return float(value)


@dataclass(frozen=True)
class Settings:
    COINGECKO_BASE_URL: str
    COINGECKO_API_KEY: str
    COINGECKO_API_KEY_HEADER: str
    COINGECKO_TIMEOUT_SECONDS: float
    COINGECKO_MAX_RETRIES: int
    COINGECKO_BACKOFF_BASE_SECONDS: float
    MARKETS_PER_PAGE: int
    TRENDING_LIMIT: int
    MOVERS_LIMIT: int
    MARKETS_REFRESH_SECONDS: int
    GLOBAL_REFRESH_SECONDS: int
    STATE_DB_URL: str
    WATCHLIST_KEY: str

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            COINGECKO_BASE_URL=os.getenv("COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3"),
            COINGECKO_API_KEY=os.getenv("COINGECKO_API_KEY", ""),
            COINGECKO_API_KEY_HEADER=os.getenv("COINGECKO_API_KEY_HEADER", "x-cg-demo-api-key"),
            COINGECKO_TIMEOUT_SECONDS=parse_float(os.getenv("COINGECKO_TIMEOUT_SECONDS"), 10.0),
            COINGECKO_MAX_RETRIES=parse_int(os.getenv("COINGECKO_MAX_RETRIES"), 2),
            COINGECKO_BACKOFF_BASE_SECONDS=parse_float(os.getenv("COINGECKO_BACKOFF_BASE_SECONDS"), 1.0),
            MARKETS_PER_PAGE=parse_int(os.getenv("MARKETS_PER_PAGE"), 50),
            TRENDING_LIMIT=parse_int(os.getenv("TRENDING_LIMIT"), 15),
            MOVERS_LIMIT=parse_int(os.getenv("MOVERS_LIMIT"), 5),
            MARKETS_REFRESH_SECONDS=parse_int(os.getenv("MARKETS_REFRESH_SECONDS"), 30),
            GLOBAL_REFRESH_SECONDS=parse_int(os.getenv("GLOBAL_REFRESH_SECONDS"), 30),
            STATE_DB_URL=os.getenv("STATE_DB_URL", "sqlite+aiosqlite:///./dashboard.db"),
            WATCHLIST_KEY=os.getenv("WATCHLIST_KEY", "crypto-watchlist"),
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
