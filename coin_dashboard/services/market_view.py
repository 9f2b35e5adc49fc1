# coin_dashboard/services/market_view.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Container, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from coin_dashboard.schemas.market import MarketRecord

ASC = "asc"
DESC = "desc"

SORTABLE_FIELDS = frozenset(f for f in MarketRecord.model_fields if f != "sparkline")


# ----------------------------
# sorting / filtering
# ----------------------------
def sort_by(records: Iterable[MarketRecord], field: str, direction: str = ASC) -> List[MarketRecord]:
    """
    Order records by `field`. Missing (None) values go last in both
    directions; ties keep their input order, so re-sorting is a no-op.
    """
    if field not in SORTABLE_FIELDS:
        raise ValueError(f"Unknown sort field: {field}")
    if direction not in (ASC, DESC):
        raise ValueError(f"Unknown sort direction: {direction}")

    present: List[MarketRecord] = []
    missing: List[MarketRecord] = []
    for r in records:
        (missing if getattr(r, field) is None else present).append(r)

    present.sort(key=lambda r: getattr(r, field), reverse=(direction == DESC))
    return present + missing


def next_sort(current_field: str, current_direction: str, field: str) -> Tuple[str, str]:
    """Clicking the active column flips direction; a new column starts ascending."""
    if field == current_field:
        return field, DESC if current_direction == ASC else ASC
    return field, ASC


def filter_by_text(records: Iterable[MarketRecord], query: str) -> List[MarketRecord]:
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)
    return [r for r in records if needle in r.name.lower() or needle in r.symbol.lower()]


def watchlist_records(records: Iterable[MarketRecord], watchlist: Container[str]) -> List[MarketRecord]:
    return [r for r in records if r.id in watchlist]


# ----------------------------
# movers / sentiment
# ----------------------------
def top_gainers(records: Iterable[MarketRecord], n: int = 5) -> List[MarketRecord]:
    up = [r for r in records if r.price_change_percentage_24h is not None and r.price_change_percentage_24h > 0]
    up.sort(key=lambda r: r.price_change_percentage_24h, reverse=True)
    return up[: max(n, 0)]


def top_losers(records: Iterable[MarketRecord], n: int = 5) -> List[MarketRecord]:
    down = [r for r in records if r.price_change_percentage_24h is not None and r.price_change_percentage_24h < 0]
    down.sort(key=lambda r: r.price_change_percentage_24h)
    return down[: max(n, 0)]


@dataclass(frozen=True)
class Sentiment:
    up: int
    down: int
    up_ratio: float

    @property
    def up_percentage(self) -> float:
        return self.up_ratio * 100


def sentiment(records: Iterable[MarketRecord]) -> Sentiment:
    up = down = 0
    for r in records:
        change = r.price_change_percentage_24h
        if change is None:
            continue
        if change > 0:
            up += 1
        elif change < 0:
            down += 1

    total = up + down
    return Sentiment(up=up, down=down, up_ratio=(up / total) if total else 0.0)


def supply_percentage(circulating: Optional[float], max_supply: Optional[float]) -> float:
    """Circulating share of max supply in percent; 0 when uncapped or unknown."""
    if not circulating or not max_supply or math.isinf(max_supply):
        return 0.0
    return circulating / max_supply * 100


# ----------------------------
# table columns
# ----------------------------
@dataclass(frozen=True)
class ColumnConfig:
    key: str
    label: str
    default_visible: bool
    mobile_visible: bool


COLUMNS: Sequence[ColumnConfig] = (
    ColumnConfig("watchlist", "Watchlist", True, True),
    ColumnConfig("rank", "Rank", False, True),
    ColumnConfig("name", "Name", True, True),
    ColumnConfig("current_price", "Price", True, True),
    ColumnConfig("price_change_percentage_24h", "24h %", True, True),
    ColumnConfig("price_change_percentage_7d", "7d %", True, False),
    ColumnConfig("market_cap", "Market Cap", False, False),
    ColumnConfig("total_volume", "Volume (24h)", False, False),
    ColumnConfig("chart", "7d Chart", True, False),
)


def default_visible_columns(mobile: bool = False) -> Dict[str, bool]:
    return {c.key: (c.mobile_visible if mobile else c.default_visible) for c in COLUMNS}


def toggle_column(visible: Mapping[str, bool], key: str) -> Dict[str, bool]:
    if key not in {c.key for c in COLUMNS}:
        raise ValueError(f"Unknown column: {key}")
    out = dict(visible)
    out[key] = not out.get(key, False)
    return out
