from __future__ import annotations

import math

import pytest

from coin_dashboard.schemas.market import MarketRecord
from coin_dashboard.services.market_view import (
    COLUMNS,
    default_visible_columns,
    filter_by_text,
    next_sort,
    sentiment,
    sort_by,
    supply_percentage,
    toggle_column,
    top_gainers,
    top_losers,
    watchlist_records,
)
from coin_dashboard.services.sparkline import sparkline_points, sparkline_trend


def _rec(coin_id: str, change=None, **kw) -> MarketRecord:
    kw.setdefault("symbol", coin_id[:3])
    kw.setdefault("name", coin_id.title())
    return MarketRecord(id=coin_id, price_change_percentage_24h=change, **kw)


@pytest.fixture()
def coins():
    return [
        _rec("bitcoin", 2.0, symbol="btc", market_cap_rank=1, current_price=65000.0),
        _rec("ethereum", -1.0, symbol="eth", market_cap_rank=2, current_price=3000.0),
        _rec("tether", 0.0, symbol="usdt", market_cap_rank=3, current_price=1.0),
        _rec("mystery", None, symbol="mys", market_cap_rank=None, current_price=None),
        _rec("solana", 7.5, symbol="sol", market_cap_rank=5, current_price=150.0),
        _rec("dogecoin", -4.2, symbol="doge", market_cap_rank=8, current_price=0.12),
    ]


# ----------------------------
# sort_by
# ----------------------------
def test_sort_ascending_puts_missing_last(coins):
    out = sort_by(coins, "market_cap_rank", "asc")
    assert [c.id for c in out] == ["bitcoin", "ethereum", "tether", "solana", "dogecoin", "mystery"]


def test_sort_descending_still_puts_missing_last(coins):
    out = sort_by(coins, "current_price", "desc")
    assert [c.id for c in out][-1] == "mystery"
    assert [c.id for c in out][:2] == ["bitcoin", "ethereum"]


def test_sort_is_idempotent(coins):
    once = sort_by(coins, "price_change_percentage_24h", "desc")
    twice = sort_by(once, "price_change_percentage_24h", "desc")
    assert [c.id for c in once] == [c.id for c in twice]


def test_sort_is_stable_on_ties():
    records = [_rec("a", 1.0), _rec("b", 1.0), _rec("c", 1.0)]
    assert [r.id for r in sort_by(records, "price_change_percentage_24h", "desc")] == ["a", "b", "c"]


def test_sort_strings_lexicographically(coins):
    out = sort_by(coins, "name", "asc")
    assert [c.name for c in out] == sorted(c.name for c in coins)


def test_sort_rejects_unknown_field_and_direction(coins):
    with pytest.raises(ValueError):
        sort_by(coins, "not_a_field")
    with pytest.raises(ValueError):
        sort_by(coins, "name", "sideways")


def test_next_sort_flips_same_field_and_resets_new_field():
    assert next_sort("market_cap_rank", "asc", "market_cap_rank") == ("market_cap_rank", "desc")
    assert next_sort("market_cap_rank", "desc", "market_cap_rank") == ("market_cap_rank", "asc")
    assert next_sort("market_cap_rank", "desc", "current_price") == ("current_price", "asc")


# ----------------------------
# filter
# ----------------------------
def test_filter_matches_name_or_symbol_case_insensitive(coins):
    assert [c.id for c in filter_by_text(coins, "BIT")] == ["bitcoin"]
    assert [c.id for c in filter_by_text(coins, "Sol")] == ["solana"]
    assert [c.id for c in filter_by_text(coins, "usdt")] == ["tether"]
    assert filter_by_text(coins, "zzz") == []


def test_filter_empty_query_returns_input(coins):
    assert filter_by_text(coins, "") == coins
    assert filter_by_text(coins, "   ") == coins


def test_watchlist_records_keeps_list_order(coins):
    assert [c.id for c in watchlist_records(coins, {"solana", "bitcoin"})] == ["bitcoin", "solana"]


# ----------------------------
# movers / sentiment
# ----------------------------
def test_gainers_and_losers_exclude_zero_and_unknown(coins):
    gainers = top_gainers(coins, 5)
    losers = top_losers(coins, 5)

    assert [c.id for c in gainers] == ["solana", "bitcoin"]
    assert [c.id for c in losers] == ["dogecoin", "ethereum"]
    ids = {c.id for c in gainers + losers}
    assert "mystery" not in ids
    assert "tether" not in ids


def test_movers_respect_n(coins):
    assert [c.id for c in top_gainers(coins, 1)] == ["solana"]
    assert top_losers(coins, 0) == []


def test_sentiment_counts_strict_signs():
    s = sentiment([_rec("a", 5.0), _rec("b", -3.0), _rec("c", 0.0)])
    assert (s.up, s.down, s.up_ratio) == (1, 1, 0.5)
    assert s.up_percentage == 50.0


def test_sentiment_empty_is_zero_not_nan():
    s = sentiment([])
    assert s.up_ratio == 0
    assert not math.isnan(s.up_ratio)


def test_sentiment_ignores_unknown_changes(coins):
    s = sentiment(coins)
    assert (s.up, s.down) == (2, 2)
    assert s.up_ratio == pytest.approx(0.5)


def test_supply_percentage():
    assert supply_percentage(10.5e6, 21e6) == pytest.approx(50.0)
    assert supply_percentage(None, 21e6) == 0.0
    assert supply_percentage(1e6, None) == 0.0
    assert supply_percentage(1e6, math.inf) == 0.0


# ----------------------------
# columns
# ----------------------------
def test_default_columns_desktop_and_mobile():
    desktop = default_visible_columns()
    mobile = default_visible_columns(mobile=True)
    assert set(desktop) == {c.key for c in COLUMNS}
    assert desktop["chart"] is True and mobile["chart"] is False
    assert desktop["rank"] is False and mobile["rank"] is True


def test_toggle_column_returns_new_mapping():
    visible = default_visible_columns()
    toggled = toggle_column(visible, "market_cap")
    assert toggled["market_cap"] is True
    assert visible["market_cap"] is False
    with pytest.raises(ValueError):
        toggle_column(visible, "nope")


# ----------------------------
# sparkline
# ----------------------------
def test_sparkline_points_scale_into_box():
    pts = sparkline_points([1.0, 3.0, 2.0], width=100, height=50)
    assert pts == [(0.0, 50.0), (50.0, 0.0), (100.0, 25.0)]


def test_sparkline_points_empty_or_flat():
    assert sparkline_points([]) == []
    assert sparkline_points([5.0]) == []
    assert sparkline_points([2.0, 2.0, 2.0]) == []


def test_sparkline_trend():
    assert sparkline_trend([1.0, 2.0]) == "up"
    assert sparkline_trend([2.0, 1.0]) == "down"
    assert sparkline_trend([2.0, 3.0, 2.0]) == "flat"
    assert sparkline_trend([]) == "flat"


def test_market_record_allows_infinite_supply():
    rec = _rec("x", max_supply=math.inf)
    assert math.isinf(rec.max_supply)
