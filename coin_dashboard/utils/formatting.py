"""Display formatting for prices, market caps, percentages and supplies.

These are the only place numeric precision policy lives; the presentation
layer renders the returned strings as-is.
"""

from __future__ import annotations

import math
from typing import Optional

MISSING = "N/A"
INFINITE = "∞"

_CURRENCY_TIERS = ((1e12, "T"), (1e9, "B"), (1e6, "M"))
_SUPPLY_TIERS = ((1e12, "T"), (1e9, "B"), (1e6, "M"), (1e3, "K"))


def _grouped(value: float) -> str:
    # thousands separators, at most 3 decimals, no trailing zeros
    return f"{value:,.3f}".rstrip("0").rstrip(".")


def _abbreviate(value: float, tiers) -> Optional[str]:
    for threshold, suffix in tiers:
        if value >= threshold:
            return f"{value / threshold:.2f}{suffix}"
    return None


def format_market_cap(value: Optional[float]) -> str:
    """$2.50B style; values under a million are grouped digits."""
    if value is None or not math.isfinite(value):
        return MISSING
    short = _abbreviate(value, _CURRENCY_TIERS)
    return f"${short}" if short else f"${_grouped(value)}"


format_currency = format_market_cap


def format_price(price: Optional[float]) -> str:
    if price is None or not math.isfinite(price):
        return MISSING
    if price < 0.01:
        return f"${price:.6f}"
    if price < 1:
        return f"${price:.4f}"
    return f"${price:,.2f}"


def format_percentage(percentage: Optional[float]) -> str:
    if percentage is None or not math.isfinite(percentage):
        return MISSING
    if percentage == 0:
        percentage = 0.0  # no "-0.00%"
    return f"{percentage:+.2f}%"


def format_supply(supply: Optional[float]) -> str:
    if supply is None or math.isnan(supply):
        return MISSING
    if math.isinf(supply):
        return INFINITE
    return _abbreviate(supply, _SUPPLY_TIERS) or _grouped(supply)
