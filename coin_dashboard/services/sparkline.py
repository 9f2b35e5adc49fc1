from __future__ import annotations

from typing import List, Sequence, Tuple


def sparkline_points(
    prices: Sequence[float],
    width: float = 96,
    height: float = 48,
) -> List[Tuple[float, float]]:
    """
    Scale price samples into a width x height box (y grows downward).
    Empty or flat series have nothing to draw and return [].
    """
    if len(prices) < 2:
        return []

    lo = min(prices)
    hi = max(prices)
    span = hi - lo
    if span == 0:
        return []

    step = width / (len(prices) - 1)
    return [(i * step, height - ((p - lo) / span) * height) for i, p in enumerate(prices)]


def sparkline_trend(prices: Sequence[float]) -> str:
    if len(prices) < 2 or prices[-1] == prices[0]:
        return "flat"
    return "up" if prices[-1] > prices[0] else "down"
