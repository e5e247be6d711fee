from __future__ import annotations

import math
from typing import Sequence

from agi_index.core.schemas import BinaryMarketPoint, Candlestick
from agi_index.core.utils import from_timestamp


def _midpoint(stick: Candlestick) -> float:
    # halves round up
    return float(math.floor((stick.yes_bid_close + stick.yes_ask_close) / 2 + 0.5))


def binary_market_points(
    candlesticks: Sequence[Candlestick],
    interval_minutes: int = 24 * 60,
) -> list[BinaryMarketPoint]:
    """Dense yes-probability series (percent) at a fixed interval.

    Each step takes the first candlestick closing at or after it. Gaps carry
    the last mean price forward; until a mean price appears the bid/ask
    midpoint is used.
    """
    if not candlesticks:
        return []
    sticks = sorted(candlesticks, key=lambda c: c.end_period_ts)
    step = interval_minutes * 60
    current = sticks[0].end_period_ts
    last = sticks[-1].end_period_ts

    points: list[BinaryMarketPoint] = []
    last_mean: float | None = None
    cursor = 0
    while current <= last:
        while cursor < len(sticks) and sticks[cursor].end_period_ts < current:
            cursor += 1
        stick = sticks[cursor]
        if stick.mean_price is not None:
            last_mean = stick.mean_price
        value = last_mean if last_mean is not None else _midpoint(stick)
        points.append(BinaryMarketPoint(date=from_timestamp(current), probability_percent=value))
        current += step
    return points
