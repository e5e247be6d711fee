from __future__ import annotations

from agi_index.core.binary import binary_market_points
from agi_index.core.schemas import Candlestick

DAY = 86_400
T0 = 1_704_067_200  # 2024-01-01T00:00:00Z


def test_binary_points_fill_gaps_with_last_mean() -> None:
    sticks = [
        Candlestick(end_period_ts=T0 + 3 * DAY, mean_price=None, yes_bid_close=10, yes_ask_close=20),
        Candlestick(end_period_ts=T0, mean_price=None, yes_bid_close=40, yes_ask_close=50),
        Candlestick(end_period_ts=T0 + DAY, mean_price=60, yes_bid_close=55, yes_ask_close=65),
    ]
    points = binary_market_points(sticks)

    assert [p.probability_percent for p in points] == [45.0, 60, 60, 60]
    assert points[0].date.timestamp() == T0
    assert points[-1].date.timestamp() == T0 + 3 * DAY


def test_binary_points_empty_input() -> None:
    assert binary_market_points([]) == []


def test_binary_points_respect_interval() -> None:
    sticks = [
        Candlestick(end_period_ts=T0, mean_price=30, yes_bid_close=0, yes_ask_close=0),
        Candlestick(end_period_ts=T0 + DAY, mean_price=40, yes_bid_close=0, yes_ask_close=0),
    ]
    points = binary_market_points(sticks, interval_minutes=12 * 60)
    assert [p.probability_percent for p in points] == [30, 40, 40]


def test_midpoint_rounds_halves_up() -> None:
    sticks = [
        Candlestick(end_period_ts=T0, mean_price=None, yes_bid_close=40, yes_ask_close=41),
        Candlestick(end_period_ts=T0 + DAY, mean_price=None, yes_bid_close=42, yes_ask_close=43),
    ]
    assert [p.probability_percent for p in binary_market_points(sticks)] == [41.0, 43.0]
