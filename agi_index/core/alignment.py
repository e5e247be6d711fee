from __future__ import annotations

from bisect import bisect_left
from datetime import datetime
from typing import Sequence, TypeVar

from agi_index.core.schemas import BinaryMarketPoint, SourceSnapshot
from agi_index.core.utils import day_key, to_timestamp

T = TypeVar("T", bound=SourceSnapshot)


def index_by_day(history: Sequence[T]) -> dict[int, T]:
    """Day number -> snapshot. The first snapshot of a day wins."""
    indexed: dict[int, T] = {}
    for snapshot in history:
        indexed.setdefault(day_key(snapshot.date), snapshot)
    return indexed


def nearest_snapshot(history: Sequence[T], target: datetime) -> T | None:
    """Snapshot on the same day as ``target``; no fallback to earlier days."""
    return index_by_day(history).get(day_key(target))


class MarketLookup:
    """Forward-seeking lookups over a binary market series sorted once up front."""

    def __init__(self, points: Sequence[BinaryMarketPoint]) -> None:
        self._order = sorted(range(len(points)), key=lambda i: to_timestamp(points[i].date))
        self._points = [points[i] for i in self._order]
        self._timestamps = [to_timestamp(p.date) for p in self._points]

    def _position(self, target: datetime) -> int | None:
        position = bisect_left(self._timestamps, to_timestamp(target))
        return position if position < len(self._points) else None

    def at_or_after(self, target: datetime) -> BinaryMarketPoint | None:
        position = self._position(target)
        return None if position is None else self._points[position]

    def index_at_or_after(self, target: datetime) -> int | None:
        """Index into the original sequence; 0 is a valid match."""
        position = self._position(target)
        return None if position is None else self._order[position]


def next_market_index(points: Sequence[BinaryMarketPoint], target: datetime) -> int | None:
    """Index of the earliest point dated on or after ``target``, if any."""
    return MarketLookup(points).index_at_or_after(target)
