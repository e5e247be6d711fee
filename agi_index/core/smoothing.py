from __future__ import annotations

from typing import Sequence

from agi_index.core.schemas import ChartDataPoint, IndexDataPoint
from agi_index.core.utils import from_iso


def _as_chart_point(point: ChartDataPoint | IndexDataPoint) -> ChartDataPoint:
    if isinstance(point, ChartDataPoint):
        return point
    return ChartDataPoint(
        date=from_iso(point.date),
        value=float(point.value),
        range=(float(point.range[0]), float(point.range[1])),
    )


def smooth_series(
    points: Sequence[ChartDataPoint | IndexDataPoint],
    window: int = 7,
) -> list[ChartDataPoint]:
    """Centered moving average over values and, when present, ranges."""
    series = [_as_chart_point(p) for p in points]
    if not series or window <= 1:
        return series

    half = min(window, len(series)) // 2
    smoothed: list[ChartDataPoint] = []
    for index, point in enumerate(series):
        start = max(0, index - half)
        end = min(len(series) - 1, index + half)
        neighbours = series[start : end + 1]
        value = sum(p.value for p in neighbours) / len(neighbours)
        bounds = None
        if point.range is not None:
            ranged = [p.range for p in neighbours if p.range is not None]
            bounds = (
                sum(r[0] for r in ranged) / len(ranged),
                sum(r[1] for r in ranged) / len(ranged),
            )
        smoothed.append(ChartDataPoint(date=point.date, value=value, range=bounds))
    return smoothed
