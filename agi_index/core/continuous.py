"""Metaculus continuous forecasts: 201-point CDFs to per-year probabilities."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

import numpy as np

from agi_index.core.config import IndexSettings
from agi_index.core.distribution import distribution_from_lookup
from agi_index.core.scaling import end_year, inverse_transform, start_year, transform, year_start_timestamp
from agi_index.core.schemas import (
    CdfForecast,
    ChartDataPoint,
    QuestionSnapshot,
    ScalingSpec,
    SourceSnapshot,
    YearForecast,
)
from agi_index.core.utils import ONE_DAY, ensure_utc, from_timestamp

logger = logging.getLogger(__name__)


def question_year_bounds(scaling: ScalingSpec) -> tuple[int, int]:
    if not scaling.is_bounded:
        raise ValueError("Question scaling has no range; cannot derive a year range")
    return start_year(float(scaling.range_min)), end_year(float(scaling.range_max))


def interpolate_cdf(cdf: Sequence[float], unit: float, buckets: int = 200) -> float:
    rough_index = min(max(unit * buckets, 0.0), float(buckets))
    lower_index = math.floor(rough_index)
    upper_index = math.ceil(rough_index)
    lower_value = cdf[lower_index]
    upper_value = cdf[upper_index]
    return lower_value + (upper_value - lower_value) * (rough_index - lower_index)


def year_forecasts(
    cdf: Sequence[float],
    scaling: ScalingSpec,
    first_year: int,
    last_year: int,
    buckets: int = 200,
) -> list[YearForecast]:
    results: list[YearForecast] = []
    previous_cdf = 0.0
    for year in range(first_year, last_year + 1):
        unit = inverse_transform(scaling, year_start_timestamp(year))
        cdf_value = interpolate_cdf(cdf, unit, buckets)
        results.append(YearForecast(year=year, cdf_value=cdf_value, pdf_value=cdf_value - previous_cdf))
        previous_cdf = cdf_value
    return results


def _interpolated_index(cdf: Sequence[float], index: int, target: float) -> float:
    if index == 0:
        return 0.0
    lower = cdf[index - 1]
    upper = cdf[index]
    return (index - 1) + (target - lower) / (upper - lower)


@dataclass(frozen=True)
class CdfMarkers:
    lower: float
    median: float
    upper: float

    def as_chart_point(self, date: datetime) -> ChartDataPoint:
        return ChartDataPoint(date=date, value=self.median, range=(self.lower, self.upper))


def cdf_percentiles(
    cdf: Sequence[float],
    scaling: ScalingSpec,
    settings: IndexSettings | None = None,
) -> CdfMarkers | None:
    """Real-valued lower/median/upper markers read straight off the CDF.

    Interpolates the bucket index (not the CDF value) around each threshold
    and maps it back through the question scaling.
    """
    settings = settings or IndexSettings()
    markers: list[float] = []
    for quantile in settings.quantiles:
        index = next((i for i, value in enumerate(cdf) if value > quantile), None)
        if index is None:
            return None
        unit_index = _interpolated_index(cdf, index, quantile)
        markers.append(transform(scaling, unit_index / settings.cdf_buckets))
    return CdfMarkers(lower=markers[0], median=markers[1], upper=markers[2])


@dataclass
class QuestionHistory:
    snapshots: list[QuestionSnapshot]
    datapoints: list[ChartDataPoint]


def daily_question_history(
    forecasts: Sequence[CdfForecast],
    scaling: ScalingSpec,
    until: datetime,
    settings: IndexSettings | None = None,
) -> QuestionHistory:
    """Expand forecast rows into one snapshot per day.

    Each day carries the most recent row whose start time is on or before it.
    """
    settings = settings or IndexSettings()
    if not forecasts:
        raise ValueError("No forecasts to expand")
    rows = sorted(forecasts, key=lambda row: row.start_time)
    first_year, last_year = question_year_bounds(scaling)

    per_row_years = [
        year_forecasts(row.cdf, scaling, first_year, last_year, settings.cdf_buckets) for row in rows
    ]
    per_row_markers = [cdf_percentiles(row.cdf, scaling, settings) for row in rows]

    snapshots: list[QuestionSnapshot] = []
    datapoints: list[ChartDataPoint] = []
    forecast_index = -1
    current = ensure_utc(rows[0].start_time)
    end = ensure_utc(until)
    while current <= end:
        while forecast_index + 1 < len(rows) and ensure_utc(rows[forecast_index + 1].start_time) <= current:
            forecast_index += 1
        if forecast_index == -1:
            raise ValueError(f"No forecast starts on or before {current.isoformat()}")
        snapshots.append(QuestionSnapshot(date=current, years=per_row_years[forecast_index]))
        markers = per_row_markers[forecast_index]
        if markers is not None:
            datapoints.append(markers.as_chart_point(current))
        current = current + ONE_DAY

    logger.info(f"Expanded {len(rows)} forecasts into {len(snapshots)} daily snapshots")
    return QuestionHistory(snapshots=snapshots, datapoints=datapoints)


def question_distribution(
    years: Sequence[YearForecast],
    settings: IndexSettings | None = None,
) -> np.ndarray | None:
    """Normalized year distribution from one day's per-year masses; None when there is no mass."""
    settings = settings or IndexSettings()
    return distribution_from_lookup({item.year: item.pdf_value for item in years}, settings)


def question_snapshots(
    history: Sequence[QuestionSnapshot],
    settings: IndexSettings | None = None,
) -> list[SourceSnapshot]:
    settings = settings or IndexSettings()
    output: list[SourceSnapshot] = []
    for snapshot in history:
        distribution = question_distribution(snapshot.years, settings)
        if distribution is None:
            logger.warning(f"Dropping snapshot on {snapshot.date.date()}: no probability mass inside the year range")
            continue
        output.append(SourceSnapshot(date=snapshot.date, distribution=distribution))
    return output


def marker_years(datapoints: Sequence[ChartDataPoint]) -> list[ChartDataPoint]:
    """Chart points with timestamp markers expressed as fractional years."""
    def _year(seconds: float) -> float:
        moment = from_timestamp(seconds)
        start = year_start_timestamp(moment.year)
        return moment.year + (seconds - start) / (year_start_timestamp(moment.year + 1) - start)

    output: list[ChartDataPoint] = []
    for point in datapoints:
        bounds = None if point.range is None else (_year(point.range[0]), _year(point.range[1]))
        output.append(ChartDataPoint(date=point.date, value=_year(point.value), range=bounds))
    return output
