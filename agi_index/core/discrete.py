"""Manifold multiple-choice market: one answer per arrival year.

Bets update one answer's probability at a time. The daily state is the
latest ``probAfter`` seen for every year, carried forward from day to day.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Mapping, Sequence

import numpy as np

from agi_index.core.config import IndexSettings
from agi_index.core.distribution import distribution_from_lookup
from agi_index.core.schemas import Bet, ChartDataPoint, SourceSnapshot
from agi_index.core.utils import ONE_DAY, start_of_day

logger = logging.getLogger(__name__)


MANIFOLD_ANSWER_YEARS: dict[str, int] = {
    "2cdb91507b0d": 2024,
    "ed73a628dbcc": 2025,
    "e8aae6520563": 2026,
    "67ea62c46640": 2027,
    "1d0fd5249e2c": 2028,
    "fc63e30d0cd3": 2029,
    "5d48ed784957": 2030,
    "da223cf612c4": 2031,
    "1120df2c949a": 2032,
    "77f7e579eac6": 2033,
    "c398134a9e34": 2034,
    "b586da03d2ec": 2035,
    "a6051fa037db": 2036,
    "4271e6a3e455": 2037,
    "aa017a9cebe3": 2038,
    "46ff975d1efe": 2039,
    "cccb4c406baf": 2040,
    "9ae19221aa18": 2041,
    "6039886c26fa": 2042,
    "4322a973f59c": 2043,
    "1f24b6787f0d": 2044,
    "0f172ca6223b": 2045,
    "9b885d17779f": 2046,
    "9199140a0c5f": 2047,
    "659fc2df1d1d": 2048,
    "c43dc66076d5": 2049,
}


@dataclass(frozen=True)
class DailyProbabilities:
    date: datetime
    probabilities: Mapping[int, float]


def fold_answer_probabilities(
    state: Mapping[int, float],
    bets: Iterable[Bet],
    answer_years: Mapping[str, int] = MANIFOLD_ANSWER_YEARS,
) -> dict[int, float]:
    updated = dict(state)
    for bet in sorted(bets, key=lambda b: b.created_time):
        if bet.is_cancelled:
            continue
        year = answer_years.get(bet.answer_id)
        if year is None:
            continue
        updated[year] = bet.prob_after
    return updated


def daily_answer_probabilities(
    bets: Sequence[Bet],
    answer_years: Mapping[str, int] = MANIFOLD_ANSWER_YEARS,
    until: datetime | None = None,
) -> list[DailyProbabilities]:
    """Per-day carry-forward snapshots, starting on the first day every year has a price."""
    if not bets:
        return []
    by_day: dict[datetime, list[Bet]] = defaultdict(list)
    for bet in bets:
        by_day[start_of_day(bet.created_time)].append(bet)

    required = set(answer_years.values())
    current = min(by_day)
    end = max(by_day) if until is None else max(max(by_day), start_of_day(until))

    output: list[DailyProbabilities] = []
    state: dict[int, float] = {}
    while current <= end:
        state = fold_answer_probabilities(state, by_day.get(current, ()), answer_years)
        if required.issubset(state):
            output.append(DailyProbabilities(date=current, probabilities=state))
        current = current + ONE_DAY
    return output


def answer_distribution(
    probabilities: Mapping[int, float],
    settings: IndexSettings | None = None,
) -> np.ndarray | None:
    """Normalized year distribution; the final answer's mass is spread evenly to ``end_year``."""
    settings = settings or IndexSettings()
    if not probabilities:
        return None
    last_year = max(probabilities)
    spread = probabilities[last_year] / (settings.end_year - last_year + 1)
    lookup = {
        year: (probabilities.get(year, 0.0) if year < last_year else spread)
        for year in range(settings.start_year, settings.end_year + 1)
    }
    return distribution_from_lookup(lookup, settings)


def answer_percentiles(
    probabilities: Mapping[int, float],
    settings: IndexSettings | None = None,
) -> tuple[int, int, int] | None:
    settings = settings or IndexSettings()
    total = sum(probabilities.values())
    if total <= 0:
        return None
    thresholds = settings.quantiles
    found: list[int | None] = [None, None, None]
    cumulative = 0.0
    scanned = 0
    for year in sorted(probabilities):
        probability = probabilities[year]
        if probability <= 0:
            continue
        if scanned >= settings.max_answer_years_scanned:
            break
        scanned += 1
        cumulative += probability / total
        for i, threshold in enumerate(thresholds):
            if found[i] is None and cumulative > threshold:
                found[i] = year
    if any(year is None for year in found):
        return None
    return found[0], found[1], found[2]


@dataclass
class ManifoldSeries:
    snapshots: list[SourceSnapshot]
    datapoints: list[ChartDataPoint]


def manifold_series(
    bets: Sequence[Bet],
    settings: IndexSettings | None = None,
    until: datetime | None = None,
    answer_years: Mapping[str, int] = MANIFOLD_ANSWER_YEARS,
) -> ManifoldSeries:
    settings = settings or IndexSettings()
    snapshots: list[SourceSnapshot] = []
    datapoints: list[ChartDataPoint] = []
    for day in daily_answer_probabilities(bets, answer_years, until=until):
        distribution = answer_distribution(day.probabilities, settings)
        if distribution is None:
            logger.warning(f"Dropping Manifold snapshot on {day.date.date()}: all answers at zero")
        else:
            snapshots.append(SourceSnapshot(date=day.date, distribution=distribution))
        bounds = answer_percentiles(day.probabilities, settings)
        if bounds is not None:
            lower, median, upper = bounds
            datapoints.append(ChartDataPoint(date=day.date, value=float(median), range=(float(lower), float(upper))))
    logger.info(f"Built {len(snapshots)} Manifold snapshots from {len(bets)} bets")
    return ManifoldSeries(snapshots=snapshots, datapoints=datapoints)
