"""Daily consensus index over all sources.

Walks every day between the earliest and latest distribution snapshot,
averages whichever sources reported that day, folds in the binary market and
records the lower/median/upper years.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Sequence

from agi_index.core.alignment import MarketLookup, index_by_day
from agi_index.core.config import IndexSettings
from agi_index.core.distribution import combine_day, extract_percentiles
from agi_index.core.schemas import (
    BinaryMarketPoint,
    IndexDataPoint,
    IndexResult,
    SourceSnapshot,
    StartDates,
)
from agi_index.core.utils import ONE_DAY, day_key, ensure_utc, from_iso, start_of_day, to_iso

logger = logging.getLogger(__name__)


def trim_to_cutoff(data: Sequence[IndexDataPoint], cutoff: datetime) -> list[IndexDataPoint]:
    """Drop points before ``cutoff``; if none remain, keep the full series."""
    cutoff = ensure_utc(cutoff)
    for position, point in enumerate(data):
        if from_iso(point.date) >= cutoff:
            return list(data[position:])
    return list(data)


def _first_date(dates: Sequence[datetime]) -> datetime | None:
    return min(dates) if dates else None


def _effective_start(first: datetime | None, computed: datetime | None) -> datetime | None:
    if first is None or computed is None:
        return first
    return max(first, computed)


def compute_index(
    weak_agi: Sequence[SourceSnapshot],
    full_agi: Sequence[SourceSnapshot],
    turing_test: Sequence[SourceSnapshot],
    manifold: Sequence[SourceSnapshot],
    kalshi: Sequence[BinaryMarketPoint],
    settings: IndexSettings | None = None,
) -> IndexResult:
    settings = settings or IndexSettings()
    histories = {
        "weak_agi": weak_agi,
        "full_agi": full_agi,
        "turing_test": turing_test,
        "manifold": manifold,
    }
    all_dates = [ensure_utc(s.date) for history in histories.values() for s in history]
    if not all_dates:
        raise ValueError("compute_index needs at least one distribution snapshot")

    by_day = {name: index_by_day(history) for name, history in histories.items()}
    market = MarketLookup(kalshi)

    data: list[IndexDataPoint] = []
    skipped: list[str] = []
    day = start_of_day(min(all_dates))
    last_day = start_of_day(max(all_dates))
    while day <= last_day:
        key = day_key(day)
        samples = [indexed[key].distribution for indexed in by_day.values() if key in indexed]
        market_point = market.at_or_after(day)
        final = combine_day(
            samples,
            None if market_point is None else market_point.probability_percent,
            settings,
        )
        percentiles = None if final is None else extract_percentiles(final, settings)
        if percentiles is None:
            logger.debug(f"No index value for {day.date()} ({len(samples)} sources present)")
            skipped.append(day.date().isoformat())
        else:
            data.append(
                IndexDataPoint(
                    date=to_iso(day),
                    value=percentiles.median,
                    range=(percentiles.lower, percentiles.upper),
                )
            )
        day = day + ONE_DAY

    trimmed = trim_to_cutoff(data, settings.index_cutoff_date)
    computed = from_iso(trimmed[0].date) if trimmed else None
    start_dates = StartDates(
        computed=computed,
        weak_agi=_effective_start(_first_date([s.date for s in weak_agi]), computed),
        full_agi=_effective_start(_first_date([s.date for s in full_agi]), computed),
        turing_test=_effective_start(_first_date([s.date for s in turing_test]), computed),
        manifold=_effective_start(_first_date([s.date for s in manifold]), computed),
        kalshi=_effective_start(_first_date([p.date for p in kalshi]), computed),
    )
    if skipped:
        logger.warning(f"Skipped {len(skipped)} days without a usable distribution")
    logger.info(f"Computed {len(trimmed)} index points ({len(data) - len(trimmed)} trimmed before cutoff)")
    return IndexResult(data=trimmed, start_dates=start_dates, skipped_days=skipped)
