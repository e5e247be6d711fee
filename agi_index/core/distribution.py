"""Year distributions: building, averaging, market reweighting and percentiles.

A year distribution is a read-only float array with one slot per calendar
year from ``settings.start_year`` to ``settings.end_year`` holding probability
mass (not density). Every function here returns a fresh array.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from agi_index.core.config import IndexSettings
from agi_index.core.schemas import Percentiles

logger = logging.getLogger(__name__)


def freeze(values: Sequence[float] | np.ndarray) -> np.ndarray:
    array = np.array(values, dtype=float)
    array.flags.writeable = False
    return array


def normalize(values: Sequence[float] | np.ndarray) -> np.ndarray | None:
    """Scale ``values`` to sum to 1. Returns None when there is no mass to scale."""
    array = np.asarray(values, dtype=float)
    total = float(array.sum())
    if not math.isfinite(total) or total <= 0.0:
        return None
    return freeze(array / total)


def distribution_from_lookup(
    lookup: Mapping[int, float],
    settings: IndexSettings,
) -> np.ndarray | None:
    """Build a normalized distribution from a ``year -> mass`` lookup.

    Years missing from the lookup get zero mass; years in the lookup outside
    the configured range are ignored.
    """
    values = np.zeros(settings.year_range, dtype=float)
    for offset in range(settings.year_range):
        value = lookup.get(settings.year_at(offset))
        if value:
            values[offset] = float(value)
    return normalize(values)


def average_distributions(distributions: Sequence[np.ndarray]) -> np.ndarray | None:
    if not distributions:
        return None
    return freeze(np.mean(np.vstack(distributions), axis=0))


def band_masses(distribution: np.ndarray, settings: IndexSettings) -> tuple[float, float]:
    offset = settings.cutoff_offset
    return float(distribution[:offset].sum()), float(distribution[offset:].sum())


def _scale_factors(before: float, after: float, probability: float) -> tuple[float, float]:
    scale_before = probability / before if before > 0.0 else 0.0
    scale_after = (1.0 - probability) / after if after > 0.0 else 0.0
    return scale_before, scale_after


def reweight_to_market(
    distribution: np.ndarray,
    probability: float,
    settings: IndexSettings,
) -> np.ndarray:
    """Rescale the before/after-cutoff bands so their masses are ``p`` and ``1 - p``.

    A band holding no mass cannot be scaled; it stays empty and the result is
    renormalized so the other band carries all the mass.
    """
    before, after = band_masses(distribution, settings)
    scale_before, scale_after = _scale_factors(before, after, probability)
    scales = np.where(np.arange(distribution.size) < settings.cutoff_offset, scale_before, scale_after)
    reweighted = distribution * scales
    if before > 0.0 and after > 0.0:
        return freeze(reweighted)
    renormalized = normalize(reweighted)
    if renormalized is None:
        logger.debug(f"Market probability {probability:.3f} cannot be matched; keeping the unweighted average")
        return freeze(distribution)
    return renormalized


def blend(average: np.ndarray, reweighted: np.ndarray, settings: IndexSettings) -> np.ndarray:
    return freeze(average * settings.other_weight + reweighted * settings.market_weight)


def combine_day(
    distributions: Sequence[np.ndarray],
    market_percent: float | None,
    settings: IndexSettings,
) -> np.ndarray | None:
    """Average the day's distributions and fold in the binary market, if any."""
    average = average_distributions(distributions)
    if average is None:
        return None
    if market_percent is None:
        return average
    reweighted = reweight_to_market(average, market_percent / 100.0, settings)
    return blend(average, reweighted, settings)


def extract_percentiles(distribution: np.ndarray, settings: IndexSettings) -> Percentiles | None:
    """First years at which cumulative mass reaches the lower/median/upper quantiles."""
    if distribution.size == 0 or not np.all(np.isfinite(distribution)):
        return None
    cumulative = np.cumsum(distribution)
    years: list[int] = []
    for quantile in settings.quantiles:
        hits = np.flatnonzero(cumulative >= quantile)
        if hits.size == 0:
            return None
        years.append(settings.year_at(int(hits[0])))
    return Percentiles(lower=years[0], median=years[1], upper=years[2])


@dataclass
class ReweightReport:
    probability: float
    before: float
    after: float
    scale_before: float
    scale_after: float
    reweighted_before: float
    reweighted_after: float
    blended: list[float]

    @property
    def reweighted_total(self) -> float:
        return self.reweighted_before + self.reweighted_after

    def to_record(self) -> dict[str, float]:
        return {
            "probability": self.probability,
            "before": self.before,
            "after": self.after,
            "scale_before": self.scale_before,
            "scale_after": self.scale_after,
            "reweighted_before": self.reweighted_before,
            "reweighted_after": self.reweighted_after,
            "reweighted_total": self.reweighted_total,
        }


def explain_reweighting(
    average: np.ndarray,
    market_percent: float,
    settings: IndexSettings,
) -> ReweightReport:
    probability = market_percent / 100.0
    before, after = band_masses(average, settings)
    scale_before, scale_after = _scale_factors(before, after, probability)
    reweighted = reweight_to_market(average, probability, settings)
    reweighted_before, reweighted_after = band_masses(reweighted, settings)
    return ReweightReport(
        probability=probability,
        before=before,
        after=after,
        scale_before=scale_before,
        scale_after=scale_after,
        reweighted_before=reweighted_before,
        reweighted_after=reweighted_after,
        blended=[float(x) for x in blend(average, reweighted, settings)],
    )
