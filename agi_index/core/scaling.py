"""Mapping between a question's normalized [0, 1] axis and real values.

Metaculus stores every continuous forecast on a unit interval. The question's
scaling (``range_min``, ``range_max`` and an optional ``zero_point``) says how
that interval maps back to real values, linearly or, when a zero point is
set, logarithmically. For date questions the real values are unix seconds.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

from agi_index.core.schemas import ScalingSpec
from agi_index.core.utils import from_timestamp


def transform(scaling: ScalingSpec, unit: float) -> float:
    if not scaling.is_bounded:
        return unit
    range_min = float(scaling.range_min)
    range_max = float(scaling.range_max)
    if scaling.zero_point is not None:
        n = (range_max - scaling.zero_point) / (range_min - scaling.zero_point)
        return range_min + (range_max - range_min) * (n**unit - 1) / (n - 1)
    return range_min + (range_max - range_min) * unit


def inverse_transform(scaling: ScalingSpec, value: float) -> float:
    if not scaling.is_bounded:
        return value
    range_min = float(scaling.range_min)
    range_max = float(scaling.range_max)
    if scaling.zero_point is not None:
        n = (range_max - scaling.zero_point) / (range_min - scaling.zero_point)
        return math.log(((value - range_min) * (n - 1)) / (range_max - range_min) + 1) / math.log(n)
    return (value - range_min) / (range_max - range_min)


def year_start_timestamp(year: int) -> float:
    return datetime(year, 1, 1, tzinfo=timezone.utc).timestamp()


def start_year(timestamp: float) -> int:
    """Nearest year whose January 1st falls on or after ``timestamp``."""
    moment = from_timestamp(timestamp)
    if timestamp <= year_start_timestamp(moment.year):
        return moment.year
    return moment.year + 1


def end_year(timestamp: float) -> int:
    """Nearest year whose January 1st falls on or before ``timestamp``."""
    moment = from_timestamp(timestamp)
    if timestamp >= year_start_timestamp(moment.year):
        return moment.year
    return moment.year - 1
