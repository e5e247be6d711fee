from __future__ import annotations

import math
from datetime import datetime, timezone

from agi_index.core.scaling import end_year, inverse_transform, start_year, transform, year_start_timestamp
from agi_index.core.schemas import ScalingSpec


def _ts(year: int, month: int = 1, day: int = 1) -> float:
    return datetime(year, month, day, tzinfo=timezone.utc).timestamp()


def test_linear_transform_round_trips() -> None:
    scaling = ScalingSpec(range_min=_ts(2024), range_max=_ts(2100))
    for unit in (0.0, 0.1, 0.37, 0.5, 0.99, 1.0):
        assert abs(inverse_transform(scaling, transform(scaling, unit)) - unit) < 1e-9


def test_linear_transform_hits_range_ends() -> None:
    scaling = ScalingSpec(range_min=_ts(2024), range_max=_ts(2100))
    assert transform(scaling, 0.0) == _ts(2024)
    assert abs(transform(scaling, 1.0) - _ts(2100)) < 1e-3


def test_log_transform_is_geometric_midpoint() -> None:
    scaling = ScalingSpec(range_min=1.0, range_max=1000.0, zero_point=0.0)
    assert abs(transform(scaling, 0.5) - math.sqrt(1000.0)) < 1e-9
    assert abs(inverse_transform(scaling, transform(scaling, 0.8)) - 0.8) < 1e-9


def test_unbounded_scaling_is_identity() -> None:
    scaling = ScalingSpec(range_min=None, range_max=None)
    assert transform(scaling, 0.42) == 0.42
    assert inverse_transform(scaling, 0.42) == 0.42


def test_start_and_end_year_snap_to_january_first() -> None:
    assert start_year(_ts(2024)) == 2024
    assert start_year(_ts(2024, 6, 1)) == 2025
    assert end_year(_ts(2024)) == 2024
    assert end_year(_ts(2024, 6, 1)) == 2024
    assert year_start_timestamp(2030) == _ts(2030)
