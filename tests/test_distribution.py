from __future__ import annotations

import numpy as np
import pytest

from agi_index.core.config import IndexSettings
from agi_index.core.distribution import (
    average_distributions,
    band_masses,
    blend,
    combine_day,
    explain_reweighting,
    extract_percentiles,
    normalize,
    reweight_to_market,
)

SETTINGS = IndexSettings()


def _masses(**by_year: float) -> np.ndarray:
    values = np.zeros(SETTINGS.year_range)
    for key, mass in by_year.items():
        values[int(key[1:]) - SETTINGS.start_year] = mass
    return values


def test_normalize_rejects_empty_and_non_finite_mass() -> None:
    assert normalize(np.zeros(5)) is None
    assert normalize(np.array([np.nan, 1.0])) is None
    assert np.allclose(normalize(np.array([1.0, 3.0])), [0.25, 0.75])


def test_distributions_are_read_only() -> None:
    array = normalize(np.array([1.0, 1.0]))
    with pytest.raises(ValueError):
        array[0] = 0.0


def test_average_distributions() -> None:
    assert average_distributions([]) is None
    averaged = average_distributions([_masses(y2025=1.0), _masses(y2040=1.0)])
    assert averaged[1] == 0.5 and averaged[16] == 0.5


def test_reweight_matches_market_split_and_keeps_mass() -> None:
    distribution = _masses(y2025=0.2, y2028=0.2, y2035=0.6)
    reweighted = reweight_to_market(distribution, 0.7, SETTINGS)
    before, after = band_masses(reweighted, SETTINGS)
    assert abs(before - 0.7) < 1e-12
    assert abs(after - 0.3) < 1e-12
    # shape within each band is preserved
    assert abs(reweighted[1] - reweighted[4]) < 1e-12


def test_reweight_with_empty_band_keeps_distribution() -> None:
    distribution = _masses(y2035=1.0)
    for probability in (0.0, 0.4, 1.0):
        assert np.allclose(reweight_to_market(distribution, probability, SETTINGS), distribution)


def test_reweight_with_nothing_to_keep_falls_back_to_average() -> None:
    distribution = _masses(y2035=1.0)
    # market says everything before the cutoff, but there is no mass there
    assert np.allclose(reweight_to_market(distribution, 1.0, SETTINGS), distribution)


def test_blend_with_zero_market_weight_is_the_average() -> None:
    settings = IndexSettings(other_weight=1.0, market_weight=0.0)
    average = _masses(y2026=0.5, y2045=0.5)
    assert np.array_equal(combine_day([average], 90.0, settings), average)
    assert np.array_equal(blend(average, _masses(y2026=1.0), settings), average)


def test_combine_day_without_market_is_plain_average() -> None:
    combined = combine_day([_masses(y2025=1.0), _masses(y2030=1.0)], None, SETTINGS)
    assert np.allclose(combined, _masses(y2025=0.5, y2030=0.5))
    assert combine_day([], 50.0, SETTINGS) is None


def test_extract_percentiles_are_ordered() -> None:
    distribution = _masses(y2027=0.2, y2033=0.4, y2050=0.4)
    result = extract_percentiles(distribution, SETTINGS)
    assert (result.lower, result.median, result.upper) == (2027, 2033, 2050)
    assert result.lower <= result.median <= result.upper


def test_extract_percentiles_none_when_mass_is_short() -> None:
    assert extract_percentiles(_masses(y2030=0.5), SETTINGS) is None
    assert extract_percentiles(_masses(y2030=np.nan), SETTINGS) is None


def test_explain_reweighting_reports_each_stage() -> None:
    average = _masses(y2025=0.4, y2040=0.6)
    report = explain_reweighting(average, 100.0, SETTINGS)
    assert report.probability == 1.0
    assert abs(report.before - 0.4) < 1e-12
    assert abs(report.scale_before - 2.5) < 1e-12
    assert report.scale_after == 0.0
    assert abs(report.reweighted_total - 1.0) < 1e-12
    assert abs(report.blended[1] - 0.52) < 1e-12
    assert set(report.to_record()) >= {"probability", "scale_before", "reweighted_total"}
