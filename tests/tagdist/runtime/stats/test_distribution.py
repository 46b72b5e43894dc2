from __future__ import annotations

import math

import pytest

from tagdist.runtime.io.wire import SamplePoint
from tagdist.runtime.stats.distribution import (
    HistogramBucket,
    build_histogram,
    calculate_statistics,
    generate_normal_distribution_data,
    get_confidence_interval,
    get_z_score_for_confidence,
)


def _points(*values: float) -> list[SamplePoint]:
    return [SamplePoint(time=i * 1000, value=v) for i, v in enumerate(values)]


def test_statistics_use_population_variance():
    stats = calculate_statistics(_points(1, 2, 3, 4, 5))
    assert stats.mean == pytest.approx(3.0)
    assert stats.variance == pytest.approx(2.0)
    assert stats.standard_deviation == pytest.approx(math.sqrt(2))


def test_statistics_of_constant_series_have_zero_spread():
    stats = calculate_statistics(_points(4.2, 4.2, 4.2))
    assert stats.mean == pytest.approx(4.2)
    assert stats.standard_deviation == 0


def test_statistics_of_repeated_inexact_value_have_exact_zero_spread():
    stats = calculate_statistics(_points(*[0.7] * 100))
    assert stats.mean == 0.7
    assert stats.standard_deviation == 0.0


def test_statistics_reject_empty_series():
    with pytest.raises(ValueError):
        calculate_statistics([])


def test_histogram_counts_exact_values_in_ascending_order():
    histogram = build_histogram(_points(2.5, 1.0, 2.5, 3.0, 1.0, 2.5))
    assert histogram == [
        HistogramBucket(1.0, 2),
        HistogramBucket(2.5, 3),
        HistogramBucket(3.0, 1),
    ]
    assert sum(b.count for b in histogram) == 6
    assert build_histogram([]) == []


@pytest.mark.parametrize(
    "confidence, expected, tolerance",
    [(95, 1.959964, 1e-4), (99, 2.575829, 1e-4), (68.27, 1.0, 1e-3), (50, 0.674490, 1e-4)],
)
def test_z_score_matches_normal_quantiles(confidence, expected, tolerance):
    assert get_z_score_for_confidence(confidence) == pytest.approx(expected, abs=tolerance)


@pytest.mark.parametrize("confidence", [0, 100, -5, 120])
def test_z_score_rejects_out_of_range_confidence(confidence):
    with pytest.raises(ValueError):
        get_z_score_for_confidence(confidence)


def test_confidence_interval_is_symmetric_around_mean():
    z = get_z_score_for_confidence(95)
    interval = get_confidence_interval(3.0, math.sqrt(2), z)
    assert interval.lower == pytest.approx(0.228, abs=1e-3)
    assert interval.upper == pytest.approx(5.772, abs=1e-3)
    assert (interval.lower + interval.upper) / 2 == pytest.approx(3.0)


def test_curve_spans_five_deviations_and_peaks_at_histogram_max():
    curve = generate_normal_distribution_data(10.0, 2.0, 50, 1.0, 12)
    xs = [p.x for p in curve]
    assert xs[0] == pytest.approx(0.0)
    assert xs[-1] == pytest.approx(20.0)
    assert len(curve) == 21
    assert max(p.y for p in curve) == pytest.approx(12, rel=1e-9)
    peak = max(curve, key=lambda p: p.y)
    assert peak.x == pytest.approx(10.0)
    assert curve[0].y == pytest.approx(curve[-1].y)


@pytest.mark.parametrize(
    "mean, sd, n",
    [(1.0, 1.0, 1), (1.0, 1.0, 0), (1.0, 0.0, 10), (1.0, float("nan"), 10)],
)
def test_curve_is_empty_for_degenerate_input(mean, sd, n):
    assert generate_normal_distribution_data(mean, sd, n, 0.5, 4) == []


def test_curve_rejects_non_positive_bin_size():
    with pytest.raises(ValueError):
        generate_normal_distribution_data(0.0, 1.0, 10, 0.0, 4)
