from __future__ import annotations

"""Descriptive statistics and the fitted normal curve for a point series."""

import math
from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
import pandas as pd
from scipy.stats import norm

from tagdist.runtime.io.wire import SamplePoint

# 10 standard deviations divided by the bin size is an integer in the common
# case (bin = sd / 2); the slack keeps float noise from dropping the last x.
_STEP_SLACK = 1e-9


@dataclass(frozen=True, slots=True)
class Statistics:
    mean: float
    standard_deviation: float

    @property
    def variance(self) -> float:
        return self.standard_deviation ** 2


@dataclass(frozen=True, slots=True)
class HistogramBucket:
    value: float
    count: int


@dataclass(frozen=True, slots=True)
class CurvePoint:
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class ConfidenceInterval:
    lower: float
    upper: float


def _values(points: Iterable[SamplePoint]) -> np.ndarray:
    return np.fromiter((p.value for p in points), dtype=float)


def calculate_statistics(points: Sequence[SamplePoint]) -> Statistics:
    """Return the mean and population standard deviation of ``points``."""
    values = _values(points)
    if values.size == 0:
        raise ValueError("cannot compute statistics of an empty series")
    # a constant series has exactly zero spread regardless of summation error
    if np.ptp(values) == 0:
        return Statistics(mean=float(values[0]), standard_deviation=0.0)
    mean = float(values.mean())
    variance = float(np.mean((values - mean) ** 2))
    return Statistics(mean=mean, standard_deviation=math.sqrt(variance))


def build_histogram(points: Sequence[SamplePoint]) -> list[HistogramBucket]:
    """Count points per exact value, ascending by value.

    Values are expected to be rounded already; no binning happens here.
    """
    if not points:
        return []
    counts = pd.Series(_values(points)).value_counts(sort=False).sort_index()
    return [HistogramBucket(value=float(v), count=int(c)) for v, c in counts.items()]


def generate_normal_distribution_data(
    mean: float,
    standard_deviation: float,
    data_length: int,
    bin_size: float,
    max_histogram_y: float,
) -> list[CurvePoint]:
    """Sample the fitted normal pdf over ``mean ± 5 sd``.

    Each sample is the expected count per bin (``pdf * n * bin_size``); the
    whole curve is then rescaled so its peak equals ``max_histogram_y``.
    Returns an empty list when ``data_length <= 1`` or the curve is flat
    (zero or non-finite spread).
    """
    if data_length <= 1:
        return []
    if not math.isfinite(standard_deviation) or standard_deviation <= 0:
        return []
    if not math.isfinite(bin_size) or bin_size <= 0:
        raise ValueError("bin_size must be a positive finite number")

    span = 10 * standard_deviation
    steps = int(math.floor(span / bin_size + _STEP_SLACK)) + 1
    xs = (mean - 5 * standard_deviation) + bin_size * np.arange(steps, dtype=float)
    ys = norm.pdf(xs, loc=mean, scale=standard_deviation) * data_length * bin_size

    peak = float(ys.max()) if ys.size else 0.0
    if peak <= 0 or not math.isfinite(peak):
        return []
    scaled = ys * (max_histogram_y / peak)
    return [CurvePoint(x=float(x), y=float(y)) for x, y in zip(xs, scaled)]


def get_z_score_for_confidence(confidence: float) -> float:
    """Return the two-tailed z-score for ``confidence`` percent."""
    if not 0 < confidence < 100:
        raise ValueError("confidence must lie strictly between 0 and 100")
    alpha = 1 - confidence / 100
    tail_probability = alpha / 2
    return float(-norm.ppf(tail_probability))


def get_confidence_interval(
    mean: float, standard_deviation: float, z_score: float
) -> ConfidenceInterval:
    return ConfidenceInterval(
        lower=mean - z_score * standard_deviation,
        upper=mean + z_score * standard_deviation,
    )


__all__ = [
    "ConfidenceInterval",
    "CurvePoint",
    "HistogramBucket",
    "Statistics",
    "build_histogram",
    "calculate_statistics",
    "generate_normal_distribution_data",
    "get_confidence_interval",
    "get_z_score_for_confidence",
]
