from __future__ import annotations

"""Assemble everything a distribution chart needs from a point series."""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Sequence

from tagdist.runtime.io.wire import SamplePoint
from tagdist.runtime.sdk.exceptions import InsufficientDataError, NoDataAvailableError

from .distribution import (
    CurvePoint,
    HistogramBucket,
    Statistics,
    build_histogram,
    calculate_statistics,
    generate_normal_distribution_data,
    get_confidence_interval,
    get_z_score_for_confidence,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConfidenceBounds:
    lower_bound: float
    mean: float
    upper_bound: float


@dataclass(frozen=True, slots=True)
class DistributionSummary:
    statistics: Statistics
    histogram: list[HistogramBucket]
    curve: list[CurvePoint]
    bounds: ConfidenceBounds
    confidence: float
    z_score: float
    bin_size: float
    sample_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean": self.statistics.mean,
            "standardDeviation": self.statistics.standard_deviation,
            "histogram": [asdict(b) for b in self.histogram],
            "curve": [asdict(p) for p in self.curve],
            "bounds": {
                "lowerBound": self.bounds.lower_bound,
                "mean": self.bounds.mean,
                "upperBound": self.bounds.upper_bound,
            },
            "confidence": self.confidence,
            "zScore": self.z_score,
            "binSize": self.bin_size,
            "sampleCount": self.sample_count,
        }


def summarize_distribution(
    points: Sequence[SamplePoint],
    *,
    confidence: float = 95.0,
    ignore_zero: bool = False,
) -> DistributionSummary:
    """Compute statistics, histogram, fitted curve and confidence bounds.

    Raises :class:`NoDataAvailableError` when nothing is left after
    filtering and :class:`InsufficientDataError` when no curve can be fitted.
    """
    if ignore_zero:
        points = [p for p in points if p.value != 0]
    if not points:
        raise NoDataAvailableError()

    stats = calculate_statistics(points)
    histogram = build_histogram(points)
    bin_size = stats.standard_deviation / 2
    max_y = max(bucket.count for bucket in histogram)

    curve = generate_normal_distribution_data(
        stats.mean, stats.standard_deviation, len(points), bin_size, max_y
    )
    if not curve:
        logger.info(
            "summary.insufficient",
            extra={"samples": len(points), "mean": stats.mean},
        )
        raise InsufficientDataError(stats.mean)

    z_score = get_z_score_for_confidence(confidence)
    interval = get_confidence_interval(stats.mean, stats.standard_deviation, z_score)
    return DistributionSummary(
        statistics=stats,
        histogram=histogram,
        curve=curve,
        bounds=ConfidenceBounds(interval.lower, stats.mean, interval.upper),
        confidence=confidence,
        z_score=z_score,
        bin_size=bin_size,
        sample_count=len(points),
    )


__all__ = ["ConfidenceBounds", "DistributionSummary", "summarize_distribution"]
