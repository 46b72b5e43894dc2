from .distribution import (
    ConfidenceInterval,
    CurvePoint,
    HistogramBucket,
    Statistics,
    build_histogram,
    calculate_statistics,
    generate_normal_distribution_data,
    get_confidence_interval,
    get_z_score_for_confidence,
)
from .summary import ConfidenceBounds, DistributionSummary, summarize_distribution

__all__ = [
    "ConfidenceBounds",
    "ConfidenceInterval",
    "CurvePoint",
    "DistributionSummary",
    "HistogramBucket",
    "Statistics",
    "build_histogram",
    "calculate_statistics",
    "generate_normal_distribution_data",
    "get_confidence_interval",
    "get_z_score_for_confidence",
    "summarize_distribution",
]
