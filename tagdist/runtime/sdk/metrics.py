from __future__ import annotations

"""Prometheus metrics for the DataList fetch engine."""

from prometheus_client import generate_latest, REGISTRY as global_registry

from tagdist.foundation.common.metrics_factory import (
    get_or_create_counter,
    get_or_create_histogram,
    reset_metrics as reset_registered_metrics,
)

_REGISTERED_METRICS: set[str] = set()


def _counter(name: str, documentation: str, labelnames=None):
    metric = get_or_create_counter(name, documentation, labelnames)
    _REGISTERED_METRICS.add(getattr(metric, "_name", name))
    return metric


def _histogram(name: str, documentation: str, labelnames=None):
    metric = get_or_create_histogram(name, documentation, labelnames)
    _REGISTERED_METRICS.add(getattr(metric, "_name", name))
    return metric


# ---------------------------------------------------------------------------
# Fetch metrics
# ---------------------------------------------------------------------------
requests_total = _counter(
    "tagdist_requests_total",
    "Total number of DataList requests grouped by query kind",
    ["kind"],
)

rate_limited_total = _counter(
    "tagdist_rate_limited_total",
    "Total number of DataList responses rejected with HTTP 429",
)

points_fetched_total = _counter(
    "tagdist_points_fetched_total",
    "Total number of raw points received from paged queries",
)

fetch_duration_seconds = _histogram(
    "tagdist_fetch_duration_seconds",
    "Wall-clock duration of a complete paginated fetch",
    ["strategy"],
)


def observe_request(kind: str) -> None:
    requests_total.labels(kind=kind).inc()


def observe_rate_limited() -> None:
    rate_limited_total.inc()


def observe_points(count: int) -> None:
    if count > 0:
        points_fetched_total.inc(count)


def observe_fetch_duration(strategy: str, seconds: float) -> None:
    fetch_duration_seconds.labels(strategy=strategy).observe(seconds)


def collect_metrics() -> str:
    """Return metrics in Prometheus text exposition format."""
    return generate_latest(global_registry).decode()


def reset_metrics() -> None:
    """Reset every fetch metric to zero."""
    reset_registered_metrics(_REGISTERED_METRICS)


__all__ = [
    "collect_metrics",
    "fetch_duration_seconds",
    "observe_fetch_duration",
    "observe_points",
    "observe_rate_limited",
    "observe_request",
    "points_fetched_total",
    "rate_limited_total",
    "requests_total",
    "reset_metrics",
]
