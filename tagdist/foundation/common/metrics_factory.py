from __future__ import annotations

"""Idempotent Prometheus metric registration.

Metrics live at module level and modules may be imported more than once in a
test session, so each helper hands back the already-registered collector
instead of registering a duplicate. :func:`reset_metrics` zeroes values
without unregistering anything.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Dict, Tuple, TypeVar

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    REGISTRY as global_registry,
)
from prometheus_client.metrics import MetricWrapperBase

__all__ = [
    "get_or_create_counter",
    "get_or_create_histogram",
    "get_metric_value",
    "reset_metrics",
]

MetricT = TypeVar("MetricT", bound=MetricWrapperBase)

_METRICS: Dict[Tuple[CollectorRegistry, str], MetricWrapperBase] = {}


def get_or_create_counter(
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
) -> Counter:
    return _get_or_create(Counter, name, documentation, labelnames, registry)


def get_or_create_histogram(
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
) -> Histogram:
    return _get_or_create(Histogram, name, documentation, labelnames, registry)


def reset_metrics(
    names: Iterable[str] | None = None,
    *,
    registry: CollectorRegistry | None = None,
) -> None:
    """Zero every metric of ``registry``, or only those listed in ``names``.

    Names match either as registered or without the ``_total`` suffix that
    ``prometheus_client`` strips from counters.
    """
    reg = registry or global_registry
    requested = None if names is None else set(names)
    for (owner, name), metric in list(_METRICS.items()):
        if owner is not reg:
            continue
        if requested is not None and not ({name, metric._name} & requested):  # type: ignore[attr-defined]
            continue
        _zero(metric)


def get_metric_value(
    metric: MetricWrapperBase,
    labels: Mapping[str, str] | None = None,
    *,
    suffix: str = "_total",
) -> float:
    """Return the current sample value for ``metric``.

    ``suffix`` selects the sample family member (``_total`` for counters,
    ``_count``/``_sum`` for histograms). Missing samples read as ``0.0``.
    """
    wanted = {} if labels is None else dict(labels)
    for family in metric.collect():
        for sample in family.samples:
            if sample.name.endswith(suffix) and sample.labels == wanted:
                return float(sample.value)
    return 0.0


def _get_or_create(
    metric_cls: type[MetricT],
    name: str,
    documentation: str,
    labelnames: Sequence[str] | None,
    registry: CollectorRegistry | None,
) -> MetricT:
    reg = registry or global_registry
    labels = tuple(labelnames or ())
    metric = _METRICS.get((reg, name))
    if metric is None:
        metric = reg._names_to_collectors.get(name)  # type: ignore[attr-defined]
        if metric is None:
            metric = metric_cls(name, documentation, labels, registry=reg)
        _METRICS[(reg, name)] = metric
    if not isinstance(metric, metric_cls) or tuple(metric._labelnames) != labels:  # type: ignore[attr-defined]
        raise ValueError(f"metric {name!r} is already registered with another type or labels")
    return metric  # type: ignore[return-value]


def _zero(metric: MetricWrapperBase) -> None:
    if metric._labelnames:  # type: ignore[attr-defined]
        metric.clear()
    elif isinstance(metric, Counter):
        metric._value.set(0)  # type: ignore[attr-defined]
    elif isinstance(metric, Histogram):
        metric._sum.set(0)  # type: ignore[attr-defined]
        for bucket in metric._buckets:  # type: ignore[attr-defined]
            bucket.set(0)
