from __future__ import annotations

"""Wire format helpers for the DataList endpoint.

The endpoint speaks ISO-8601 UTC timestamps truncated to whole seconds
(``2024-01-01T00:00:00Z``); everything inside the engine uses epoch
milliseconds. Request bodies look like::

    {"start": ..., "end": ..., "timeZone": "UTC",
     "source": {"publicId": ...},
     "tags": [{"slug": ..., "preAggr": "raw",
               "queries": [{"ref": ..., "limit": ..., "offset": ...}]}]}

and responses carry ``{"data": {"points": [{"time": ..., "values": {...}}]}}``.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from tagdist.runtime.sdk.exceptions import InvalidWindowError, MalformedResponseError

_EPOCH = pd.Timestamp(0, tz="UTC")
_ONE_MS = pd.Timedelta(milliseconds=1)


@dataclass(frozen=True, slots=True)
class Window:
    """Half-open ``[start_ms, end_ms)`` range in epoch milliseconds."""

    start_ms: int
    end_ms: int

    def __post_init__(self) -> None:
        if self.start_ms >= self.end_ms:
            raise InvalidWindowError(
                f"window start {self.start_ms} must be before end {self.end_ms}"
            )

    @property
    def duration_seconds(self) -> int:
        return math.ceil((self.end_ms - self.start_ms) / 1000)


@dataclass(frozen=True, slots=True)
class SamplePoint:
    time: int
    value: float


@dataclass(frozen=True, slots=True)
class WirePoint:
    time: str
    values: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PageRequest:
    offset: int
    limit: int
    order: str = "asc"

    def __post_init__(self) -> None:
        if self.offset < 0:
            raise ValueError("offset must be >= 0")
        if self.limit <= 0:
            raise ValueError("limit must be > 0")


def plan_pages(total: int, limit: int) -> list[PageRequest]:
    """Split ``total`` points into contiguous pages of ``limit``."""
    if total <= 0:
        return []
    pages = math.ceil(total / limit)
    return [PageRequest(offset=i * limit, limit=limit) for i in range(pages)]


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------
def to_wire_timestamp(epoch_ms: int) -> str:
    """Render ``epoch_ms`` as ISO-8601 UTC truncated to seconds."""
    moment = datetime.fromtimestamp(epoch_ms // 1000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_wire_timestamp(value: str) -> int:
    """Return epoch milliseconds for a wire timestamp."""
    moment = pd.Timestamp(value)
    if moment.tzinfo is None:
        moment = moment.tz_localize("UTC")
    return int((moment - _EPOCH) // _ONE_MS)


def parse_wire_timestamps(values: Sequence[str]) -> list[int]:
    if not values:
        return []
    parsed = pd.to_datetime(pd.Series(list(values)), utc=True)
    return [int(ms) for ms in (parsed - _EPOCH) // _ONE_MS]


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------
def build_body(
    source_id: str,
    tag_slugs: Iterable[str],
    start_ms: int,
    end_ms: int,
    **query: Any,
) -> dict[str, Any]:
    """Return a DataList request body with one query per tag.

    ``query`` entries whose value is ``None`` are omitted.
    """
    extra = {k: v for k, v in query.items() if v is not None}
    return {
        "start": to_wire_timestamp(start_ms),
        "end": to_wire_timestamp(end_ms),
        "timeZone": "UTC",
        "source": {"publicId": source_id},
        "tags": [
            {
                "slug": slug,
                "preAggr": "raw",
                "queries": [{"ref": slug, **extra}],
            }
            for slug in tag_slugs
        ],
    }


def count_body(source_id: str, tag_slug: str, window: Window) -> dict[str, Any]:
    return build_body(
        source_id,
        [tag_slug],
        window.start_ms,
        window.end_ms,
        postAggr="count",
        step=window.duration_seconds,
    )


def page_body(
    source_id: str, tag_slug: str, window: Window, page: PageRequest
) -> dict[str, Any]:
    return build_body(
        source_id,
        [tag_slug],
        window.start_ms,
        window.end_ms,
        limit=page.limit,
        offset=page.offset,
        order=page.order,
    )


def backfill_body(
    source_id: str, tag_slugs: Sequence[str], window: Window
) -> dict[str, Any]:
    return build_body(
        source_id,
        tag_slugs,
        0,
        window.start_ms,
        postAggr="raw",
        limit=1,
    )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
def extract_points(payload: Any) -> list[WirePoint]:
    """Return the points of a DataList response.

    Raises :class:`MalformedResponseError` when ``data`` is missing or
    ``points`` is not a list. A missing ``points`` key reads as empty.
    """
    if not isinstance(payload, Mapping):
        raise MalformedResponseError("payload is not an object", payload)
    data = payload.get("data")
    if not isinstance(data, Mapping):
        raise MalformedResponseError("missing 'data' object", payload)
    raw_points = data.get("points", [])
    if raw_points is None:
        raw_points = []
    if not isinstance(raw_points, list):
        raise MalformedResponseError("'points' is not a list", payload)

    points: list[WirePoint] = []
    for raw in raw_points:
        if not isinstance(raw, Mapping) or not isinstance(raw.get("time"), str):
            raise MalformedResponseError("point without a 'time' string", payload)
        values = raw.get("values") or {}
        if not isinstance(values, Mapping):
            raise MalformedResponseError("point 'values' is not an object", payload)
        points.append(WirePoint(time=raw["time"], values=dict(values)))
    return points


def _finite(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if not math.isfinite(number):
        return None
    return number


def to_sample_points(points: Sequence[WirePoint], tag_slug: str) -> list[SamplePoint]:
    """Convert wire points, dropping missing or non-finite values."""
    times = parse_wire_timestamps([p.time for p in points])
    samples: list[SamplePoint] = []
    for ts, point in zip(times, points):
        value = _finite(point.values.get(tag_slug))
        if value is None:
            continue
        samples.append(SamplePoint(time=ts, value=value))
    return samples


def scale_points(
    points: Iterable[SamplePoint], factor: float = 1.0, decimals: int = 2
) -> list[SamplePoint]:
    """Apply the display ``factor`` and round to ``decimals`` places."""
    scaled: list[SamplePoint] = []
    for point in points:
        value = point.value * factor
        if not math.isfinite(value):
            continue
        scaled.append(SamplePoint(time=point.time, value=round(value, decimals)))
    return scaled


__all__ = [
    "PageRequest",
    "SamplePoint",
    "Window",
    "WirePoint",
    "backfill_body",
    "build_body",
    "count_body",
    "extract_points",
    "page_body",
    "parse_wire_timestamp",
    "parse_wire_timestamps",
    "plan_pages",
    "scale_points",
    "to_sample_points",
    "to_wire_timestamp",
]
