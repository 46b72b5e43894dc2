from __future__ import annotations

"""Drive paged DataList fetches for one tag over one window."""

import bisect
import enum
import logging
import time
from typing import Sequence

from tagdist.runtime.sdk import metrics as sdk_metrics
from tagdist.runtime.sdk.exceptions import FetchInProgressError
from tagdist.runtime.sdk.progress import (
    STAGE_COUNTING,
    STAGE_FETCHING,
    ProgressObserver,
    noop_progress,
)

from .fetcher import DataListFetcher
from .scheduler import ConcurrencyLimitedScheduler
from .wire import SamplePoint, Window, WirePoint, plan_pages, to_sample_points

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 5000
DEFAULT_MAX_CONCURRENT = 10


class FetchStrategy(str, enum.Enum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"


class PaginationEngine:
    """Fetch every raw point of a tag inside a window.

    ``PARALLEL`` counts first and fans pages out through a
    :class:`ConcurrencyLimitedScheduler`; ``SEQUENTIAL`` walks offsets until a
    short page. Both finish with the boundary back-fill and return points in
    time order.
    """

    def __init__(
        self,
        fetcher: DataListFetcher,
        *,
        page_limit: int = DEFAULT_PAGE_LIMIT,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        strategy: FetchStrategy | str = FetchStrategy.PARALLEL,
    ) -> None:
        if page_limit <= 0:
            raise ValueError("page_limit must be > 0")
        self.fetcher = fetcher
        self.page_limit = int(page_limit)
        self.max_concurrent = int(max_concurrent)
        self.strategy = FetchStrategy(strategy)
        self._busy = False

    async def fetch(
        self,
        source_id: str,
        tag_slug: str,
        window: Window,
        *,
        strategy: FetchStrategy | str | None = None,
        progress: ProgressObserver | None = None,
    ) -> list[SamplePoint]:
        if self._busy:
            raise FetchInProgressError("engine already has a fetch in flight")
        chosen = FetchStrategy(strategy) if strategy is not None else self.strategy
        notify = progress or noop_progress

        self._busy = True
        started = time.perf_counter()
        logger.info(
            "paginator.start",
            extra={
                "source_id": source_id,
                "tag": tag_slug,
                "start_ms": window.start_ms,
                "end_ms": window.end_ms,
                "strategy": chosen.value,
            },
        )
        try:
            if chosen is FetchStrategy.SEQUENTIAL:
                raw = await self._fetch_sequential(source_id, tag_slug, window)
            else:
                raw = await self._fetch_parallel(source_id, tag_slug, window, notify)
            backfill = await self.fetcher.fetch_backfill_point(source_id, [tag_slug], window)
        finally:
            self._busy = False

        points = merge_points(to_sample_points(raw, tag_slug), backfill, window.start_ms)
        elapsed = time.perf_counter() - started
        sdk_metrics.observe_fetch_duration(chosen.value, elapsed)
        logger.info(
            "paginator.complete",
            extra={
                "tag": tag_slug,
                "raw_points": len(raw),
                "points": len(points),
                "backfilled": backfill is not None,
                "elapsed_s": round(elapsed, 3),
            },
        )
        return points

    # ------------------------------------------------------------------
    async def _fetch_parallel(
        self,
        source_id: str,
        tag_slug: str,
        window: Window,
        notify: ProgressObserver,
    ) -> list[WirePoint]:
        notify(STAGE_COUNTING, 0, 0)
        total = await self.fetcher.count_points(source_id, tag_slug, window)
        if total == 0:
            return []

        if total <= self.page_limit:
            notify(STAGE_FETCHING, 0, 1)
            page = await self.fetcher.fetch_page(source_id, tag_slug, window, 0, self.page_limit)
            notify(STAGE_FETCHING, 1, 1)
            return page

        pages = plan_pages(total, self.page_limit)
        notify(STAGE_FETCHING, 0, len(pages))

        def _task(offset: int, limit: int):
            return lambda: self.fetcher.fetch_page(source_id, tag_slug, window, offset, limit)

        scheduler: ConcurrencyLimitedScheduler[list[WirePoint]] = ConcurrencyLimitedScheduler(
            self.max_concurrent
        )
        results = await scheduler.run(
            [_task(p.offset, p.limit) for p in pages],
            on_task_complete=lambda done: notify(STAGE_FETCHING, done, len(pages)),
        )
        merged: list[WirePoint] = []
        for page_points in results:
            merged.extend(page_points)
        return merged

    async def _fetch_sequential(
        self, source_id: str, tag_slug: str, window: Window
    ) -> list[WirePoint]:
        rows: list[WirePoint] = []
        offset = 0
        hard_cap = 1_000_000  # safety valve against a backend that never shortens a page
        while hard_cap > 0:
            hard_cap -= 1
            page = await self.fetcher.fetch_page(
                source_id, tag_slug, window, offset, self.page_limit
            )
            rows.extend(page)
            if len(page) < self.page_limit:
                break
            offset += self.page_limit
        return rows


def merge_points(
    points: Sequence[SamplePoint],
    backfill: SamplePoint | None,
    start_ms: int | None = None,
) -> list[SamplePoint]:
    """Sort paged points by time and slot the back-fill point in.

    The sort is stable, so points sharing a timestamp keep their offset
    order. Queries only resolve whole seconds, so pages may carry points from
    just before ``start_ms``; those are dropped and the newest of them
    replaces the back-fill value. The back-fill point is dropped when a paged
    point already sits on the window start.
    """
    ordered = sorted(points, key=lambda p: p.time)
    if start_ms is not None:
        cut = bisect.bisect_left([p.time for p in ordered], start_ms)
        if cut:
            backfill = SamplePoint(time=start_ms, value=ordered[cut - 1].value)
            ordered = ordered[cut:]
    if backfill is None:
        return ordered
    times = [p.time for p in ordered]
    index = bisect.bisect_left(times, backfill.time)
    if index < len(times) and times[index] == backfill.time:
        return ordered
    ordered.insert(index, backfill)
    return ordered


__all__ = [
    "DEFAULT_MAX_CONCURRENT",
    "DEFAULT_PAGE_LIMIT",
    "FetchStrategy",
    "PaginationEngine",
    "merge_points",
]
