from __future__ import annotations

"""Single-request DataList queries: point count, one page, boundary back-fill."""

import asyncio
import logging
import math
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Sequence

import httpx

from tagdist.runtime.sdk import metrics as sdk_metrics
from tagdist.runtime.sdk.exceptions import MalformedResponseError

from .datalist_client import DataListClient
from .wire import (
    PageRequest,
    SamplePoint,
    Window,
    WirePoint,
    backfill_body,
    count_body,
    extract_points,
    page_body,
    to_sample_points,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RetryPolicy:
    """Linear backoff applied to HTTP 429 responses.

    The n-th retry waits ``n * backoff_step_s`` seconds (1 s, 2 s, 3 s with
    the defaults). After ``max_retries`` retries the last response is
    accepted as-is.
    """

    max_retries: int = 3
    backoff_step_s: float = 1.0

    def delay_for(self, retries_remaining: int) -> float:
        attempt = self.max_retries + 1 - retries_remaining
        return max(0, attempt) * self.backoff_step_s


class DataListFetcher:
    """Issue the three query shapes the pagination engine needs."""

    def __init__(
        self,
        client: DataListClient,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.client = client
        self.retry_policy = retry_policy or RetryPolicy()

    # ------------------------------------------------------------------
    async def count_points(self, source_id: str, tag_slug: str, window: Window) -> int:
        """Return the number of raw points for ``tag_slug`` inside ``window``."""
        sdk_metrics.observe_request("count")
        resp = await self.client.post_data_list(count_body(source_id, tag_slug, window))
        resp.raise_for_status()
        points = extract_points(resp.json())
        if not points:
            count = 0
        else:
            raw = points[0].values.get(tag_slug)
            if isinstance(raw, bool) or not isinstance(raw, (int, float)) or not math.isfinite(raw):
                raise MalformedResponseError(
                    f"count bucket has no numeric value for {tag_slug!r}", points[0]
                )
            count = int(raw)
        logger.debug(
            "datalist.count",
            extra={"source_id": source_id, "tag": tag_slug, "count": count},
        )
        return max(0, count)

    # ------------------------------------------------------------------
    async def fetch_page(
        self,
        source_id: str,
        tag_slug: str,
        window: Window,
        offset: int,
        limit: int,
        retries_remaining: int | None = None,
    ) -> list[WirePoint]:
        """Return one ascending page of raw points.

        Rate-limited responses are retried with backoff; once retries are
        exhausted whatever the last response held is returned.
        """
        page = PageRequest(offset=offset, limit=limit)
        body = page_body(source_id, tag_slug, window, page)
        remaining = (
            self.retry_policy.max_retries if retries_remaining is None else retries_remaining
        )
        while True:
            sdk_metrics.observe_request("page")
            resp = await self.client.post_data_list(body)
            if resp.status_code != HTTPStatus.TOO_MANY_REQUESTS:
                resp.raise_for_status()
                points = extract_points(resp.json())
                sdk_metrics.observe_points(len(points))
                return points[:limit]

            sdk_metrics.observe_rate_limited()
            if remaining <= 0:
                logger.warning(
                    "datalist.page.rate_limit_exhausted",
                    extra={"tag": tag_slug, "offset": offset, "limit": limit},
                )
                return self._points_from_rate_limited(resp)[:limit]

            delay = self.retry_policy.delay_for(remaining)
            logger.info(
                "datalist.page.rate_limited",
                extra={
                    "tag": tag_slug,
                    "offset": offset,
                    "retries_remaining": remaining,
                    "delay_s": delay,
                },
            )
            await asyncio.sleep(delay)
            remaining -= 1

    @staticmethod
    def _points_from_rate_limited(resp: httpx.Response) -> list[WirePoint]:
        try:
            payload: Any = resp.json()
        except ValueError:
            return []
        try:
            return extract_points(payload)
        except MalformedResponseError:
            return []

    # ------------------------------------------------------------------
    async def fetch_backfill_point(
        self, source_id: str, tag_slugs: Sequence[str], window: Window
    ) -> SamplePoint | None:
        """Return the last value before ``window`` re-stamped at its start."""
        if not tag_slugs:
            return None
        sdk_metrics.observe_request("backfill")
        resp = await self.client.post_data_list(backfill_body(source_id, tag_slugs, window))
        resp.raise_for_status()
        points = extract_points(resp.json())
        if not points:
            return None
        # The API stamps the single bucket with its start; the value still
        # holds at the window boundary.
        samples = to_sample_points(points[:1], tag_slugs[0])
        if not samples:
            return None
        return SamplePoint(time=window.start_ms, value=samples[0].value)


__all__ = ["DataListFetcher", "RetryPolicy"]
