from __future__ import annotations

"""High-level entry point wiring configuration, fetch engine and statistics."""

import logging
from typing import Any

from tagdist.foundation.config import UnifiedConfig
from tagdist.runtime.io.datalist_client import DataListClient, RequestLimiter
from tagdist.runtime.io.fetcher import DataListFetcher, RetryPolicy
from tagdist.runtime.io.identity import DataListIdentityResolver, IdentityResolver
from tagdist.runtime.io.paginator import PaginationEngine
from tagdist.runtime.io.wire import SamplePoint, Window, scale_points
from tagdist.runtime.sdk.configuration import get_runtime_config
from tagdist.runtime.sdk.exceptions import IdentityNotFoundError, NoDataAvailableError
from tagdist.runtime.sdk.progress import (
    STAGE_CONNECTING,
    STAGE_PROCESSING,
    ProgressObserver,
    noop_progress,
)
from tagdist.runtime.stats.summary import DistributionSummary, summarize_distribution

logger = logging.getLogger(__name__)


class TagDataService:
    """Fetch a tag's raw series for a window and summarize its distribution.

    Build one per request; the underlying :class:`PaginationEngine` refuses
    overlapping fetches.
    """

    def __init__(
        self,
        *,
        resolver: IdentityResolver,
        engine: PaginationEngine,
        config: UnifiedConfig | None = None,
        client: DataListClient | None = None,
    ) -> None:
        self.resolver = resolver
        self.engine = engine
        self.config = config or get_runtime_config()
        self._client = client

    @classmethod
    def from_config(
        cls,
        agent_id: str,
        config: UnifiedConfig | None = None,
        *,
        transport: Any = None,
    ) -> "TagDataService":
        cfg = config or get_runtime_config()
        client = DataListClient(
            cfg.api,
            transport=transport,
            limiter=RequestLimiter(cfg.fetch.min_request_interval_s),
        )
        fetcher = DataListFetcher(
            client,
            retry_policy=RetryPolicy(
                max_retries=cfg.retry.max_retries,
                backoff_step_s=cfg.retry.backoff_step_s,
            ),
        )
        engine = PaginationEngine(
            fetcher,
            page_limit=cfg.fetch.page_limit,
            max_concurrent=cfg.fetch.max_concurrent,
            strategy=cfg.fetch.strategy,
        )
        resolver = DataListIdentityResolver(client, agent_id)
        return cls(resolver=resolver, engine=engine, config=cfg, client=client)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def get_all_raw_metrics(
        self,
        selector: str,
        window: Window,
        *,
        factor: float | None = None,
        decimals: int | None = None,
        progress: ProgressObserver | None = None,
    ) -> list[SamplePoint] | None:
        """Return the scaled series, or ``None`` when the selector is unknown."""
        notify = progress or noop_progress
        stats_cfg = self.config.stats
        notify(STAGE_CONNECTING, 0, 0)
        try:
            identity = await self.resolver.resolve(selector)
        except IdentityNotFoundError:
            logger.warning("service.identity_not_found", extra={"selector": selector})
            return None

        points = await self.engine.fetch(
            identity.source_id, identity.tag_slug, window, progress=notify
        )
        return scale_points(
            points,
            stats_cfg.factor if factor is None else factor,
            stats_cfg.decimals if decimals is None else decimals,
        )

    async def summarize(
        self,
        selector: str,
        window: Window,
        *,
        confidence: float | None = None,
        ignore_zero: bool | None = None,
        progress: ProgressObserver | None = None,
    ) -> DistributionSummary:
        notify = progress or noop_progress
        stats_cfg = self.config.stats
        points = await self.get_all_raw_metrics(selector, window, progress=notify)
        if not points:
            raise NoDataAvailableError()
        notify(STAGE_PROCESSING, 0, 0)
        return summarize_distribution(
            points,
            confidence=stats_cfg.confidence if confidence is None else confidence,
            ignore_zero=stats_cfg.ignore_zero if ignore_zero is None else ignore_zero,
        )


__all__ = ["TagDataService"]
