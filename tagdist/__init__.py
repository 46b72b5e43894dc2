"""Paginated DataList retrieval and normal-distribution summaries."""

from __future__ import annotations

from tagdist.runtime.io.paginator import FetchStrategy, PaginationEngine
from tagdist.runtime.io.wire import SamplePoint, Window
from tagdist.runtime.service import TagDataService
from tagdist.runtime.stats.summary import DistributionSummary, summarize_distribution

__all__ = [
    "DistributionSummary",
    "FetchStrategy",
    "PaginationEngine",
    "SamplePoint",
    "TagDataService",
    "Window",
    "summarize_distribution",
]
