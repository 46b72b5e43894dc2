"""DataList transport, paged fetching and identity resolution."""

from .datalist_client import DataListClient, RequestLimiter
from .fetcher import DataListFetcher, RetryPolicy
from .identity import DataListIdentityResolver, IdentityResolver, TagIdentity, parse_selector
from .paginator import FetchStrategy, PaginationEngine, merge_points
from .scheduler import ConcurrencyLimitedScheduler
from .wire import PageRequest, SamplePoint, Window, WirePoint

__all__ = [
    "ConcurrencyLimitedScheduler",
    "DataListClient",
    "DataListFetcher",
    "DataListIdentityResolver",
    "FetchStrategy",
    "IdentityResolver",
    "PageRequest",
    "PaginationEngine",
    "RequestLimiter",
    "RetryPolicy",
    "SamplePoint",
    "TagIdentity",
    "Window",
    "WirePoint",
    "merge_points",
    "parse_selector",
]
