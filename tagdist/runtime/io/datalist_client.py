from __future__ import annotations

"""Asynchronous HTTP transport for the DataList API."""

import asyncio
import logging
import time
from typing import Any, Mapping

import httpx

from tagdist.foundation.config import ApiConfig

logger = logging.getLogger(__name__)


class RequestLimiter:
    """Spaces request starts by at least ``min_interval_s`` seconds.

    Burst control complements the scheduler's concurrency cap: the cap bounds
    how many requests are outstanding, the limiter bounds how fast new ones
    start.
    """

    def __init__(self, min_interval_s: float = 0.0) -> None:
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._last_call_at: float = 0.0
        self._lock = asyncio.Lock()

    @property
    def min_interval_s(self) -> float:
        return self._min_interval_s

    async def __aenter__(self) -> "RequestLimiter":
        if self._min_interval_s > 0:
            async with self._lock:
                elapsed = time.perf_counter() - self._last_call_at
                if elapsed < self._min_interval_s:
                    await asyncio.sleep(self._min_interval_s - elapsed)
                self._last_call_at = time.perf_counter()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None


class DataListClient:
    """Thin wrapper over :class:`httpx.AsyncClient` bound to an API config.

    When ``client`` is injected the caller owns it and :meth:`aclose` leaves
    it open; otherwise a client is created lazily (over ``transport`` when
    given) and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        config: ApiConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        limiter: RequestLimiter | None = None,
    ) -> None:
        self.config = config or ApiConfig()
        self._client = client
        self._transport = transport
        self._owns_client = client is None
        self._limiter = limiter or RequestLimiter()

    @property
    def data_list_url(self) -> str:
        return self.config.url_for(self.config.data_list_path)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.config.headers(),
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def query(
        self,
        url: str,
        method: str = "POST",
        *,
        body: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request and return the raw response.

        Status handling is left to the caller; rate-limited responses are a
        normal outcome for paged queries.
        """
        client = self._get_client()
        request_headers = dict(self.config.headers())
        if headers:
            request_headers.update(headers)
        async with self._limiter:
            return await client.request(
                method,
                url,
                json=dict(body) if body is not None else None,
                headers=request_headers,
            )

    async def post_data_list(self, body: Mapping[str, Any]) -> httpx.Response:
        return await self.query(self.data_list_url, "POST", body=body)

    async def get_json(self, url: str, *, params: Any = None) -> Any:
        """GET ``url`` and return the decoded JSON body; HTTP errors raise."""
        client = self._get_client()
        async with self._limiter:
            resp = await client.get(url, params=params, headers=self.config.headers())
        resp.raise_for_status()
        return resp.json()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "DataListClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["DataListClient", "RequestLimiter"]
