from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from tagdist.foundation.config import ApiConfig
from tagdist.runtime.io.datalist_client import DataListClient
from tagdist.runtime.io.fetcher import DataListFetcher, RetryPolicy
from tagdist.runtime.io.wire import SamplePoint, Window
from tagdist.runtime.sdk import metrics as sdk_metrics
from tagdist.runtime.sdk.exceptions import MalformedResponseError
from tagdist.foundation.common.metrics_factory import get_metric_value
from tests.tagdist.helpers import BASE_URL, SOURCE_ID, TAG, FakeDataListBackend, seconds

WINDOW = Window(10_000, 100_000)


def _client_for(handler) -> DataListClient:
    return DataListClient(ApiConfig(base_url=BASE_URL), transport=httpx.MockTransport(handler))


@pytest.fixture
def sleeps(monkeypatch):
    orig_sleep = asyncio.sleep
    delays: list[float] = []

    async def _fake_sleep(duration, *args, **kwargs):
        delays.append(duration)
        await orig_sleep(0)

    monkeypatch.setattr(asyncio, "sleep", _fake_sleep)
    return delays


@pytest.mark.asyncio
async def test_count_points_reads_single_bucket():
    backend = FakeDataListBackend([(ts, 1.0) for ts in seconds(10, 20, 30, 200)])
    async with backend.client() as client:
        count = await DataListFetcher(client).count_points(SOURCE_ID, TAG, WINDOW)
    assert count == 3
    query = backend.bodies[0]["tags"][0]["queries"][0]
    assert query["postAggr"] == "count"
    assert query["step"] == 90


@pytest.mark.asyncio
async def test_count_points_empty_bucket_list_means_zero():
    backend = FakeDataListBackend([])
    async with backend.client() as client:
        assert await DataListFetcher(client).count_points(SOURCE_ID, TAG, WINDOW) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"message": "no data key"},
        {"data": {"points": [{"time": "1970-01-01T00:00:10Z", "values": {}}]}},
        {"data": {"points": [{"time": "1970-01-01T00:00:10Z", "values": {TAG: "many"}}]}},
    ],
)
async def test_count_points_malformed_response_is_fatal(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    async with _client_for(handler) as client:
        with pytest.raises(MalformedResponseError):
            await DataListFetcher(client).count_points(SOURCE_ID, TAG, WINDOW)


@pytest.mark.asyncio
async def test_fetch_page_requests_ascending_slice():
    backend = FakeDataListBackend([(ts, float(ts)) for ts in seconds(*range(10, 40))])
    async with backend.client() as client:
        page = await DataListFetcher(client).fetch_page(SOURCE_ID, TAG, WINDOW, 5, 5)
    assert [p.values[TAG] for p in page] == [float(ts) for ts in seconds(15, 16, 17, 18, 19)]
    assert backend.bodies[0]["tags"][0]["queries"][0]["order"] == "asc"


@pytest.mark.asyncio
async def test_fetch_page_retries_rate_limit_with_linear_backoff(sleeps):
    backend = FakeDataListBackend([(ts, 1.0) for ts in seconds(10, 11)], rate_limit_responses=2)
    async with backend.client() as client:
        page = await DataListFetcher(client).fetch_page(SOURCE_ID, TAG, WINDOW, 0, 10)
    assert len(page) == 2
    assert sleeps == [1.0, 2.0]
    assert get_metric_value(sdk_metrics.rate_limited_total) == 2


@pytest.mark.asyncio
async def test_fetch_page_gives_up_after_three_retries_without_raising(sleeps):
    backend = FakeDataListBackend([(ts, 1.0) for ts in seconds(10, 11)], always_rate_limit=True)
    async with backend.client() as client:
        page = await DataListFetcher(client).fetch_page(SOURCE_ID, TAG, WINDOW, 0, 10)
    assert page == []
    assert len(backend.page_offsets) == 4
    assert sleeps == [1.0, 2.0, 3.0]


@pytest.mark.asyncio
async def test_fetch_page_returns_points_held_by_last_rate_limited_response(sleeps):
    partial = {"data": {"points": [{"time": "1970-01-01T00:00:10Z", "values": {TAG: 4}}]}}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json=partial)

    fetcher = DataListFetcher(
        _client_for(handler), retry_policy=RetryPolicy(max_retries=1, backoff_step_s=0.5)
    )
    page = await fetcher.fetch_page(SOURCE_ID, TAG, WINDOW, 0, 10)
    await fetcher.client.aclose()
    assert [p.values[TAG] for p in page] == [4]
    assert sleeps == [0.5]


@pytest.mark.asyncio
async def test_fetch_page_propagates_server_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"msg": "error"})

    async with _client_for(handler) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await DataListFetcher(client).fetch_page(SOURCE_ID, TAG, WINDOW, 0, 10)


@pytest.mark.asyncio
async def test_backfill_point_is_restamped_at_window_start():
    backend = FakeDataListBackend(
        [(ts, 1.0) for ts in seconds(20, 30)], before=[(2_000, 7.0), (5_000, 8.5)]
    )
    async with backend.client() as client:
        point = await DataListFetcher(client).fetch_backfill_point(SOURCE_ID, [TAG], WINDOW)
    assert point == SamplePoint(time=WINDOW.start_ms, value=8.5)
    body = backend.bodies[0]
    assert body["start"] == "1970-01-01T00:00:00Z"
    assert body["end"] == "1970-01-01T00:00:10Z"
    assert body["tags"][0]["queries"][0]["limit"] == 1


@pytest.mark.asyncio
async def test_backfill_absent_returns_none():
    backend = FakeDataListBackend([(ts, 1.0) for ts in seconds(20)])
    async with backend.client() as client:
        assert await DataListFetcher(client).fetch_backfill_point(SOURCE_ID, [TAG], WINDOW) is None


@pytest.mark.asyncio
async def test_client_sends_api_headers():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"points": []}})

    cfg = ApiConfig(
        base_url=BASE_URL, access_token="secret", application_id="app", company_id="co"
    )
    async with DataListClient(cfg, transport=httpx.MockTransport(handler)) as client:
        await DataListFetcher(client).count_points(SOURCE_ID, TAG, WINDOW)
    request = seen[0]
    assert str(request.url) == f"{BASE_URL}/data"
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.headers["Api-Application"] == "app"
    assert request.headers["Api-Company"] == "co"
    assert request.headers["Api-Version"] == "2"
    assert json.loads(request.content)["source"] == {"publicId": SOURCE_ID}
