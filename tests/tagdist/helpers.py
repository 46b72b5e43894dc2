from __future__ import annotations

import asyncio
import json
import random
from typing import Any, Iterable

import httpx

from tagdist.foundation.config import ApiConfig
from tagdist.runtime.io.datalist_client import DataListClient
from tagdist.runtime.io.wire import parse_wire_timestamp, to_wire_timestamp

BASE_URL = "https://api.test"
TAG = "temperature"
SOURCE_ID = "src-1"


class FakeDataListBackend:
    """In-memory DataList endpoint served through ``httpx.MockTransport``.

    ``points`` are ``(epoch_ms, value)`` pairs; timestamps should be whole
    seconds because the wire format drops milliseconds.
    """

    def __init__(
        self,
        points: Iterable[tuple[int, Any]],
        *,
        tag: str = TAG,
        before: Iterable[tuple[int, Any]] = (),
        jitter_s: float = 0.0,
        rate_limit_responses: int = 0,
        always_rate_limit: bool = False,
        fail_offsets: Iterable[int] = (),
        seed: int = 7,
    ) -> None:
        self.tag = tag
        self.points = sorted(points, key=lambda p: p[0])
        self.before = sorted(before, key=lambda p: p[0])
        self.jitter_s = jitter_s
        self.rate_limit_responses = rate_limit_responses
        self.always_rate_limit = always_rate_limit
        self.fail_offsets = set(fail_offsets)
        self._rng = random.Random(seed)
        self.bodies: list[dict[str, Any]] = []
        self.page_offsets: list[int] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    # ------------------------------------------------------------------
    def _in_range(self, start_ms: int, end_ms: int) -> list[tuple[int, Any]]:
        return [p for p in self.points + self.before if start_ms <= p[0] < end_ms]

    def _wire(self, rows: list[tuple[int, Any]]) -> list[dict[str, Any]]:
        return [{"time": to_wire_timestamp(ts), "values": {self.tag: v}} for ts, v in rows]

    def respond(self, body: dict[str, Any]) -> httpx.Response:
        self.bodies.append(body)
        query = body["tags"][0]["queries"][0]
        start_ms = parse_wire_timestamp(body["start"])
        end_ms = parse_wire_timestamp(body["end"])
        rows = sorted(self._in_range(start_ms, end_ms), key=lambda p: p[0])

        if query.get("postAggr") == "count":
            if not rows:
                return httpx.Response(200, json={"data": {"points": []}})
            bucket = {"time": body["start"], "values": {self.tag: len(rows)}}
            return httpx.Response(200, json={"data": {"points": [bucket]}})

        if query.get("postAggr") == "raw":
            if not rows:
                return httpx.Response(200, json={"data": {"points": []}})
            ts, value = rows[-1]
            bucket = {"time": body["start"], "values": {self.tag: value}}
            return httpx.Response(200, json={"data": {"points": [bucket]}})

        self.page_offsets.append(query["offset"])
        if query["offset"] in self.fail_offsets:
            return httpx.Response(500, json={"error": "backend unavailable"})
        if self.always_rate_limit or self.rate_limit_responses > 0:
            self.rate_limit_responses = max(0, self.rate_limit_responses - 1)
            return httpx.Response(429, json={"error": "too many requests"})
        offset, limit = query["offset"], query["limit"]
        return httpx.Response(
            200, json={"data": {"points": self._wire(rows[offset : offset + limit])}}
        )

    async def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.jitter_s:
                await asyncio.sleep(self._rng.uniform(0, self.jitter_s))
            return self.respond(body)
        finally:
            self.in_flight -= 1

    def client(self) -> DataListClient:
        return DataListClient(
            ApiConfig(base_url=BASE_URL),
            transport=httpx.MockTransport(self.handler),
        )


def seconds(*values: int) -> list[int]:
    return [v * 1000 for v in values]
