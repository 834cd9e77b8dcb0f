"""
Pytest configuration and shared fixtures for Event Tabs tests.

This module contains:
- AnalyticsStub: In-memory analytics endpoint served through httpx.MockTransport
- Series helpers for building TimeSeries from (offset, value) pairs
- Shared fixtures available to all test modules
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from event_tabs.config import Config
from event_tabs.models import TimePoint, TimeSeries

EPOCH = datetime(2026, 10, 1, tzinfo=UTC)


def make_series(pairs: Sequence[tuple[int, float]]) -> TimeSeries:
    """
    Build a TimeSeries from (day offset, value) pairs.

    Example:
        >>> make_series([(0, 0), (1, 5)])[1].value
        5.0
    """
    return tuple(
        TimePoint(timestamp=EPOCH + timedelta(days=offset), value=float(value))
        for offset, value in pairs
    )


def make_records(rows: Sequence[tuple[int, int, int, int]]) -> list[dict[str, Any]]:
    """Build composite records from (day offset, clicks, leads, sales) rows."""
    return [
        {
            "start": (EPOCH + timedelta(days=offset)).isoformat().replace("+00:00", "Z"),
            "clicks": clicks,
            "leads": leads,
            "sales": sales,
        }
        for offset, clicks, leads, sales in rows
    ]


class AnalyticsStub:
    """
    In-memory analytics endpoint.

    Answers groupBy=timeseries with `records` (clicks-only requests get the
    leads/sales fields stripped) and groupBy=count with `totals`. Every
    request URL is recorded; `failures` queues status codes to return
    before succeeding.
    """

    def __init__(
        self,
        records: list[dict[str, Any]] | None = None,
        totals: dict[str, int] | None = None,
    ) -> None:
        self.records = records if records is not None else []
        self.totals = totals if totals is not None else {}
        self.failures: list[int] = []
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        if self.failures:
            return httpx.Response(self.failures.pop(0))

        params = {k: v[-1] for k, v in parse_qs(urlsplit(str(request.url)).query).items()}
        if params.get("groupBy") == "count":
            if params.get("event") == "composite":
                return httpx.Response(200, json=self.totals)
            return httpx.Response(200, json={"clicks": self.totals.get("clicks", 0)})

        if params.get("event") == "composite":
            return httpx.Response(200, json=self.records)
        return httpx.Response(
            200,
            json=[{"start": r["start"], "clicks": r.get("clicks", 0)} for r in self.records],
        )

    def client(self) -> httpx.AsyncClient:
        """AsyncClient routed to this stub."""
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def params(self, index: int = -1) -> dict[str, str]:
        """Query parameters of a recorded request."""
        query = urlsplit(self.requests[index]).query
        return {k: v[-1] for k, v in parse_qs(query).items()}


@pytest.fixture(autouse=True)
def reset_config() -> Iterator[None]:
    """Pin the timezone and clear every Config override after each test."""
    Config.set_test_overrides(timezone="UTC")
    yield
    Config.reset_test_overrides()


@pytest.fixture
def composite_records() -> list[dict[str, Any]]:
    """Five daily buckets: clicks busy, leads sparse, sales all zero."""
    return make_records(
        [
            (0, 10, 0, 0),
            (1, 25, 1, 0),
            (2, 18, 0, 0),
            (3, 40, 3, 0),
            (4, 32, 0, 0),
        ]
    )


@pytest.fixture
def analytics(composite_records: list[dict[str, Any]]) -> AnalyticsStub:
    """Analytics stub with composite records and totals."""
    return AnalyticsStub(
        records=composite_records,
        totals={"clicks": 125, "leads": 4, "sales": 0},
    )
