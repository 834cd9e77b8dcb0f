"""Tests for fetcher module."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from conftest import AnalyticsStub

from event_tabs.config import Config
from event_tabs.fetcher import FetchError, TimeseriesFetcher, build_url
from event_tabs.models import RequestSpec

BASE = "http://stub/api/analytics"
COMPOSITE = RequestSpec(event="composite", timezone="UTC")
CLICKS = RequestSpec(event="clicks", timezone="UTC")


class SleepRecorder:
    """Backoff replacement that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep() -> SleepRecorder:
    """No-op backoff."""
    return SleepRecorder()


def _fetcher(stub: AnalyticsStub, sleep: SleepRecorder, **kwargs: Any) -> TimeseriesFetcher:
    kwargs.setdefault("requires_upgrade", False)
    return TimeseriesFetcher(base_path=BASE, client=stub.client(), sleep=sleep, **kwargs)


class TestBuildUrl:
    """Tests for request URL construction."""

    def test_spec_params_appended(self) -> None:
        """Verifies the request shape is merged after existing filters."""
        url = build_url("/api/analytics", "interval=7d", CLICKS)
        assert url == "/api/analytics?interval=7d&groupBy=timeseries&event=clicks&timezone=UTC"

    def test_spec_overrides_query(self) -> None:
        """Verifies the request shape wins over same-named query params."""
        url = build_url("/a", "event=leads&tab=sales", COMPOSITE)
        assert "event=composite" in url
        assert "event=leads" not in url
        assert "tab=sales" in url

    def test_raw_mapping(self) -> None:
        """Verifies plain overrides are accepted."""
        assert build_url("/a", "", {"groupBy": "count"}) == "/a?groupBy=count"


class TestGetJson:
    """Tests for retry behavior."""

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(
        self, analytics: AnalyticsStub, sleep: SleepRecorder
    ) -> None:
        """Verifies 503s are retried with increasing backoff."""
        analytics.failures = [503, 503]
        fetcher = _fetcher(analytics, sleep)
        outcome = await fetcher.load(COMPOSITE)
        assert outcome.ok
        assert len(analytics.requests) == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_retries(self, analytics: AnalyticsStub, sleep: SleepRecorder) -> None:
        """Verifies the retry budget bounds the attempts."""
        analytics.failures = [500] * 10
        fetcher = _fetcher(analytics, sleep, max_retries=2)
        with pytest.raises(FetchError) as exc_info:
            await fetcher.get_json(BASE)
        assert exc_info.value.status_code == 500
        assert len(analytics.requests) == 3

    @pytest.mark.asyncio
    async def test_no_retry_when_upgrade_required(
        self, analytics: AnalyticsStub, sleep: SleepRecorder
    ) -> None:
        """Verifies a blocked workspace fails on the first error.

        Business context:
        The endpoint answers every request of a workspace that needs an
        upgrade with an error; retrying only adds load.
        """
        analytics.failures = [503]
        fetcher = _fetcher(analytics, sleep, requires_upgrade=True)
        assert fetcher.retry_on_transient_error is False
        outcome = await fetcher.load(COMPOSITE)
        assert outcome.records is None
        assert outcome.error is not None
        assert len(analytics.requests) == 1
        assert sleep.delays == []

    def test_requires_upgrade_from_config(self, analytics: AnalyticsStub) -> None:
        """Verifies the default retry mode comes from Config."""
        Config.set_test_overrides(requires_upgrade=True)
        fetcher = TimeseriesFetcher(base_path=BASE, client=analytics.client())
        assert fetcher.retry_on_transient_error is False

    @pytest.mark.asyncio
    async def test_client_error_not_retried(
        self, analytics: AnalyticsStub, sleep: SleepRecorder
    ) -> None:
        """Verifies 404 is final."""
        analytics.failures = [404]
        fetcher = _fetcher(analytics, sleep)
        with pytest.raises(FetchError):
            await fetcher.get_json(BASE)
        assert len(analytics.requests) == 1

    @pytest.mark.asyncio
    async def test_transport_error_retried(self, sleep: SleepRecorder) -> None:
        """Verifies connection failures count as transient."""
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=[])

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = TimeseriesFetcher(
            base_path=BASE, client=client, requires_upgrade=False, sleep=sleep
        )
        assert await fetcher.get_json(BASE) == []
        assert len(calls) == 2

    @pytest.mark.parametrize(
        "error",
        [
            lambda request: httpx.DecodingError("bad gzip stream", request=request),
            lambda request: httpx.TooManyRedirects("redirect loop", request=request),
            lambda request: httpx.InvalidURL("bad host"),
        ],
        ids=["decoding", "redirects", "invalid-url"],
    )
    @pytest.mark.asyncio
    async def test_other_httpx_errors_become_fetch_errors(
        self, error: Callable[[httpx.Request], Exception], sleep: SleepRecorder
    ) -> None:
        """Verifies non-transport httpx failures degrade like any failed fetch.

        Business context:
        A broken response must leave the tabs showing zero totals and no
        sparklines rather than failing the whole page.
        """
        calls: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(str(request.url))
            raise error(request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = TimeseriesFetcher(
            base_path=BASE, client=client, requires_upgrade=False, sleep=sleep
        )

        with pytest.raises(FetchError, match="Request failed"):
            await fetcher.get_json(BASE)
        assert len(calls) == 1
        assert sleep.delays == []

        outcome = await fetcher.load(COMPOSITE)
        assert outcome.records is None
        assert outcome.error is not None
        assert await fetcher.load_totals(True) == {"clicks": 0, "leads": 0, "sales": 0}

    @pytest.mark.asyncio
    async def test_invalid_json(self, sleep: SleepRecorder) -> None:
        """Verifies an undecodable body is a FetchError."""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))
        )
        fetcher = TimeseriesFetcher(base_path=BASE, client=client, sleep=sleep)
        with pytest.raises(FetchError, match="not valid JSON"):
            await fetcher.get_json(BASE)


class TestLoad:
    """Tests for TimeseriesFetcher.load."""

    @pytest.mark.asyncio
    async def test_composite_records(self, analytics: AnalyticsStub, sleep: SleepRecorder) -> None:
        """Verifies composite loads carry all three fields."""
        outcome = await _fetcher(analytics, sleep).load(COMPOSITE, "interval=30d")
        assert outcome.ok
        assert outcome.records is not None
        assert set(outcome.records[0]) == {"start", "clicks", "leads", "sales"}
        assert analytics.params() == {
            "interval": "30d",
            "groupBy": "timeseries",
            "event": "composite",
            "timezone": "UTC",
        }

    @pytest.mark.asyncio
    async def test_non_list_payload(self, sleep: SleepRecorder) -> None:
        """Verifies an object where a list is expected yields no data."""
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"error": "x"}))
        )
        fetcher = TimeseriesFetcher(base_path=BASE, client=client, sleep=sleep)
        outcome = await fetcher.load(CLICKS)
        assert outcome.records is None
        assert outcome.error == "Timeseries response is not a list"
        assert not outcome.stale

    @pytest.mark.asyncio
    async def test_superseded_response_discarded(self, sleep: SleepRecorder) -> None:
        """Verifies a late response for an older request is dropped.

        Arrangement:
        The first request blocks until the second has completed.

        Assertion Strategy:
        The first outcome is stale with no records even though its
        request succeeded; the second is applied.
        """
        release = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("event") == "composite":
                await release.wait()
                return httpx.Response(200, json=[{"start": "2026-10-01T00:00:00Z", "clicks": 1}])
            return httpx.Response(200, json=[{"start": "2026-10-01T00:00:00Z", "clicks": 2}])

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        fetcher = TimeseriesFetcher(base_path=BASE, client=client, sleep=sleep)

        older = asyncio.create_task(fetcher.load(COMPOSITE))
        await asyncio.sleep(0)
        newer = await fetcher.load(CLICKS)
        release.set()
        stale = await older

        assert newer.ok
        assert newer.records == [{"start": "2026-10-01T00:00:00Z", "clicks": 2}]
        assert stale.stale
        assert stale.records is None
        assert not stale.ok


class TestLoadTotals:
    """Tests for TimeseriesFetcher.load_totals."""

    @pytest.mark.asyncio
    async def test_composite_totals(self, analytics: AnalyticsStub, sleep: SleepRecorder) -> None:
        """Verifies all categories are returned for entitled workspaces."""
        totals = await _fetcher(analytics, sleep).load_totals(True)
        assert totals == {"clicks": 125, "leads": 4, "sales": 0}
        assert analytics.params()["groupBy"] == "count"

    @pytest.mark.asyncio
    async def test_clicks_only_defaults_missing(
        self, analytics: AnalyticsStub, sleep: SleepRecorder
    ) -> None:
        """Verifies absent categories read as zero."""
        totals = await _fetcher(analytics, sleep).load_totals(False)
        assert totals == {"clicks": 125, "leads": 0, "sales": 0}

    @pytest.mark.asyncio
    async def test_failure_reads_zero(self, analytics: AnalyticsStub, sleep: SleepRecorder) -> None:
        """Verifies a failed totals request does not break the tabs."""
        analytics.failures = [404]
        totals = await _fetcher(analytics, sleep).load_totals(True)
        assert totals == {"clicks": 0, "leads": 0, "sales": 0}
