"""
Timeseries fetching for Event Tabs.

PURPOSE: Adapter over the analytics HTTP endpoint.
AI CONTEXT: The only suspending operation in the package. Everything it
returns is plain JSON data; normalization happens elsewhere.

BEHAVIOR:
- URL = base path + current query parameters + {groupBy, event, timezone}
  (the RequestSpec keys overwrite same-named query keys)
- Transient failures (transport errors, 429, 5xx) are retried with linear
  backoff, unless the workspace requires an upgrade: that endpoint fails
  every time, so the first failure is final
- Last write wins: every load() takes a generation number; a response that
  arrives after a newer load() started is discarded, never applied

USAGE:
    fetcher = TimeseriesFetcher()
    outcome = await fetcher.load(spec, "interval=30d&tab=clicks")
    if outcome.records is not None:
        ...
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from .config import Config
from .models import RequestSpec
from .selection import edit_query_string

__all__ = ["FetchError", "FetchOutcome", "TimeseriesFetcher", "build_url"]

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the analytics endpoint cannot deliver a usable response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def build_url(base_path: str, query_string: str, spec: RequestSpec | Mapping[str, str]) -> str:
    """
    Merge a RequestSpec into the current query and append it to the base.

    Args:
        base_path: Endpoint without query string.
        query_string: Current persisted parameters (filters, tab, sort...).
        spec: RequestSpec or raw parameter overrides.

    Returns:
        Full request URL.

    Example:
        >>> build_url("/api/analytics", "interval=7d", RequestSpec("clicks", "UTC"))
        '/api/analytics?interval=7d&groupBy=timeseries&event=clicks&timezone=UTC'
    """
    params = spec.to_params() if isinstance(spec, RequestSpec) else dict(spec)
    return f"{base_path}?{edit_query_string(query_string, params)}"


@dataclass(frozen=True)
class FetchOutcome:
    """
    Result of one load().

    records is None when the fetch failed or was superseded; `stale` tells
    the two apart. Callers treat both as "no data".
    """

    url: str
    records: list[dict[str, Any]] | None = None
    error: str | None = None
    stale: bool = False

    @property
    def ok(self) -> bool:
        """True when records were delivered and are current."""
        return self.records is not None and not self.stale


class TimeseriesFetcher:
    """
    Fetches timeseries and totals with retry and last-write-wins.

    DESIGN:
    - One httpx.AsyncClient per request unless a client is injected
    - Retry budget from Config.FETCH_MAX_RETRIES, disabled when the
      workspace requires an upgrade
    - Generation counter guards against applying superseded results
    """

    def __init__(
        self,
        base_path: str | None = None,
        client: httpx.AsyncClient | None = None,
        requires_upgrade: bool | None = None,
        max_retries: int | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Configure the fetcher.

        Args:
            base_path: Analytics endpoint. Defaults to Config.get_api_base().
            client: Shared AsyncClient (tests inject one with a
                MockTransport). None creates a short-lived client per call.
            requires_upgrade: Workspace is blocked pending upgrade.
                Defaults to Config.requires_upgrade().
            max_retries: Retry budget for transient errors.
            sleep: Backoff coroutine, replaceable in tests.
        """
        self.base_path = base_path or Config.get_api_base()
        self.client = client
        self.requires_upgrade = (
            Config.requires_upgrade() if requires_upgrade is None else requires_upgrade
        )
        self.max_retries = Config.FETCH_MAX_RETRIES if max_retries is None else max_retries
        self._sleep = sleep
        self._generation = 0

    @property
    def retry_on_transient_error(self) -> bool:
        """Whether transient failures are retried at all."""
        return not self.requires_upgrade

    async def get_json(self, url: str) -> Any:
        """
        GET a URL and decode its JSON body, retrying transient failures.

        Args:
            url: Full request URL.

        Returns:
            Decoded JSON value.

        Raises:
            FetchError: On non-transient errors (including httpx failures
                other than transport errors), exhausted retries, or an
                undecodable body.
        """
        retries = self.max_retries if self.retry_on_transient_error else 0
        attempt = 0
        while True:
            try:
                response = await self._get(url)
            except httpx.TransportError as e:
                if attempt >= retries:
                    raise FetchError(f"Request failed: {e}") from e
                attempt += 1
                logger.warning("Transport error for %s (attempt %d): %s", url, attempt, e)
                await self._sleep(float(attempt))
                continue
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise FetchError(f"Request failed: {e}") from e

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as e:
                    raise FetchError("Response body is not valid JSON") from e

            if response.status_code in Config.TRANSIENT_STATUS_CODES and attempt < retries:
                attempt += 1
                logger.warning(
                    "Transient status %d for %s (attempt %d)", response.status_code, url, attempt
                )
                await self._sleep(float(attempt))
                continue

            raise FetchError(
                f"Request failed with status {response.status_code}",
                status_code=response.status_code,
            )

    async def _get(self, url: str) -> httpx.Response:
        if self.client is not None:
            return await self.client.get(url)
        async with httpx.AsyncClient(timeout=Config.FETCH_TIMEOUT_SECONDS) as client:
            return await client.get(url)

    async def load(self, spec: RequestSpec, query_string: str = "") -> FetchOutcome:
        """
        Fetch the timeseries for a request spec.

        Business context: Users flip tabs and filters quickly. Each change
        starts a new load; only the newest one may reach the charts, so an
        older response arriving late is dropped instead of overwriting
        fresher data.

        Args:
            spec: Request shape from the selection controller.
            query_string: Current persisted query parameters.

        Returns:
            FetchOutcome with records, or with error/stale set.
        """
        self._generation += 1
        generation = self._generation
        url = build_url(self.base_path, query_string, spec)

        records: list[dict[str, Any]] | None = None
        error: str | None = None
        try:
            payload = await self.get_json(url)
            if not isinstance(payload, list):
                raise FetchError("Timeseries response is not a list")
            records = [item for item in payload if isinstance(item, dict)]
        except FetchError as e:
            logger.warning("Timeseries fetch failed for %s: %s", url, e)
            error = str(e)

        if generation != self._generation:
            logger.debug("Discarding superseded response for %s", url)
            return FetchOutcome(url=url, stale=True)
        return FetchOutcome(url=url, records=records, error=error)

    async def load_totals(self, has_composite: bool, query_string: str = "") -> dict[str, int]:
        """
        Fetch aggregate totals per category.

        Missing categories (clicks-only responses) and failed requests
        read as zero.

        Args:
            has_composite: Request all categories rather than clicks only.
            query_string: Current persisted query parameters.

        Returns:
            Mapping of every configured category to its total.
        """
        url = build_url(
            self.base_path,
            query_string,
            {"groupBy": "count", "event": "composite" if has_composite else "clicks"},
        )
        totals = dict.fromkeys(Config.CATEGORIES, 0)
        try:
            payload = await self.get_json(url)
        except FetchError as e:
            logger.warning("Totals fetch failed for %s: %s", url, e)
            return totals
        if isinstance(payload, dict):
            for category in Config.CATEGORIES:
                value = payload.get(category)
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    totals[category] = int(value)
        return totals
