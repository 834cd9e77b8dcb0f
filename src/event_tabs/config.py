"""
Configuration for Event Tabs.

PURPOSE: Centralized configuration constants and runtime settings.
AI CONTEXT: All configurable values live here - modify this file to change behavior.

CONFIGURATION CATEGORIES:
- Categories: Tracked event categories and tab defaults
- Sorting: Valid sort fields per category
- Chart Geometry: Value floor, padding, default sparkline size, palette
- Fetching: API base path, retry budget, timeout

ENVIRONMENT VARIABLES:
- EVENT_TABS_API_BASE: Analytics endpoint base path (default: http://localhost:8888/api/analytics)
- EVENT_TABS_DEMO: "true" to enable demo mode (unlocks composite data)
- EVENT_TABS_BETA_TESTER: "true" for beta-tester workspaces (unlocks composite data)
- EVENT_TABS_REQUIRES_UPGRADE: "true" when the workspace is blocked pending upgrade
- EVENT_TABS_TIMEZONE: IANA timezone sent with requests (default: local zone)

USAGE:
    from event_tabs.config import Config
    floor = Config.VALUE_FLOOR
    sorts = Config.sort_options_for("sales")
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar


def _env_flag(name: str) -> bool:
    """Read a boolean environment variable ("true"/"1"/"yes")."""
    return os.environ.get(name, "").strip().lower() in {"true", "1", "yes"}


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration container for Event Tabs.

    DESIGN: Frozen dataclass ensures configuration immutability at runtime.
    All values are class-level constants - no instance creation needed.

    CHART GEOMETRY:
        +---------------- width ----------------+
        |  top padding (8)                      |
        |  +------- plot area ---------------+  |
        |  |                                 |  |
        |  +---------------------------------+  |
        |  bottom padding (2)                   |
        +---------------------------------------+
    The x range additionally reserves the right padding twice so the
    curve's last point never touches the border.
    """

    # =========================================================================
    # EVENT CATEGORIES
    # =========================================================================
    CATEGORIES: ClassVar[tuple[str, ...]] = ("clicks", "leads", "sales")
    BASIC_CATEGORIES: ClassVar[tuple[str, ...]] = ("clicks",)
    DEFAULT_TAB: ClassVar[str] = "clicks"

    # =========================================================================
    # SORTING
    # =========================================================================
    SALES_SORT_OPTIONS: ClassVar[frozenset[str]] = frozenset({"timestamp", "amount"})
    DEFAULT_SORT_OPTIONS: ClassVar[frozenset[str]] = frozenset({"date"})
    PRESERVED_SORT: ClassVar[str] = "timestamp"
    """
    The only sort value the passive check leaves alone outside the sales tab.
    """

    # =========================================================================
    # QUERY KEYS
    # =========================================================================
    TAB_PARAM: ClassVar[str] = "tab"
    SORT_PARAM: ClassVar[str] = "sort"

    # =========================================================================
    # CHART GEOMETRY
    # =========================================================================
    VALUE_FLOOR: ClassVar[float] = -2.0
    """
    Lower bound of every value domain. Slightly below zero so a low or flat
    series still sits visibly above the plot bottom.
    """

    NICE_TICK_COUNT: ClassVar[int] = 10

    CHART_PADDING: ClassVar[dict[str, int]] = {"top": 8, "right": 2, "bottom": 2, "left": 2}

    SPARKLINE_WIDTH: ClassVar[int] = 140
    SPARKLINE_HEIGHT: ClassVar[int] = 48

    GRADIENT_FROM: ClassVar[str] = "#7D3AEC"
    GRADIENT_TO: ClassVar[str] = "#DA2778"
    LINE_STROKE_WIDTH: ClassVar[float] = 1.5
    FILL_FADE_FROM_OPACITY: ClassVar[float] = 1.0
    FILL_FADE_TO_OPACITY: ClassVar[float] = 0.0

    TRANSITION_SECONDS: ClassVar[float] = 0.6

    # =========================================================================
    # FETCHING
    # =========================================================================
    DEFAULT_API_BASE: ClassVar[str] = "http://localhost:8888/api/analytics"
    FETCH_MAX_RETRIES: ClassVar[int] = 3
    FETCH_TIMEOUT_SECONDS: ClassVar[float] = 10.0
    TRANSIENT_STATUS_CODES: ClassVar[frozenset[int]] = frozenset({429, 500, 502, 503, 504})

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @classmethod
    def sort_options_for(cls, category: str) -> frozenset[str]:
        """
        Return the sort fields valid for a category's event table.

        Sales rows carry a sale amount and a precise timestamp; every other
        category is only sortable by date.

        Args:
            category: Event category name.

        Returns:
            Frozen set of valid sort field names.

        Example:
            >>> sorted(Config.sort_options_for("sales"))
            ['amount', 'timestamp']
            >>> sorted(Config.sort_options_for("leads"))
            ['date']
        """
        if category == "sales":
            return cls.SALES_SORT_OPTIONS
        return cls.DEFAULT_SORT_OPTIONS

    @classmethod
    def plot_size(cls, width: float, height: float) -> tuple[float, float]:
        """
        Compute the plot area left after padding a container.

        Args:
            width: Container width in pixels.
            height: Container height in pixels.

        Returns:
            (plot_width, plot_height). Either may be zero or negative for
            tiny containers; callers treat that as "nothing to draw".

        Example:
            >>> Config.plot_size(140, 48)
            (134, 38)
        """
        pad = cls.CHART_PADDING
        return (
            width - pad["left"] - pad["right"] * 2,
            height - pad["top"] - pad["bottom"],
        )

    # =========================================================================
    # ENVIRONMENT-BASED SETTINGS (runtime configurable)
    # =========================================================================
    _api_base_override: ClassVar[str | None] = None
    _demo_override: ClassVar[bool | None] = None
    _beta_tester_override: ClassVar[bool | None] = None
    _requires_upgrade_override: ClassVar[bool | None] = None
    _timezone_override: ClassVar[str | None] = None

    @classmethod
    def get_api_base(cls) -> str:
        """
        Get the analytics endpoint base path.

        Priority: test override, then EVENT_TABS_API_BASE, then the default.

        Returns:
            Base URL without a query string.
        """
        if cls._api_base_override is not None:
            return cls._api_base_override
        return os.environ.get("EVENT_TABS_API_BASE", cls.DEFAULT_API_BASE)

    @classmethod
    def is_demo(cls) -> bool:
        """Check whether the dashboard runs in demo mode."""
        if cls._demo_override is not None:
            return cls._demo_override
        return _env_flag("EVENT_TABS_DEMO")

    @classmethod
    def is_beta_tester(cls) -> bool:
        """Check whether the workspace is enrolled as a beta tester."""
        if cls._beta_tester_override is not None:
            return cls._beta_tester_override
        return _env_flag("EVENT_TABS_BETA_TESTER")

    @classmethod
    def requires_upgrade(cls) -> bool:
        """
        Check whether the workspace is blocked pending a plan upgrade.

        Business context: A blocked workspace gets a guaranteed failure from
        the analytics endpoint. Retrying would only hammer it, so the fetcher
        disables automatic retries when this is set.

        Returns:
            True when EVENT_TABS_REQUIRES_UPGRADE is set (or overridden).
        """
        if cls._requires_upgrade_override is not None:
            return cls._requires_upgrade_override
        return _env_flag("EVENT_TABS_REQUIRES_UPGRADE")

    @classmethod
    def get_timezone(cls) -> str:
        """
        Get the timezone name sent with timeseries requests.

        Uses a priority system: test override, then EVENT_TABS_TIMEZONE,
        then the name of the local zone as reported by the interpreter.
        Buckets on the server are aligned to this zone.

        Returns:
            Timezone name, e.g. 'Europe/Berlin' or 'UTC'.

        Example:
            >>> Config.set_test_overrides(timezone="America/New_York")
            >>> Config.get_timezone()
            'America/New_York'
        """
        if cls._timezone_override is not None:
            return cls._timezone_override
        configured = os.environ.get("EVENT_TABS_TIMEZONE", "").strip()
        if configured:
            return configured
        local = datetime.now().astimezone().tzinfo
        key = getattr(local, "key", None)
        if key:
            return str(key)
        return datetime.now().astimezone().tzname() or "UTC"

    @classmethod
    def set_test_overrides(
        cls,
        api_base: str | None = None,
        demo: bool | None = None,
        beta_tester: bool | None = None,
        requires_upgrade: bool | None = None,
        timezone: str | None = None,
    ) -> None:
        """
        Set test overrides for environment-based settings.

        Must call reset_test_overrides() in test teardown to avoid affecting
        other tests.

        Args:
            api_base: Override for the analytics base path. None to clear.
            demo: Override for demo mode. None to clear.
            beta_tester: Override for beta-tester enrollment. None to clear.
            requires_upgrade: Override for the upgrade block. None to clear.
            timezone: Override for the request timezone. None to clear.
        """
        cls._api_base_override = api_base
        cls._demo_override = demo
        cls._beta_tester_override = beta_tester
        cls._requires_upgrade_override = requires_upgrade
        cls._timezone_override = timezone

    @classmethod
    def reset_test_overrides(cls) -> None:
        """Reset all test overrides to use environment variables."""
        cls._api_base_override = None
        cls._demo_override = None
        cls._beta_tester_override = None
        cls._requires_upgrade_override = None
        cls._timezone_override = None
