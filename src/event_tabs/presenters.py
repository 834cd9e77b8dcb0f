"""
Presenters for the Event Tabs dashboard.

PURPOSE: Testable business logic layer between data and UI.
AI CONTEXT: Pure data transformation - no I/O, no HTTP.

DESIGN PRINCIPLES:
1. Presenters receive data, return view models (dataclasses)
2. No dependencies on a specific UI framework
3. Fully unit-testable without mocking
4. The tab grid and the larger category chart are separate presenters

USAGE:
    presenter = EventTabsPresenter(controller)
    view = presenter.build(records, totals)
    # view.tabs is a list ready for template rendering
"""

from __future__ import annotations

import io
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .config import Config
from .models import RenderedChart, RequestSpec, TimeSeries
from .normalizer import SeriesNormalizer
from .renderer import ChartRenderer, TransitionTracker
from .selection import TabSelectionController

__all__ = [
    "ChartPresenter",
    "EventTabViewModel",
    "EventTabsPresenter",
    "EventTabsViewModel",
]

logger = logging.getLogger(__name__)


@dataclass
class EventTabViewModel:
    """View model for one tab button."""

    category: str
    total: int
    is_active: bool
    chart: RenderedChart | None = None
    chart_svg: str = ""

    @property
    def label(self) -> str:
        """Capitalized category name, e.g. 'Sales'."""
        return self.category.capitalize()

    @property
    def total_display(self) -> str:
        """
        Total with thousands separators.

        Example:
            >>> EventTabViewModel("clicks", 12345, True).total_display
            '12,345'
        """
        return f"{self.total:,}"

    @property
    def css_class(self) -> str:
        """CSS classes for the tab button."""
        return "event-tab active" if self.is_active else "event-tab"

    @property
    def has_chart(self) -> bool:
        """True when a sparkline should be drawn."""
        return self.chart is not None


@dataclass
class EventTabsViewModel:
    """Complete view model for the tab grid."""

    tabs: list[EventTabViewModel] = field(default_factory=list)
    active_tab: str = Config.DEFAULT_TAB
    sort_field: str | None = None
    request: RequestSpec | None = None
    query_string: str = ""
    sort_repaired: bool = False

    @property
    def chart_keys(self) -> dict[str, str]:
        """Dataset key of every drawn sparkline, by category."""
        return {tab.category: tab.chart.transition.key for tab in self.tabs if tab.chart}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the JSON API."""
        return {
            "active_tab": self.active_tab,
            "sort": self.sort_field,
            "query": self.query_string,
            "sort_repaired": self.sort_repaired,
            "request": self.request.to_params() if self.request else None,
            "tabs": [
                {
                    "category": tab.category,
                    "label": tab.label,
                    "total": tab.total,
                    "active": tab.is_active,
                    "has_chart": tab.has_chart,
                }
                for tab in self.tabs
            ],
        }


class EventTabsPresenter:
    """
    Presenter for the tab grid.

    Runs the passive sort check, then builds one view model per visible
    tab with its total and, when data and space allow, its sparkline.
    """

    def __init__(
        self,
        controller: TabSelectionController,
        renderer: ChartRenderer | None = None,
        normalizer: SeriesNormalizer | None = None,
        tracker: TransitionTracker | None = None,
    ) -> None:
        """
        Initialize the presenter with its collaborators.

        Args:
            controller: Selection controller bound to the request's query
                state.
            renderer: Sparkline renderer. Defaults to a new ChartRenderer.
            normalizer: Record normalizer. Defaults to the renderer's.
            tracker: Dataset-change tracker deciding whether charts enter
                with the transition. A new tracker animates every chart.
        """
        self.controller = controller
        self.renderer = renderer or ChartRenderer()
        self.normalizer = normalizer or self.renderer.normalizer
        self.tracker = tracker or TransitionTracker()

    def series_for(self, records: Sequence[Mapping[str, Any]] | None, category: str) -> TimeSeries:
        """
        Normalize records for one category, treating bad data as no data.

        Args:
            records: Raw timeseries records, or None when the fetch failed.
            category: Field to read.

        Returns:
            TimeSeries; empty if records are missing or malformed.
        """
        try:
            return self.normalizer.normalize(records, category)
        except (ValueError, TypeError) as e:
            logger.warning("Ignoring malformed timeseries for %s: %s", category, e)
            return ()

    def build(
        self,
        records: Sequence[Mapping[str, Any]] | None,
        totals: Mapping[str, int] | None = None,
        compact: bool = False,
        width: float | None = None,
        height: float | None = None,
    ) -> EventTabsViewModel:
        """
        Build the tab grid view model.

        Business context: Each tab shows its category's running total; the
        sparkline is a secondary cue and is dropped on compact (mobile)
        surfaces or when there is no data at all.

        Args:
            records: Timeseries records from the fetcher (None on failure).
            totals: Per-category totals; missing categories show 0.
            compact: Surface too narrow for sparklines.
            width: Sparkline container width (default Config.SPARKLINE_WIDTH).
            height: Sparkline container height (default Config.SPARKLINE_HEIGHT).

        Returns:
            EventTabsViewModel for the current query state.
        """
        repaired = self.controller.enforce_sort_invariant()
        selection = self.controller.selection
        active = selection.active_tab
        totals = totals or {}
        width = Config.SPARKLINE_WIDTH if width is None else width
        height = Config.SPARKLINE_HEIGHT if height is None else height
        show_charts = bool(records) and not compact

        tabs: list[EventTabViewModel] = []
        for category in self.controller.visible_tabs:
            tab = EventTabViewModel(
                category=category,
                total=int(totals.get(category, 0) or 0),
                is_active=category == active,
            )
            if show_charts:
                series = self.series_for(records, category)
                chart = self.renderer.render(series, width, height)
                if chart is not None:
                    tab.chart = chart
                    tab.chart_svg = self.renderer.to_svg(
                        chart,
                        gradient_id=f"spark-{category}",
                        animate=self.tracker.observe(category, series),
                    )
            tabs.append(tab)

        return EventTabsViewModel(
            tabs=tabs,
            active_tab=active,
            sort_field=selection.sort_field,
            request=self.controller.build_request(),
            query_string=self.controller.query.to_query_string(),
            sort_repaired=repaired,
        )


class ChartPresenter:
    """
    Presenter for the larger view of the active category.

    Uses matplotlib for server-side chart rendering.
    Returns PNG images as bytes for htmx refresh.
    """

    def __init__(self, normalizer: SeriesNormalizer | None = None) -> None:
        self.normalizer = normalizer or SeriesNormalizer()

    def render_category_chart(
        self,
        records: Sequence[Mapping[str, Any]] | None,
        category: str,
    ) -> bytes:
        """
        Render one category's time series as an area chart PNG.

        Draws the series with the sparkline palette and a translucent fill.
        Empty or all-zero data renders a "No data" placeholder rather than
        an empty axis.

        Args:
            records: Timeseries records (None on fetch failure).
            category: Category field to plot.

        Returns:
            PNG image as bytes, 800x300 pixels at 100 DPI.

        Raises:
            ImportError: If matplotlib is not installed. Caller should
                catch this and provide fallback (e.g., placeholder SVG).
            ValueError: If a record timestamp cannot be parsed.
        """
        # Lazy import matplotlib to keep it optional
        import matplotlib

        matplotlib.use("Agg")  # Non-interactive backend
        import matplotlib.pyplot as plt

        series = self.normalizer.normalize(records, category)

        if not series or SeriesNormalizer.is_all_zero(series):
            fig, ax = plt.subplots(figsize=(8, 3))
            ax.text(0.5, 0.5, "No data", ha="center", va="center", fontsize=14)
            ax.set_xlim(0, 1)
            ax.set_ylim(0, 1)
            ax.axis("off")
        else:
            fig, ax = plt.subplots(figsize=(8, 3))
            dates = [point.timestamp for point in series]
            values = [point.value for point in series]
            ax.plot(dates, values, color=Config.GRADIENT_FROM, linewidth=1.5)
            ax.fill_between(dates, values, color=Config.GRADIENT_TO, alpha=0.15)
            ax.set_ylim(bottom=0)
            ax.set_title(category.capitalize())
            ax.spines["top"].set_visible(False)
            ax.spines["right"].set_visible(False)
            fig.autofmt_xdate()

        buf = io.BytesIO()
        plt.tight_layout()
        plt.savefig(buf, format="png", dpi=100, bbox_inches="tight")
        plt.close(fig)
        buf.seek(0)
        return buf.read()
