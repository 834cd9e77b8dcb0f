"""
Event Tabs.

PURPOSE: Per-category event totals with inline sparklines and tab selection.
AI CONTEXT: Data-to-visual pipeline plus selection/query-state sync.

PACKAGE STRUCTURE:
- models.py: Value types (TimePoint, Domain, ChartShape, RequestSpec, ...)
- normalizer.py: Raw records -> TimeSeries, zeroed baselines
- scales.py: Value/time domains and screen mappings
- curves.py: Natural cubic spline path generation
- renderer.py: RenderedChart assembly, transitions, SVG output
- selection.py: Active tab state, sort repair, request shaping
- fetcher.py: Timeseries fetch with retry and last-write-wins
- presenters.py: View models for the tab grid and charts
- web/: FastAPI + htmx dashboard
- config.py: Configuration constants

QUICK START:
    from event_tabs.normalizer import SeriesNormalizer
    from event_tabs.renderer import ChartRenderer

    series = SeriesNormalizer().normalize(records, "clicks")
    chart = ChartRenderer().render(series, 140, 48)
"""

from event_tabs.__version__ import (
    __description__,
    __license__,
    __title__,
    __url__,
    __version__,
    __version_date__,
)

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__license__",
]
