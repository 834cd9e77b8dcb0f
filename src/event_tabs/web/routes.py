"""
FastAPI routes for the Event Tabs dashboard.

PURPOSE: Thin route handlers that delegate to presenters.
AI CONTEXT: Routes should be simple - business logic in presenters and
the selection controller.

ROUTE STRUCTURE:
- / : Full page with the tab grid
- /partials/tabs : htmx fragment for the current query string
- /select/{category} : Switch tab, return fragment + HX-Push-Url
- /charts/{category}.svg : Sparkline SVG
- /charts/{category}.png : Larger matplotlib chart
- /api/* : JSON endpoints for programmatic access

QUERY STATE:
The request's query string is the persisted selection state. Each handler
wraps it in a QueryStringState; writes come back to the browser through
HX-Push-Url so the address bar stays the single source of truth.
"""

from __future__ import annotations

import json
import logging
from html import escape
from typing import Annotated
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, Response

from ..config import Config
from ..fetcher import TimeseriesFetcher, build_url
from ..models import EventCategory
from ..presenters import ChartPresenter, EventTabsPresenter, EventTabsViewModel, EventTabViewModel
from ..renderer import ChartRenderer, TransitionTracker
from ..selection import QueryStringState, TabSelectionController

__all__ = [
    "router",
    "get_chart_presenter",
    "get_fetcher",
    "get_transition_tracker",
]

logger = logging.getLogger(__name__)

router = APIRouter()

LAYOUT_PARAMS: frozenset[str] = frozenset({"compact"})
"""Query keys that describe the surface, not the persisted selection."""

CHART_KEYS_HEADER = "X-Chart-Keys"
"""Request header carrying `category=key` pairs of the sparklines on screen."""

# =============================================================================
# CSS Styles
# =============================================================================

_DASHBOARD_CSS = """
* { box-sizing: border-box; margin: 0; padding: 0; }
body {
    font-family: system-ui, -apple-system, sans-serif;
    background: #f9fafb;
    color: #111827;
    padding: 1.5rem;
}
.tabs {
    display: grid;
    grid-template-columns: repeat(3, minmax(0, 1fr));
    gap: 1rem;
    overflow-x: auto;
}
.event-tab {
    display: flex;
    justify-content: space-between;
    gap: 1rem;
    border: 1px solid #e5e7eb;
    border-radius: 0.75rem;
    background: white;
    padding: 1rem 1.25rem;
    text-align: left;
    cursor: pointer;
}
.event-tab.active { border-color: black; box-shadow: 0 0 0 1px black inset; }
.tab-label { font-size: 0.875rem; color: #4b5563; }
.tab-total { margin-top: 0.5rem; font-size: 1.5rem; }
.tab-chart { max-width: 140px; flex-grow: 1; }
"""

# =============================================================================
# Dependency Factory Functions
# =============================================================================


def get_fetcher() -> TimeseriesFetcher:
    """
    Create a TimeseriesFetcher for the configured analytics endpoint.

    Returns:
        Fetcher honoring Config.get_api_base() and Config.requires_upgrade().
    """
    return TimeseriesFetcher()


def get_transition_tracker(request: Request) -> TransitionTracker:
    """
    Create a tracker seeded with the charts the requesting page already shows.

    htmx sends the dataset keys of the displayed sparklines back in the
    CHART_KEYS_HEADER header (see _render_tabs). A refresh that redraws the
    same dataset skips the enter animation; anything new, or a request
    without the header, animates.
    """
    return TransitionTracker(parse_chart_keys(request.headers.get(CHART_KEYS_HEADER, "")))


def get_chart_presenter() -> ChartPresenter:
    """Create a ChartPresenter for the larger category chart."""
    return ChartPresenter()


def _query_state(request: Request) -> QueryStringState:
    return QueryStringState(
        (key, value) for key, value in request.query_params.items() if key not in LAYOUT_PARAMS
    )


def _is_compact(request: Request) -> bool:
    return request.query_params.get("compact", "").lower() in {"1", "true", "yes"}


def _layout_query(request: Request) -> str:
    """Surface parameters of the request, kept apart from the selection."""
    return urlencode([(k, v) for k, v in request.query_params.items() if k in LAYOUT_PARAMS])


def _url(path: str, *queries: str) -> str:
    query = "&".join(q for q in queries if q)
    return f"{path}?{query}" if query else path


def parse_chart_keys(header: str) -> dict[str, str]:
    """
    Parse a CHART_KEYS_HEADER value.

    Unknown categories and malformed pairs are ignored.

    Example:
        >>> parse_chart_keys("clicks=3f2a,leads=9c01")
        {'clicks': '3f2a', 'leads': '9c01'}
    """
    keys: dict[str, str] = {}
    for pair in header.split(","):
        category, sep, key = pair.strip().partition("=")
        if sep and key and EventCategory.parse(category) is not None:
            keys[category] = key
    return keys


def format_chart_keys(keys: dict[str, str]) -> str:
    """Inverse of parse_chart_keys()."""
    return ",".join(f"{category}={key}" for category, key in keys.items())


async def _build_view(
    request: Request,
    controller: TabSelectionController,
    fetcher: TimeseriesFetcher,
    tracker: TransitionTracker,
) -> EventTabsViewModel:
    """Fetch data for the controller's query state and build the view model."""
    presenter = EventTabsPresenter(controller, renderer=ChartRenderer(), tracker=tracker)
    # Repair before fetching so the request reflects the corrected state.
    repaired = controller.enforce_sort_invariant()
    query = controller.query.to_query_string()
    outcome = await fetcher.load(controller.build_request(), query)
    totals = await fetcher.load_totals(controller.entitlement.has_composite, query)
    view = presenter.build(outcome.records, totals, compact=_is_compact(request))
    view.sort_repaired = view.sort_repaired or repaired
    return view


# ============================================================================
# Full Page Routes
# ============================================================================


@router.get("/", response_class=HTMLResponse)
async def dashboard_page(
    request: Request,
    fetcher: Annotated[TimeseriesFetcher, Depends(get_fetcher)],
) -> HTMLResponse:
    """
    Render the full dashboard page.

    Business context: The page URL is shareable. Opening it restores the
    same tab and sort, minus any sort the passive check had to repair.
    A full page load mounts every sparkline, so each one enters with the
    transition regardless of what other viewers have drawn.

    Returns:
        HTMLResponse with the complete page.
    """
    controller = TabSelectionController(_query_state(request))
    view = await _build_view(request, controller, fetcher, TransitionTracker())
    return HTMLResponse(
        content=_render_page(view, _layout_query(request)),
        media_type="text/html; charset=utf-8",
    )


# ============================================================================
# Partial Routes (htmx)
# ============================================================================


@router.get("/partials/tabs", response_class=HTMLResponse)
async def tabs_partial(
    request: Request,
    fetcher: Annotated[TimeseriesFetcher, Depends(get_fetcher)],
    tracker: Annotated[TransitionTracker, Depends(get_transition_tracker)],
) -> HTMLResponse:
    """
    Render the tab grid fragment for htmx refreshes.

    Returns:
        HTMLResponse with the grid; HX-Push-Url is set when the passive
        sort check rewrote the query.
    """
    controller = TabSelectionController(_query_state(request))
    view = await _build_view(request, controller, fetcher, tracker)
    layout = _layout_query(request)
    response = HTMLResponse(
        content=_render_tabs(view, layout), media_type="text/html; charset=utf-8"
    )
    if view.sort_repaired:
        response.headers["HX-Push-Url"] = _url("/", view.query_string, layout)
    return response


@router.get("/select/{category}", response_class=HTMLResponse)
async def select_tab(
    category: str,
    request: Request,
    fetcher: Annotated[TimeseriesFetcher, Depends(get_fetcher)],
    tracker: Annotated[TransitionTracker, Depends(get_transition_tracker)],
) -> HTMLResponse:
    """
    Switch the active tab and return the refreshed grid.

    The incoming query string is the state before the click; the pushed
    URL is the state after it (new tab, possibly without `sort`).

    Raises:
        HTTPException: 404 if the tab is unknown or hidden.
    """
    controller = TabSelectionController(_query_state(request))
    try:
        controller.select_tab(category)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    view = await _build_view(request, controller, fetcher, tracker)
    layout = _layout_query(request)
    response = HTMLResponse(
        content=_render_tabs(view, layout), media_type="text/html; charset=utf-8"
    )
    response.headers["HX-Push-Url"] = _url("/", view.query_string, layout)
    return response


# ============================================================================
# Chart Routes
# ============================================================================


def _require_category(category: str) -> str:
    parsed = EventCategory.parse(category)
    if parsed is None:
        raise HTTPException(status_code=404, detail=f"Unknown category: {category}")
    return parsed.value


@router.get("/charts/{category}.svg")
async def sparkline_svg(
    category: str,
    request: Request,
    fetcher: Annotated[TimeseriesFetcher, Depends(get_fetcher)],
    width: int = Config.SPARKLINE_WIDTH,
    height: int = Config.SPARKLINE_HEIGHT,
) -> Response:
    """
    Serve one category's sparkline as SVG.

    Suppressed charts (no data, all zero, degenerate size) come back as an
    empty SVG of the requested size so <img> tags never break.
    """
    name = _require_category(category)
    controller = TabSelectionController(_query_state(request))
    outcome = await fetcher.load(controller.build_request(), controller.query.to_query_string())

    presenter = EventTabsPresenter(controller)
    renderer = presenter.renderer
    chart = renderer.render(presenter.series_for(outcome.records, name), width, height)
    if chart is None:
        svg = (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{max(width, 0)}" '
            f'height="{max(height, 0)}"/>'
        )
    else:
        svg = renderer.to_svg(chart, gradient_id=f"spark-{name}")
    return Response(content=svg, media_type="image/svg+xml")


@router.get("/charts/{category}.png")
async def category_chart(
    category: str,
    request: Request,
    fetcher: Annotated[TimeseriesFetcher, Depends(get_fetcher)],
    presenter: Annotated[ChartPresenter, Depends(get_chart_presenter)],
) -> Response:
    """
    Serve the larger chart of one category as PNG.

    Falls back to an SVG placeholder if matplotlib is not installed.
    """
    name = _require_category(category)
    controller = TabSelectionController(_query_state(request))
    outcome = await fetcher.load(controller.build_request(), controller.query.to_query_string())
    try:
        png_bytes = presenter.render_category_chart(outcome.records, name)
        return Response(content=png_bytes, media_type="image/png")
    except ImportError:
        # matplotlib not installed - return placeholder
        return Response(
            content=_placeholder_chart_svg(name.capitalize()),
            media_type="image/svg+xml",
        )
    except ValueError as e:
        logger.warning("Cannot chart %s: %s", name, e)
        return Response(
            content=_placeholder_chart_svg(name.capitalize()),
            media_type="image/svg+xml",
        )


# ============================================================================
# API Routes (JSON)
# ============================================================================


@router.get("/api/tabs")
async def api_tabs(
    request: Request,
    fetcher: Annotated[TimeseriesFetcher, Depends(get_fetcher)],
    tracker: Annotated[TransitionTracker, Depends(get_transition_tracker)],
) -> dict[str, object]:
    """
    Get the tab grid view model as JSON.

    Returns:
        Dict with active_tab, sort, query, sort_repaired, request and a
        list of tabs (category, label, total, active, has_chart).
    """
    controller = TabSelectionController(_query_state(request))
    view = await _build_view(request, controller, fetcher, tracker)
    return view.to_dict()


@router.get("/api/request")
async def api_request(request: Request) -> dict[str, object]:
    """
    Get the derived fetch request for the current query state.

    Useful for checking which URL the dashboard would fetch without
    fetching it.
    """
    controller = TabSelectionController(_query_state(request))
    spec = controller.build_request()
    return {
        "request": spec.to_params(),
        "url": build_url(Config.get_api_base(), controller.query.to_query_string(), spec),
        "retry_on_transient_error": not Config.requires_upgrade(),
        "visible_tabs": list(controller.visible_tabs),
        "active_tab": controller.active_tab,
    }


# ============================================================================
# Template Rendering Helpers
# ============================================================================


def _placeholder_chart_svg(title: str) -> bytes:
    """
    Generate a placeholder SVG when a PNG chart cannot be drawn.

    Args:
        title: Chart title to display in the placeholder.

    Returns:
        UTF-8 encoded bytes of an SVG image.
    """
    svg = f"""<svg xmlns="http://www.w3.org/2000/svg" width="400" height="200">
        <rect width="100%" height="100%" fill="#f1f5f9"/>
        <text x="50%" y="50%" text-anchor="middle" fill="#64748b" font-size="16">
            {title} Chart (unavailable)
        </text>
    </svg>"""
    return svg.encode("utf-8")


def _render_tab(tab: EventTabViewModel, view: EventTabsViewModel, layout: str = "") -> str:
    chart_html = ""
    if tab.has_chart:
        chart_html = f'<div class="tab-chart">{tab.chart_svg}</div>'
    select_url = _url(f"/select/{tab.category}", view.query_string, layout)
    return f"""<button class="{tab.css_class}" data-category="{tab.category}"
            hx-get="{escape(select_url)}"
            hx-target="#event-tabs"
            hx-swap="outerHTML"
            hx-sync="#event-tabs:replace">
        <div>
            <p class="tab-label">{tab.label}</p>
            <p class="tab-total">{tab.total_display}</p>
        </div>
        {chart_html}
    </button>"""


def _render_tabs(view: EventTabsViewModel, layout: str = "") -> str:
    """
    Render the tab grid fragment.

    hx-sync replace aborts an in-flight tab request when a newer click
    arrives, so only the latest response is swapped in. hx-headers hands
    the keys of the sparklines drawn here back to the server, and every
    tab request inherits it.
    """
    buttons = "".join(_render_tab(tab, view, layout) for tab in view.tabs)
    headers = json.dumps({CHART_KEYS_HEADER: format_chart_keys(view.chart_keys)})
    return f"""<div class="tabs" id="event-tabs" data-active="{view.active_tab}"
        hx-headers="{escape(headers)}">
        {buttons}
    </div>"""


def _render_page(view: EventTabsViewModel, layout: str = "") -> str:
    """Render the complete dashboard HTML document."""
    chart_url = _url(f"/charts/{view.active_tab}.png", view.query_string)
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Events</title>
    <script src="https://unpkg.com/htmx.org@1.9.10"></script>
    <style>
        {_DASHBOARD_CSS}
    </style>
</head>
<body>
    {_render_tabs(view, layout)}
    <div id="category-chart">
        <img src="{escape(chart_url)}"
             alt="{view.active_tab.capitalize()} chart">
    </div>
</body>
</html>"""
