"""
Chart rendering for Event Tabs sparklines.

PURPOSE: Compose normalizer + scales + curves into a drawable chart.
AI CONTEXT: Returns data (RenderedChart) and, separately, SVG markup.
Nothing here knows about HTTP or tabs.

SUPPRESSION RULES (render() returns None):
1. Container width or height <= 0
2. Empty series (failed or pending fetch)
3. Every value is zero ("no signal", even though the value floor could
   draw a flat line)
4. Padded plot area has no positive extent

TRANSITIONS:
Each dataset change enters from the zeroed baseline at opacity 0 and
animates to the real curve at opacity 1. The renderer only emits the
(from, to) pair; to_svg() expresses it as SMIL <animate> elements and
TransitionTracker tells callers when a dataset actually changed.

USAGE:
    renderer = ChartRenderer()
    chart = renderer.render(series, 140, 48)
    if chart is not None:
        svg = renderer.to_svg(chart, gradient_id="clicks")
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Mapping
from html import escape

from .config import Config
from .curves import natural_area_path, natural_line_path
from .models import (
    ChartPoint,
    ChartShape,
    ChartTransition,
    FadeGradient,
    RenderedChart,
    TimeSeries,
)
from .normalizer import SeriesNormalizer
from .scales import ScaleBuilder, ScreenMapping

__all__ = ["ChartRenderer", "TransitionTracker", "series_key"]

logger = logging.getLogger(__name__)


def series_key(series: TimeSeries) -> str:
    """
    Stable identity of a dataset, used to detect dataset changes.

    Two series with the same timestamps and values share a key no matter
    which fetch produced them.
    """
    digest = hashlib.sha1(usedforsecurity=False)
    for point in series:
        digest.update(f"{point.timestamp.isoformat()}={point.value!r};".encode())
    return digest.hexdigest()[:16]


class ChartRenderer:
    """
    Turns a TimeSeries into line/fill shapes plus their zeroed baselines.

    DESIGN:
    - Line and fill share the natural curve so their edges coincide
    - Baseline shapes share x coordinates with the real shapes
    - Fill fade is fixed (1 -> 0 top to bottom), independent of values
    """

    def __init__(
        self,
        normalizer: SeriesNormalizer | None = None,
        scales: ScaleBuilder | None = None,
    ) -> None:
        self.normalizer = normalizer or SeriesNormalizer()
        self.scales = scales or ScaleBuilder()

    def render(
        self,
        series: TimeSeries | None,
        width: float,
        height: float,
    ) -> RenderedChart | None:
        """
        Render a series into a sparkline description.

        Business context: Tabs for categories with no activity should stay
        clean rather than show a meaningless flat line, so all-zero series
        are suppressed along with empty data and collapsed layouts.

        Args:
            series: Normalized series for one category. None is treated
                like an empty series.
            width: Container width in pixels.
            height: Container height in pixels.

        Returns:
            RenderedChart, or None when there is nothing to draw.

        Example:
            >>> chart = ChartRenderer().render(series, 140, 48)
            >>> chart.line_shape.path.startswith("M")
            True
        """
        if width <= 0 or height <= 0:
            return None
        if not series or self.normalizer.is_all_zero(series):
            return None

        plot_width, plot_height = Config.plot_size(width, height)
        if plot_width <= 0 or plot_height <= 0:
            logger.debug("Container %sx%s too small after padding", width, height)
            return None

        domain = self.scales.build_domain(series)
        mapping = self.scales.map_to_screen(domain, plot_width, plot_height)
        baseline = self.normalizer.zeroed_baseline(series)

        line_shape, fill_shape = self._shapes(series, mapping)
        baseline_line, baseline_fill = self._shapes(baseline, mapping)

        transition = ChartTransition(
            from_line=baseline_line,
            from_fill=baseline_fill,
            to_line=line_shape,
            to_fill=fill_shape,
            key=series_key(series),
        )
        return RenderedChart(
            width=width,
            height=height,
            plot_width=plot_width,
            plot_height=plot_height,
            domain=domain,
            line_shape=line_shape,
            fill_shape=fill_shape,
            baseline_line_shape=baseline_line,
            baseline_fill_shape=baseline_fill,
            fade=FadeGradient(
                from_opacity=Config.FILL_FADE_FROM_OPACITY,
                to_opacity=Config.FILL_FADE_TO_OPACITY,
            ),
            transition=transition,
        )

    @staticmethod
    def _shapes(series: TimeSeries, mapping: ScreenMapping) -> tuple[ChartShape, ChartShape]:
        points = tuple(
            ChartPoint(x=mapping.x_of(point.timestamp), y=mapping.y_of(point.value))
            for point in series
        )
        line = ChartShape(points=points, path=natural_line_path(points))
        fill = ChartShape(points=points, path=natural_area_path(points, mapping.bottom))
        return line, fill

    def to_svg(self, chart: RenderedChart, gradient_id: str = "chart", animate: bool = True) -> str:
        """
        Serialize a rendered chart as a standalone SVG document.

        The line is stroked with a horizontal color gradient; the fill uses
        the same gradient under a vertical fade mask. With `animate`, both
        paths carry <animate> elements driving `d` and `opacity` from the
        baseline shapes to the real ones.

        Args:
            chart: Output of render().
            gradient_id: Prefix for element ids; must be unique per page.
            animate: Emit the enter transition (False renders the final
                state directly, e.g. for a redraw of an unchanged dataset).

        Returns:
            SVG markup string.
        """
        gid = escape(gradient_id, quote=True)
        pad = Config.CHART_PADDING
        fade = chart.fade
        transition = chart.transition

        line_anim = fill_anim = ""
        if animate:
            line_anim = self._animate_elements(
                transition.from_line.path,
                transition.to_line.path,
                transition.from_opacity,
                transition.to_opacity,
            )
            fill_anim = self._animate_elements(
                transition.from_fill.path,
                transition.to_fill.path,
                transition.from_opacity,
                transition.to_opacity,
            )

        return (
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{chart.width:g}" '
            f'height="{chart.height:g}" data-key="{transition.key}">'
            "<defs>"
            f'<linearGradient id="{gid}-color" x1="0" x2="1" y1="0" y2="0">'
            f'<stop offset="0%" stop-color="{Config.GRADIENT_FROM}"/>'
            f'<stop offset="100%" stop-color="{Config.GRADIENT_TO}"/>'
            "</linearGradient>"
            f'<linearGradient id="{gid}-fade" x1="{fade.x1:g}" x2="{fade.x2:g}" '
            f'y1="{fade.y1:g}" y2="{fade.y2:g}">'
            f'<stop offset="0%" stop-color="white" stop-opacity="{fade.from_opacity:g}"/>'
            f'<stop offset="100%" stop-color="white" stop-opacity="{fade.to_opacity:g}"/>'
            "</linearGradient>"
            f'<mask id="{gid}-mask" maskContentUnits="objectBoundingBox">'
            f'<rect width="1" height="1" fill="url(#{gid}-fade)"/>'
            "</mask>"
            "</defs>"
            f'<g transform="translate({pad["left"]},{pad["top"]})">'
            f'<path class="sparkline-line" d="{chart.line_shape.path}" fill="none" '
            f'stroke="url(#{gid}-color)" stroke-width="{Config.LINE_STROKE_WIDTH:g}">'
            f"{line_anim}</path>"
            f'<path class="sparkline-fill" d="{chart.fill_shape.path}" '
            f'fill="url(#{gid}-color)" mask="url(#{gid}-mask)">'
            f"{fill_anim}</path>"
            "</g>"
            "</svg>"
        )

    @staticmethod
    def _animate_elements(from_d: str, to_d: str, from_opacity: float, to_opacity: float) -> str:
        dur = f"{Config.TRANSITION_SECONDS:g}s"
        return (
            f'<animate attributeName="d" from="{from_d}" to="{to_d}" '
            f'dur="{dur}" fill="freeze" calcMode="spline" keySplines="0.4 0 0.2 1" '
            'keyTimes="0;1"/>'
            f'<animate attributeName="opacity" from="{from_opacity:g}" to="{to_opacity:g}" '
            f'dur="{dur}" fill="freeze"/>'
        )


class TransitionTracker:
    """
    Remembers the last dataset drawn per category.

    observe() answers "did the dataset behind this tab change?". A changed
    identity (new fetch result or a different category's values) means the
    enter animation must run; the same identity again means the chart can
    be redrawn in its final state. Observing repeatedly is idempotent.

    A tracker describes one viewer: seed it with the dataset keys that
    viewer already displays and never share it between viewers.
    """

    def __init__(self, known: Mapping[str, str] | None = None) -> None:
        self._keys: dict[str, str] = dict(known or {})

    def observe(self, category: str, series: TimeSeries | None) -> bool:
        """
        Record the dataset for a category.

        Args:
            category: Tab the series is drawn in.
            series: Series about to be drawn (None/empty counts as a dataset).

        Returns:
            True if the identity differs from the last observed one.
        """
        key = series_key(series or ())
        changed = self._keys.get(category) != key
        self._keys[category] = key
        if changed:
            logger.debug("Dataset for %s changed (key=%s)", category, key)
        return changed

    def reset(self) -> None:
        """Forget all observed datasets."""
        self._keys.clear()
