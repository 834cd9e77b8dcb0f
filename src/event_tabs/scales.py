"""
Scale building for Event Tabs sparklines.

PURPOSE: Derive value/time domains from a series and map them to pixels.
AI CONTEXT: Pure math - no rendering, no I/O.

SCALES:
- Value scale: linear, domain [VALUE_FLOOR, max], range [plot_height, 0]
  (inverted so larger values sit higher), nice-rounded and clamped.
- Time scale: linear over epoch seconds, domain [first, last],
  range [0, plot_width].

NICE ROUNDING:
Extends the domain outward to multiples of a 1/2/5 x 10^k step chosen for
NICE_TICK_COUNT ticks, repeating until the step stops changing. This keeps
the scale stable across nearby datasets (a max of 97 and a max of 99 both
draw against 100).

USAGE:
    builder = ScaleBuilder()
    domain = builder.build_domain(series)
    mapping = builder.map_to_screen(domain, 134, 38)
    y = mapping.y_of(12.0)
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from .config import Config
from .models import Domain, TimeSeries

__all__ = ["LinearScale", "ScaleBuilder", "ScreenMapping", "tick_increment"]

_E10 = math.sqrt(50)
_E5 = math.sqrt(10)
_E2 = math.sqrt(2)


def tick_increment(start: float, stop: float, count: int) -> float:
    """
    Compute the tick step for a span, as a signed increment.

    Positive results are the step itself (>= 1). Negative results encode a
    fractional step as its negated reciprocal (-5 means 0.2), which keeps
    the rounding arithmetic exact for small steps.

    Args:
        start: Lower end of the span.
        stop: Upper end of the span.
        count: Desired number of ticks.

    Returns:
        Signed increment; 0 or NaN-derived values mean "no usable step".

    Example:
        >>> tick_increment(0, 100, 10)
        10
        >>> tick_increment(-2, 5, 10)
        -2.0
    """
    span = stop - start
    if count <= 0 or span <= 0 or not math.isfinite(span):
        return 0
    step = span / count
    power = math.floor(math.log10(step))
    error = step / (10**power)
    if error >= _E10:
        factor = 10
    elif error >= _E5:
        factor = 5
    elif error >= _E2:
        factor = 2
    else:
        factor = 1
    if power < 0:
        return -(10 ** (-power)) / factor
    return factor * 10**power


class LinearScale:
    """
    Continuous linear map from a numeric domain to a numeric range.

    A degenerate domain (both ends equal) maps every input to the middle
    of the range instead of dividing by zero.
    """

    def __init__(
        self,
        domain: tuple[float, float],
        output_range: tuple[float, float],
        clamp: bool = False,
    ) -> None:
        self.domain = (float(domain[0]), float(domain[1]))
        self.range = (float(output_range[0]), float(output_range[1]))
        self.clamp = clamp

    def nice(self, count: int = 10) -> LinearScale:
        """
        Extend the domain to round values. Returns self for chaining.

        Args:
            count: Desired tick count used to pick the rounding step.
        """
        start, stop = self.domain
        reverse = stop < start
        if reverse:
            start, stop = stop, start

        previous_step: float | None = None
        for _ in range(10):
            step = tick_increment(start, stop, count)
            if step == previous_step:
                break
            if step > 0:
                start = math.floor(start / step) * step
                stop = math.ceil(stop / step) * step
            elif step < 0:
                start = math.ceil(start * step) / step
                stop = math.floor(stop * step) / step
            else:
                break
            previous_step = step

        # Normalize negative zero from the reciprocal arithmetic.
        start, stop = start + 0.0, stop + 0.0
        self.domain = (stop, start) if reverse else (start, stop)
        return self

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        span = d1 - d0
        if span == 0:
            return (r0 + r1) / 2
        t = (value - d0) / span
        if self.clamp:
            t = min(1.0, max(0.0, t))
        return r0 + t * (r1 - r0)


class TimeScale:
    """Linear scale over instants, measured in epoch seconds."""

    def __init__(
        self,
        domain: tuple[datetime, datetime],
        output_range: tuple[float, float],
    ) -> None:
        self.domain = domain
        self._linear = LinearScale(
            (domain[0].timestamp(), domain[1].timestamp()),
            output_range,
        )

    def __call__(self, instant: datetime) -> float:
        return self._linear(instant.timestamp())


@dataclass(frozen=True)
class ScreenMapping:
    """Coordinate-mapping functions for one plot area."""

    x_of: Callable[[datetime], float]
    y_of: Callable[[float], float]
    nice_value_domain: tuple[float, float]
    plot_width: float
    plot_height: float

    @property
    def bottom(self) -> float:
        """Y coordinate of the plot bottom (where the fill closes)."""
        return self.plot_height


class ScaleBuilder:
    """
    Builds domains and screen mappings for sparklines.

    DESIGN:
    - Stateless: each call depends only on its arguments
    - Value floor fixed at Config.VALUE_FLOOR, not derived from data
    """

    def __init__(
        self,
        value_floor: float | None = None,
        tick_count: int | None = None,
    ) -> None:
        self.value_floor = Config.VALUE_FLOOR if value_floor is None else value_floor
        self.tick_count = Config.NICE_TICK_COUNT if tick_count is None else tick_count

    def build_domain(self, series: TimeSeries) -> Domain:
        """
        Compute value and time extents of a series.

        The lower value bound is the fixed visual floor, not the data
        minimum, so low series keep a visible gap above the plot bottom.

        Args:
            series: Non-empty time series.

        Returns:
            Domain with value_min at the floor and value_max at the series
            maximum; time bounds at the earliest and latest timestamps.

        Raises:
            ValueError: If the series is empty. Callers suppress empty
                series before building scales.

        Example:
            >>> domain = ScaleBuilder().build_domain(series)
            >>> domain.value_min
            -2.0
        """
        if not series:
            raise ValueError("Cannot build a domain for an empty series")
        timestamps = [point.timestamp for point in series]
        return Domain(
            value_min=self.value_floor,
            value_max=max(point.value for point in series),
            time_min=min(timestamps),
            time_max=max(timestamps),
        )

    def map_to_screen(
        self,
        domain: Domain,
        plot_width: float,
        plot_height: float,
    ) -> ScreenMapping:
        """
        Create x/y mapping functions for a plot area.

        Business context: Sparklines for categories with very different
        magnitudes sit side by side. Each gets its own value scale so every
        curve uses its full height; nice rounding keeps redraws stable when
        the data shifts slightly between refreshes.

        Args:
            domain: Extents from build_domain().
            plot_width: Plot area width in pixels.
            plot_height: Plot area height in pixels.

        Returns:
            ScreenMapping whose y_of is inverted, nice-rounded and clamped,
            and whose x_of spans [0, plot_width].

        Example:
            >>> mapping = ScaleBuilder().map_to_screen(domain, 100, 40)
            >>> mapping.y_of(domain.value_max) <= mapping.y_of(0)
            True
        """
        y_scale = LinearScale(
            (domain.value_min, domain.value_max),
            (plot_height, 0.0),
            clamp=True,
        ).nice(self.tick_count)
        x_scale = TimeScale((domain.time_min, domain.time_max), (0.0, plot_width))
        return ScreenMapping(
            x_of=x_scale,
            y_of=y_scale,
            nice_value_domain=y_scale.domain,
            plot_width=plot_width,
            plot_height=plot_height,
        )
