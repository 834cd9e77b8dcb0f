"""
Data models for Event Tabs.

PURPOSE: Immutable value types flowing through the data-to-visual pipeline.
AI CONTEXT: These models define the shapes exchanged between normalizer,
scales, renderer, selection controller and fetcher.

MODEL HIERARCHY:
- TimePoint / TimeSeries: Normalized input for one event category
- Domain: Value and time extents derived from a TimeSeries
- ChartPoint / ChartShape: Screen-space path description
- ChartTransition / FadeGradient / RenderedChart: Renderer output
- Entitlement / RequestSpec / QueryUpdate: Selection and fetch inputs

IMMUTABILITY:
All models are frozen dataclasses. A new fetch produces a new TimeSeries;
nothing in the pipeline mutates one in place.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class EventCategory(str, Enum):
    """Tracked event categories, in display order."""

    CLICKS = "clicks"
    LEADS = "leads"
    SALES = "sales"

    @property
    def label(self) -> str:
        """Capitalized display label, e.g. 'Clicks'."""
        return self.value.capitalize()

    @classmethod
    def parse(cls, value: str | None) -> EventCategory | None:
        """
        Parse a persisted tab value without raising.

        Args:
            value: Raw query parameter value, possibly None or unknown.

        Returns:
            Matching EventCategory, or None if the value is not a category.

        Example:
            >>> EventCategory.parse("sales")
            <EventCategory.SALES: 'sales'>
            >>> EventCategory.parse("bogus") is None
            True
        """
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class TimePoint:
    """One bucket of a category's time series. Invariant: value >= 0."""

    timestamp: datetime
    value: float

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(f"TimePoint value must be >= 0, got {self.value}")


TimeSeries = tuple[TimePoint, ...]
"""Ordered by timestamp ascending, as delivered by the source."""


@dataclass(frozen=True)
class Domain:
    """Value and time extents of a series."""

    value_min: float
    value_max: float
    time_min: datetime
    time_max: datetime


@dataclass(frozen=True)
class ChartPoint:
    """A point in plot-area coordinates (origin top-left)."""

    x: float
    y: float


@dataclass(frozen=True)
class ChartShape:
    """
    Resolved path description over screen coordinates.

    `points` are the anchor points the curve passes through; `path` is the
    SVG path data drawn through them.
    """

    points: tuple[ChartPoint, ...]
    path: str

    @property
    def xs(self) -> tuple[float, ...]:
        """X coordinates of every anchor point."""
        return tuple(p.x for p in self.points)

    @property
    def ys(self) -> tuple[float, ...]:
        """Y coordinates of every anchor point."""
        return tuple(p.y for p in self.points)


@dataclass(frozen=True)
class FadeGradient:
    """Vertical opacity fade applied to the fill (depth cue only)."""

    from_opacity: float
    to_opacity: float
    x1: float = 0.0
    x2: float = 0.0
    y1: float = 0.0
    y2: float = 1.0


@dataclass(frozen=True)
class ChartTransition:
    """
    The (from, to) pair handed to the animation layer.

    Every dataset change enters from the zeroed baseline at opacity 0 and
    animates to the real shapes at opacity 1. `key` identifies the dataset
    so re-triggering the same transition simply retargets it.
    """

    from_line: ChartShape
    from_fill: ChartShape
    to_line: ChartShape
    to_fill: ChartShape
    key: str
    from_opacity: float = 0.0
    to_opacity: float = 1.0


@dataclass(frozen=True)
class RenderedChart:
    """Everything needed to draw one sparkline."""

    width: float
    height: float
    plot_width: float
    plot_height: float
    domain: Domain
    line_shape: ChartShape
    fill_shape: ChartShape
    baseline_line_shape: ChartShape
    baseline_fill_shape: ChartShape
    fade: FadeGradient
    transition: ChartTransition


@dataclass(frozen=True)
class Entitlement:
    """Workspace capabilities that unlock composite (clicks+leads+sales) data."""

    demo: bool = False
    beta_tester: bool = False

    @property
    def has_composite(self) -> bool:
        """True when either capability is present."""
        return self.demo or self.beta_tester


@dataclass(frozen=True)
class RequestSpec:
    """
    Shape of the timeseries request.

    Hashable: two equal specs mean "same request", which is how the fetch
    trigger decides whether anything needs to be refetched.
    """

    event: str
    timezone: str
    group_by: str = "timeseries"

    def to_params(self) -> dict[str, str]:
        """Query parameters contributed by this request (wire names)."""
        return {
            "groupBy": self.group_by,
            "event": self.event,
            "timezone": self.timezone,
        }


@dataclass(frozen=True)
class QueryUpdate:
    """
    A single write to the persisted query state.

    Keys in `set` overwrite existing values; `delete` removes one key.
    """

    set: Mapping[str, str] = field(default_factory=dict)
    delete: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging and JSON responses."""
        return {"set": dict(self.set), "del": self.delete}
