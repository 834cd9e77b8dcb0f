"""
Natural cubic spline paths for sparklines.

PURPOSE: Turn anchor points into smooth SVG path data.
AI CONTEXT: Pure geometry. Line and area share these helpers so their
common edge is drawn by exactly the same commands.

CURVE:
A natural cubic spline passes through every anchor with continuous first
and second derivatives and zero curvature at both ends. Each segment is
emitted as one cubic Bezier; control points come from solving a
tridiagonal system per axis (Thomas algorithm).

    1 point   -> "M x,y"
    2 points  -> "M x0,y0 L x1,y1"
    n points  -> "M x0,y0 C ... C ..." (n - 1 curves)
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import ChartPoint

__all__ = ["control_points", "natural_area_path", "natural_line_path", "natural_segments"]


def _fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def control_points(coords: Sequence[float]) -> tuple[list[float], list[float]]:
    """
    Solve the natural spline system for one axis.

    Args:
        coords: Anchor coordinates along one axis (at least 3).

    Returns:
        (first, second) control coordinates, one pair per segment.

    Example:
        >>> first, second = control_points([0.0, 1.0, 2.0])
        >>> [round(v, 6) for v in first]
        [0.333333, 1.333333]
    """
    n = len(coords) - 1
    a = [0.0] * n
    b = [0.0] * n
    r = [0.0] * n

    a[0], b[0], r[0] = 0.0, 2.0, coords[0] + 2 * coords[1]
    for i in range(1, n - 1):
        a[i], b[i], r[i] = 1.0, 4.0, 4 * coords[i] + 2 * coords[i + 1]
    a[n - 1], b[n - 1], r[n - 1] = 2.0, 7.0, 8 * coords[n - 1] + coords[n]

    for i in range(1, n):
        m = a[i] / b[i - 1]
        b[i] -= m
        r[i] -= m * r[i - 1]

    a[n - 1] = r[n - 1] / b[n - 1]
    for i in range(n - 2, -1, -1):
        a[i] = (r[i] - a[i + 1]) / b[i]

    b[n - 1] = (coords[n] + a[n - 1]) / 2
    for i in range(n - 1):
        b[i] = 2 * coords[i + 1] - a[i + 1]
    return a, b


def natural_segments(points: Sequence[ChartPoint]) -> list[str]:
    """
    Path commands that continue a path through `points` (excluding the
    initial move/line to the first point).
    """
    if len(points) < 2:
        return []
    if len(points) == 2:
        return [f"L{_fmt(points[1].x)},{_fmt(points[1].y)}"]

    xs = [p.x for p in points]
    ys = [p.y for p in points]
    px0, px1 = control_points(xs)
    py0, py1 = control_points(ys)
    return [
        "C{},{},{},{},{},{}".format(
            _fmt(px0[i]),
            _fmt(py0[i]),
            _fmt(px1[i]),
            _fmt(py1[i]),
            _fmt(xs[i + 1]),
            _fmt(ys[i + 1]),
        )
        for i in range(len(points) - 1)
    ]


def natural_line_path(points: Sequence[ChartPoint]) -> str:
    """
    SVG path data for an open natural curve through `points`.

    Returns:
        Path string, or "" for no points.
    """
    if not points:
        return ""
    head = f"M{_fmt(points[0].x)},{_fmt(points[0].y)}"
    return head + "".join(natural_segments(points))


def natural_area_path(points: Sequence[ChartPoint], bottom: float) -> str:
    """
    SVG path data for the area between a natural curve and `bottom`.

    The top edge uses the same commands as natural_line_path(); the area
    then drops to the bottom, runs back along it and closes.

    Args:
        points: Anchor points of the top edge, left to right.
        bottom: Y coordinate of the closing edge (plot bottom).

    Returns:
        Closed path string, or "" for no points.
    """
    if not points:
        return ""
    first, last = points[0], points[-1]
    return (
        natural_line_path(points)
        + f"L{_fmt(last.x)},{_fmt(bottom)}"
        + f"L{_fmt(first.x)},{_fmt(bottom)}Z"
    )
