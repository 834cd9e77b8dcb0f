"""
CLI entry point for Event Tabs.

PURPOSE: Command-line interface for the dashboard and offline rendering.
AI CONTEXT: Main entry points for package execution.

USAGE:
    event-tabs dashboard [--host HOST] [--port PORT]  # Launch web dashboard
    event-tabs render timeseries.json --category leads # Print sparkline SVG
    event-tabs request --query "interval=30d" --composite  # Print fetch URL
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from functools import lru_cache
from pathlib import Path

from .config import Config

# Constants
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
EXIT_OK = 0
EXIT_NO_CHART = 1
EXIT_BAD_INPUT = 2


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get module logger (cached for thread safety)."""
    logging.basicConfig(level=logging.INFO)
    return logging.getLogger(__name__)


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI output.

    Args:
        message: The message to log.
        emoji: Optional emoji prefix for visual CLI feedback.
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def run_dashboard(host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    """
    Launch the web dashboard.

    Args:
        host: Network interface to bind to.
        port: TCP port for the HTTP server.

    Raises:
        OSError: If port is already in use.
        ImportError: If FastAPI/uvicorn are not installed.
    """
    from .web import run_dashboard as start_web

    _log(f"Starting dashboard at http://{host}:{port}", emoji="🚀")
    _log("Press Ctrl+C to stop")
    start_web(host=host, port=port)


def run_render(
    path: str,
    category: str,
    width: int = Config.SPARKLINE_WIDTH,
    height: int = Config.SPARKLINE_HEIGHT,
    animate: bool = True,
) -> int:
    """
    Render a sparkline SVG from a saved timeseries response.

    Business context: Lets analysts check how a dataset will draw (or
    whether it will be suppressed) without running the dashboard.

    Args:
        path: JSON file holding the list of timeseries records.
        category: Category field to draw.
        width: Container width in pixels.
        height: Container height in pixels.
        animate: Include the enter transition in the SVG.

    Returns:
        EXIT_OK with SVG on stdout, EXIT_NO_CHART when the chart is
        suppressed, EXIT_BAD_INPUT for unreadable input.
    """
    from .normalizer import SeriesNormalizer
    from .renderer import ChartRenderer

    try:
        records = json.loads(Path(path).read_text(encoding="utf-8"))
        series = SeriesNormalizer().normalize(records, category)
    except (OSError, ValueError, TypeError, AttributeError) as e:
        _log(f"Cannot read timeseries from {path}: {e}", emoji="❌")
        return EXIT_BAD_INPUT

    renderer = ChartRenderer()
    chart = renderer.render(series, width, height)
    if chart is None:
        _log(f"No chart for {category}: empty, all-zero or too small", emoji="⚠️")
        return EXIT_NO_CHART

    # Note: Using print() intentionally for stdout piping support
    print(renderer.to_svg(chart, gradient_id=f"spark-{category}", animate=animate))
    return EXIT_OK


def run_request(query: str = "", composite: bool | None = None) -> int:
    """
    Print the timeseries URL the dashboard would fetch.

    Args:
        query: Current query string (filters, tab, sort).
        composite: Force the composite entitlement on/off. None reads the
            demo/beta-tester settings from the environment.

    Returns:
        EXIT_OK.
    """
    from .fetcher import build_url
    from .models import Entitlement
    from .selection import QueryStringState, TabSelectionController

    entitlement = None if composite is None else Entitlement(beta_tester=composite)
    controller = TabSelectionController(QueryStringState(query), entitlement)
    controller.enforce_sort_invariant()
    url = build_url(
        Config.get_api_base(),
        controller.query.to_query_string(),
        controller.build_request(),
    )
    print(url)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """
    Main CLI entry point for Event Tabs.

    Subcommands:
    - dashboard [--host HOST] [--port PORT]: Launch web dashboard
    - render FILE --category CAT [--width W] [--height H] [--no-animate]
    - request [--query Q] [--composite | --clicks-only]

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Process exit code.

    Raises:
        SystemExit: On --help or argument parsing errors.
    """
    from .__version__ import __version__

    parser = argparse.ArgumentParser(
        prog="event-tabs",
        description="Event Tabs - event totals with inline sparklines",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Dashboard command
    dashboard_parser = subparsers.add_parser("dashboard", help="Launch web dashboard")
    dashboard_parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help=f"Bind address (default: {DEFAULT_HOST})",
    )
    dashboard_parser.add_argument(
        "--port",
        type=int,
        default=DEFAULT_PORT,
        help=f"Port number (default: {DEFAULT_PORT})",
    )

    # Render command
    render_parser = subparsers.add_parser("render", help="Print sparkline SVG for a JSON file")
    render_parser.add_argument("file", help="JSON file with timeseries records")
    render_parser.add_argument(
        "--category",
        default=Config.DEFAULT_TAB,
        choices=Config.CATEGORIES,
        help=f"Category to draw (default: {Config.DEFAULT_TAB})",
    )
    render_parser.add_argument("--width", type=int, default=Config.SPARKLINE_WIDTH)
    render_parser.add_argument("--height", type=int, default=Config.SPARKLINE_HEIGHT)
    render_parser.add_argument(
        "--no-animate",
        action="store_true",
        help="Omit the enter transition",
    )

    # Request command
    request_parser = subparsers.add_parser("request", help="Print the timeseries fetch URL")
    request_parser.add_argument("--query", default="", help="Current query string")
    entitlement_group = request_parser.add_mutually_exclusive_group()
    entitlement_group.add_argument(
        "--composite",
        dest="composite",
        action="store_true",
        default=None,
        help="Request composite data",
    )
    entitlement_group.add_argument(
        "--clicks-only",
        dest="composite",
        action="store_false",
        help="Request clicks only",
    )

    args = parser.parse_args(argv)

    if args.command == "dashboard":
        run_dashboard(host=args.host, port=args.port)
        return EXIT_OK
    if args.command == "render":
        return run_render(
            args.file,
            args.category,
            width=args.width,
            height=args.height,
            animate=not args.no_animate,
        )
    if args.command == "request":
        return run_request(query=args.query, composite=args.composite)

    parser.print_help()
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
