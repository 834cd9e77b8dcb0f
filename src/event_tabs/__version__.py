"""Version information for event-tabs."""

__version__ = "0.3.0"
__version_date__ = "2026-10-19"

__title__ = "event_tabs"
__description__ = "Event category tabs with running totals and animated sparklines"
__url__ = "https://github.com/event-tabs/event-tabs"

__license__ = "MIT"

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__license__",
]
