"""
Web dashboard module for Event Tabs.

PURPOSE: FastAPI-based web UI with htmx for tab switching.
AI CONTEXT: Routes stay thin; presenters and the selection controller do the work.

FEATURES:
- Tab grid with totals and animated SVG sparklines
- htmx tab switching that rewrites the shareable query string
- Server-side larger chart for the active category (matplotlib)
- JSON endpoints for the view model and the derived fetch request

USAGE:
    # Via CLI
    event-tabs dashboard

    # Programmatically
    from event_tabs.web import create_app
    app = create_app()
"""

from .app import create_app, run_dashboard

__all__ = ["create_app", "run_dashboard"]
