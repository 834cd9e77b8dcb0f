"""
FastAPI application for the Event Tabs dashboard.

PURPOSE: Main application factory and server runner.
AI CONTEXT: Creates app with all routes registered.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from ..__version__ import __version__
from ..config import Config
from .routes import router

__all__ = ["create_app", "run_dashboard"]

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:  # noqa: ARG001
    """
    Log dashboard startup and shutdown.

    Startup logging records the analytics endpoint and the retry mode so a
    misconfigured deployment is visible in the first lines of output.

    Args:
        app: The FastAPI application instance (provided by FastAPI).

    Yields:
        None. Control returns to FastAPI to handle requests.
    """
    logger.info("Event Tabs dashboard starting (v%s)", __version__)
    logger.info(
        "Analytics endpoint: %s (retries %s)",
        Config.get_api_base(),
        "disabled" if Config.requires_upgrade() else "enabled",
    )
    yield
    logger.info("Event Tabs dashboard shutting down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI dashboard application.

    Factory function using the application factory pattern for
    testability: tests build a fresh app and override dependencies such
    as get_fetcher.

    Returns:
        Configured FastAPI application with all dashboard routes
        (/, /partials/*, /select/*, /charts/*, /api/*).

    Example:
        >>> from fastapi.testclient import TestClient
        >>> client = TestClient(create_app())
        >>> client.get('/api/request').status_code
        200
    """
    app = FastAPI(
        title="Event Tabs",
        description="Event category totals with inline sparklines",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(router)
    return app


def run_dashboard(
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """
    Launch the Event Tabs web dashboard server.

    Args:
        host: Network interface to bind. '127.0.0.1' for local-only access.
        port: TCP port number for the HTTP server.
        reload: Enable auto-reload on code changes for development.
        log_level: Uvicorn logging verbosity.

    Raises:
        OSError: If the port is already in use or host is invalid.
    """
    uvicorn.run(
        "event_tabs.web.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# For direct execution
if __name__ == "__main__":
    run_dashboard()
