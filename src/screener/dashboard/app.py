"""FastAPI status API application factory."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI

from screener.dashboard.routes import api


def create_status_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the read-only status API.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to inject startup/shutdown logic.

    Returns:
        FastAPI application with JSON routes mounted under /api.
        Route handlers read the ScreenerService from ``app.state.service``.
    """
    app = FastAPI(
        title="Pair Screener Status",
        lifespan=lifespan,
    )
    app.state.service = None

    app.include_router(api.router, prefix="/api")

    return app
