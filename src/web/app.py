"""
FastAPI application factory for the weed sprayer.

Routes:
- / -> status page
- /api/* -> REST API (status, start/stop, settings, actuator probe, preview)
- /static/* -> static assets
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from observation.base import CameraUnavailableError
from runtime.context import RuntimeContext
from .routes import api, pages


def create_app(runtime: RuntimeContext, autostart: bool = False) -> FastAPI:
    """Create the FastAPI app bound to one runtime session."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if autostart:
            try:
                await runtime.controller.start()
            except CameraUnavailableError as e:
                logging.error(f"Autostart failed: {e}")
        try:
            yield
        finally:
            await runtime.shutdown()

    app = FastAPI(
        title="Weed Sprayer",
        version="0.1.0",
        description="Camera-driven weed detection with remote pump control",
        lifespan=lifespan,
    )
    app.state.runtime = runtime

    app.include_router(api.router, prefix="/api")
    app.include_router(pages.router)

    static_path = Path(__file__).resolve().parent / "static"
    if static_path.exists():
        app.mount("/static", StaticFiles(directory=str(static_path)), name="static")

    return app
