"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clipcache import __version__
from clipcache.adapters.scheduler import BackgroundSweeper
from clipcache.api.errors import register_error_handlers
from clipcache.api.routes import router
from clipcache.config import Settings, get_settings
from clipcache.core.services import RetrievalOrchestrator


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    orchestrator: RetrievalOrchestrator = app.state.orchestrator
    settings: Settings = app.state.settings

    # Leftovers from an earlier run are reclaimed before serving
    reclaimed = orchestrator.sweep()
    if reclaimed:
        logger.info("Startup sweep reclaimed %d expired asset(s)", reclaimed)

    sweeper = BackgroundSweeper(
        orchestrator.store, interval=settings.sweep_interval_seconds
    )
    app.state.sweeper = sweeper
    sweeper.start()
    try:
        yield
    finally:
        sweeper.stop()
        orchestrator.close()


def create_app(
    settings: Settings | None = None,
    orchestrator: RetrievalOrchestrator | None = None,
) -> FastAPI:
    """Build the API.

    Args:
        settings: Application settings. Defaults to get_settings().
        orchestrator: Pre-wired orchestrator. Defaults to one built from
            settings with the HTTP and filesystem adapters.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="clipcache",
        description="Short-lived local mirror for remote media links",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.orchestrator = orchestrator or RetrievalOrchestrator.from_settings(
        settings
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(router)

    return app
