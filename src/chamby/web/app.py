"""FastAPI application for the Chamby booking wizards.

Exposes the wizard engine over JSON so any client can drive a booking
session step by step.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from chamby import __version__
from chamby.auth.middleware import AuthMiddleware
from chamby.auth.provider import AuthProvider, create_auth_provider
from chamby.booking.schema import load_verticals
from chamby.core.config import Settings
from chamby.stores import create_blob_store, create_job_store
from chamby.stores.blob import BlobStore
from chamby.stores.jobs import JobStore
from chamby.web.booking_router import router as booking_router
from chamby.web.sessions import WizardSessionStore

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str = __version__
    verticals: int


def create_app(
    settings: Settings | None = None,
    blob_store: BlobStore | None = None,
    job_store: JobStore | None = None,
    auth_provider: AuthProvider | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Uses the factory pattern so tests can create isolated app instances
    with in-memory stores.

    Args:
        settings: Application settings. Defaults to Settings().
        blob_store: Optional pre-built photo store.
        job_store: Optional pre-built job store.
        auth_provider: Optional pre-built auth provider.

    Returns:
        A configured FastAPI instance.
    """
    if settings is None:
        settings = Settings()

    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(
        title="Chamby Booking",
        description="Multi-step booking wizards for home services",
        version=__version__,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    verticals = load_verticals(settings.booking.verticals_dir)
    if blob_store is None:
        blob_store = create_blob_store(settings.blob)
    if job_store is None:
        job_store = create_job_store(settings.jobs)
    if auth_provider is None:
        auth_provider = create_auth_provider(settings.auth)

    app.state.settings = settings
    app.state.auth_provider = auth_provider
    app.state.blob_store = blob_store
    app.state.job_store = job_store
    app.state.wizard_sessions = WizardSessionStore(
        verticals=verticals,
        blob_store=blob_store,
        job_store=job_store,
        settings=settings,
    )

    app.add_middleware(AuthMiddleware)
    app.include_router(booking_router)

    @app.get("/api/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="chamby-booking", verticals=len(verticals))

    logger.info("Chamby booking app ready with %d verticals", len(verticals))
    return app
