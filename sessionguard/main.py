"""FastAPI application factory.

Run with ``uvicorn sessionguard.main:create_app --factory``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from sessionguard.config import configure_structlog, get_settings
from sessionguard.core.jwt import get_jwt_service
from sessionguard.error_handlers import register_exception_handlers
from sessionguard.middleware.correlation_id import CorrelationIdMiddleware
from sessionguard.routers import auth
from sessionguard.services.reaper import get_session_reaper

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Run the session reaper for the lifetime of the application."""
    settings = get_settings()
    reaper = get_session_reaper()
    if settings.sessions.reaper_enabled:
        reaper.start()
        logger.info(
            "reaper_started", interval_seconds=settings.sessions.reaper_interval_seconds
        )
    else:
        logger.warning("reaper_disabled")
    try:
        yield
    finally:
        await reaper.stop()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Raises SigningKeyUnavailableError when JWT keys are missing or unusable.
    """
    settings = get_settings()
    configure_structlog(settings)
    get_jwt_service()

    app = FastAPI(title=settings.app.service, lifespan=lifespan)
    app.add_middleware(CorrelationIdMiddleware)
    register_exception_handlers(app, settings)
    app.include_router(auth.router)
    return app
