"""Every Ride Challenge tracker - Main Application.

Serves the challenge engine to the browser front end. The engine is created
once per process in the lifespan handler, and its startup check settles the
active slot before the first request is accepted.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from everyride.challenges.api import router as challenge_router
from everyride.challenges.service import ChallengeLifecycleEngine
from everyride.config import EveryRideSettings, get_settings
from everyride.shared.utils.logging import (
    bind_request_context,
    clear_request_context,
    configure_logging,
    get_logger,
)
from everyride.storage import build_store

logger = get_logger(__name__)


# ===========================================
# APPLICATION METADATA
# ===========================================

APP_TITLE = "Every Ride Challenge Tracker"
APP_DESCRIPTION = """
Log rides towards a one-day "ride every attraction" challenge, keep a
history of past runs and resume a run that ended recently.
"""
APP_VERSION = "1.0.0"
API_PREFIX = "/api/v1"

TAGS_METADATA = [
    {
        "name": "health",
        "description": "Health check and status endpoints",
    },
    {
        "name": "challenge",
        "description": "Active run, excluded rides, history and resume",
    },
]


# ===========================================
# APPLICATION FACTORY
# ===========================================


def create_app(
    settings: EveryRideSettings | None = None,
    engine: ChallengeLifecycleEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(
            level=settings.log_level,
            json_format=settings.log_json,
            service_name="everyride",
        )
        logger.info("app_starting", title=APP_TITLE, version=APP_VERSION)

        app.state.engine = engine or ChallengeLifecycleEngine(build_store(settings), settings)
        outcome = app.state.engine.startup()
        logger.info("app_started", startup_outcome=outcome.value)

        yield

        app.state.engine.close()
        logger.info("app_stopped")

    app = FastAPI(
        title=APP_TITLE,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id, path=request.url.path)
        try:
            response = await call_next(request)
        finally:
            clear_request_context("path")
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(challenge_router, prefix=API_PREFIX)
    register_root_endpoints(app)

    return app


def register_root_endpoints(app: FastAPI) -> None:
    """Register root-level endpoints."""

    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, Any]:
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "timestamp": time.time(),
        }
