"""FastAPI application factory"""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from giveaway import __version__
from giveaway.core.config import Settings, get_settings
from giveaway.core.dependencies import AppContainer, build_container, enforce_api_rate_limit
from giveaway.core.logging import setup_logging
from giveaway.core.middleware import SecurityHeadersMiddleware
from giveaway.routers import (
    auth_router,
    events_router,
    giveaway_router,
    rewards_router,
    webhook_router,
)
from giveaway.services import TwitchAPIClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    container: AppContainer = app.state.container
    settings = container.settings

    # Startup
    logger.info("Starting giveaway relay")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Twitch Client ID: {settings.twitch_client_id[:8]}...")
    logger.info(f"Heartbeat interval: {settings.heartbeat_interval}s")

    yield

    # Shutdown
    logger.info("Shutting down giveaway relay")
    try:
        await container.close()
    except Exception as e:
        logger.exception(f"Error during shutdown: {e}")


def create_app(
    settings: Settings | None = None,
    twitch_api: TwitchAPIClient | None = None,
) -> FastAPI:
    """Create and configure FastAPI application"""
    settings = settings or get_settings()

    # Setup logging first
    setup_logging(settings)

    app = FastAPI(
        title="Giveaway Relay",
        description="Twitch channel points giveaways with live dashboard updates",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.container = build_container(settings, twitch_api)
    app.state.started_at = time.time()

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware, hsts=settings.is_production)

    # Register routers; only the /api ones are rate limited
    app.include_router(webhook_router.router)
    app.include_router(events_router.router)
    api_routers = [auth_router.router, rewards_router.router, giveaway_router.router]
    if settings.is_development:
        api_routers.append(giveaway_router.dev_router)
    for api_router in api_routers:
        app.include_router(api_router, dependencies=[Depends(enforce_api_rate_limit)])

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        # Unmatched routes get a JSON body naming the path
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(
                status_code=404, content={"error": "Not found", "path": request.url.path}
            )
        return await http_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Server error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.is_development else "Something went wrong",
            },
        )

    # Liveness check, always 200
    @app.get("/health")
    async def health():
        """Liveness check with in-memory counters"""
        container: AppContainer = app.state.container
        return {
            "status": "ok",
            "activeUsers": len(container.sessions),
            "activeGiveaways": container.campaigns.count_active(),
            "uptime": round(time.time() - app.state.started_at, 3),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # Ping endpoint
    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        """Ping endpoint"""
        return "pong"

    logger.info("FastAPI application configured")

    return app
