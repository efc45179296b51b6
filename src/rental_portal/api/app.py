"""FastAPI application with lifespan management."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rental_portal.api.middleware import (
    GatekeeperMiddleware,
    RequestLoggingMiddleware,
    error_response,
)
from rental_portal.api.routes.csrf import router as csrf_router
from rental_portal.api.schemas import HealthResponse
from rental_portal.auth.gatekeeper import Gatekeeper
from rental_portal.auth.rate_limiter import FixedWindowRateLimiter
from rental_portal.auth.route_access import (
    RouteAccessTable,
    default_route_table,
    load_route_table,
)
from rental_portal.config import Settings, get_settings
from rental_portal.errors import GatekeeperError
from rental_portal.logging_config import configure_logging

logger = structlog.get_logger()


async def _cleanup_loop(limiter: FixedWindowRateLimiter, interval: float) -> None:
    """Periodic cleanup of expired rate limit windows."""
    while True:
        await asyncio.sleep(interval)
        try:
            cleaned = await asyncio.to_thread(limiter.cleanup)
            if cleaned:
                logger.debug("rate_limiter_cleanup", keys_removed=cleaned)
        except Exception:
            logger.exception("rate_limiter_cleanup_error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown.

    Startup:
        - Configure logging.
        - Start rate limiter cleanup task.
    Shutdown:
        - Cancel cleanup task.
    """
    settings: Settings = app.state.settings
    configure_logging(
        environment=str(settings.environment),
        log_level=settings.log_level,
    )

    cleanup_task = asyncio.create_task(
        _cleanup_loop(
            app.state.rate_limiter,
            settings.rate_limit_cleanup_interval_seconds,
        )
    )
    logger.info(
        "app_started",
        environment=str(settings.environment),
        routes=len(app.state.gatekeeper.table),
    )
    yield

    cleanup_task.cancel()
    logger.info("app_stopped")


def build_route_table(settings: Settings) -> RouteAccessTable:
    """Route table from ``route_table_path``, or the built-in defaults."""
    if settings.route_table_path is not None:
        return load_route_table(settings.route_table_path)
    return default_route_table()


def create_app(
    settings: Settings | None = None,
    *,
    rate_limiter: FixedWindowRateLimiter | None = None,
    route_table: RouteAccessTable | None = None,
) -> FastAPI:
    """Assemble the application.

    Args:
        settings: Defaults to the cached environment settings.
        rate_limiter: Shared counter store; a fresh in-memory one is
            created when omitted.
        route_table: Overrides the table resolved from settings.
    """
    settings = settings or get_settings()
    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter(
            limit=settings.rate_limit_max,
            window_seconds=settings.rate_limit_window_seconds,
        )
    if route_table is None:
        route_table = build_route_table(settings)
    gatekeeper = Gatekeeper(route_table, rate_limiter, settings)

    app = FastAPI(
        title="Rental Portal",
        description="Property rental portal request gatekeeper",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.is_dev,
    )
    app.state.settings = settings
    app.state.rate_limiter = rate_limiter
    app.state.gatekeeper = gatekeeper

    # Last added runs first: CORS, then logging, then the gatekeeper.
    app.add_middleware(GatekeeperMiddleware, gatekeeper=gatekeeper)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
    )

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.exception_handler(GatekeeperError)
    async def gatekeeper_error_handler(
        request: Request,
        exc: GatekeeperError,
    ) -> JSONResponse:
        """Render gatekeeper errors raised by route dependencies."""
        return error_response(exc)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all handler for unhandled exceptions."""
        logger.error("unhandled_exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )

    app.include_router(csrf_router, prefix=settings.csrf_token_path)
    return app


app = create_app()
