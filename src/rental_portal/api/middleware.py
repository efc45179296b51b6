"""HTTP middleware: request logging and the gatekeeper boundary."""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.types import ASGIApp

from rental_portal.auth.gatekeeper import GateAction, Gatekeeper
from rental_portal.auth.rate_limiter import client_key
from rental_portal.errors import GatekeeperError, InternalGatekeeperError

logger = structlog.get_logger()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log HTTP requests with method, path, status code, and latency."""

    SKIP_PATHS: frozenset[str] = frozenset(
        {"/health", "/docs", "/openapi.json", "/redoc"}
    )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and log timing information."""
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = int((time.perf_counter() - start) * 1000)

        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=latency_ms,
            client=client_key(request.headers),
        )
        return response


def error_response(error: GatekeeperError) -> JSONResponse:
    """Render a rejection as the ``{success: false, message}`` envelope."""
    return JSONResponse(status_code=error.status_code, content=error.to_envelope())


class GatekeeperMiddleware(BaseHTTPMiddleware):
    """Run the gatekeeper in front of every route.

    Rejected API requests get a JSON envelope, rejected page requests a
    redirect to sign-in. Allowed requests reach the handler; on
    rate-limited routes the response carries ``X-RateLimit-*`` headers.
    """

    SKIP_PATHS: frozenset[str] = frozenset(
        {"/health", "/docs", "/openapi.json", "/redoc"}
    )

    def __init__(self, app: ASGIApp, gatekeeper: Gatekeeper) -> None:
        super().__init__(app)
        self.gatekeeper = gatekeeper

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.SKIP_PATHS:
            return await call_next(request)

        try:
            decision = self.gatekeeper.authorize(
                request.method, path, request.cookies, request.headers
            )
        except GatekeeperError as e:
            return error_response(e)
        except Exception:
            logger.exception("gate_error", path=path, method=request.method)
            if path.startswith("/api/"):
                return error_response(InternalGatekeeperError())
            return RedirectResponse(
                self.gatekeeper.settings.sign_in_path, status_code=303
            )

        if decision.action == GateAction.REDIRECT:
            location = decision.redirect_to or self.gatekeeper.settings.sign_in_path
            return RedirectResponse(location, status_code=303)

        response = await call_next(request)
        if decision.rate_limit is not None:
            response.headers["X-RateLimit-Remaining"] = str(decision.rate_limit.remaining)
            response.headers["X-RateLimit-Limit"] = str(decision.rate_limit.limit)
        return response
