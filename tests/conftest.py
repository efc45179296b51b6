"""Shared pytest fixtures."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from rental_portal.api.app import create_app
from rental_portal.auth.rate_limiter import FixedWindowRateLimiter
from rental_portal.config import Settings


@pytest.fixture()
def settings() -> Settings:
    return Settings(environment="testing", _env_file=None)  # type: ignore[arg-type]


@pytest.fixture()
def rate_limiter() -> FixedWindowRateLimiter:
    """Fresh counter store per test."""
    return FixedWindowRateLimiter(limit=100, window_seconds=15 * 60)


def _add_downstream_routes(app: FastAPI) -> None:
    """Stand-in handlers behind the gatekeeper."""

    @app.get("/api/admin/properties")
    async def _list_admin_properties() -> dict[str, object]:
        return {"success": True, "properties": []}

    @app.get("/api/tenants/{tenant_id}")
    async def _get_tenant(tenant_id: str) -> dict[str, object]:
        return {"success": True, "tenantId": tenant_id}

    @app.post("/api/properties", status_code=201)
    async def _create_property() -> dict[str, object]:
        return {"success": True}

    @app.post("/api/tenant/payments")
    async def _tenant_payment() -> dict[str, object]:
        return {"success": True}

    @app.post("/api/users")
    async def _create_user() -> dict[str, object]:
        return {"success": True}

    @app.post("/api/payments")
    async def _create_payment() -> dict[str, object]:
        raise RuntimeError("downstream failure")

    @app.get("/api/public-properties")
    async def _public_properties() -> dict[str, object]:
        return {"success": True, "properties": []}

    @app.post("/api/signin")
    async def _signin() -> dict[str, object]:
        return {"success": True}

    @app.get("/property-owner-dashboard")
    async def _owner_dashboard() -> JSONResponse:
        return JSONResponse({"page": "owner-dashboard"})

    @app.get("/property-listings")
    async def _listings() -> JSONResponse:
        return JSONResponse({"page": "listings"})


@pytest.fixture()
def app(settings: Settings, rate_limiter: FixedWindowRateLimiter) -> FastAPI:
    app = create_app(settings, rate_limiter=rate_limiter)
    _add_downstream_routes(app)
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """AsyncClient against the gated app.

    App exceptions are rendered by the catch-all handler instead of
    being re-raised into the test.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app, raise_app_exceptions=False),
        base_url="http://test",
    ) as ac:
        yield ac
