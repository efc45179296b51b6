"""FastAPI dependency injection."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from rental_portal.auth.context import SessionIdentity
from rental_portal.auth.gatekeeper import Gatekeeper
from rental_portal.errors import UnauthenticatedError

__all__ = ["get_gatekeeper", "require_session"]


async def require_session(request: Request) -> SessionIdentity:
    """Session identity of the caller.

    Raises:
        UnauthenticatedError: no ``userId``/``role`` cookies. Routes
            outside the access table use this to demand a session.
    """
    identity = SessionIdentity.from_cookies(request.cookies)
    if not identity.is_authenticated:
        raise UnauthenticatedError()
    return identity


async def get_gatekeeper(request: Request) -> Gatekeeper:
    """Retrieve the Gatekeeper from app state.

    Initialized in create_app.
    """
    return cast(Gatekeeper, request.app.state.gatekeeper)
