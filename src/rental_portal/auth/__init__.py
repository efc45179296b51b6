"""Request authorization: session identity, CSRF, rate limiting, route access."""

from rental_portal.auth.context import Role, SessionIdentity
from rental_portal.auth.csrf import generate_csrf_token, validate_csrf_token
from rental_portal.auth.gatekeeper import GateAction, GateDecision, Gatekeeper
from rental_portal.auth.rate_limiter import FixedWindowRateLimiter, client_key
from rental_portal.auth.route_access import (
    CsrfPolicy,
    RouteAccessEntry,
    RouteAccessTable,
    default_route_table,
    load_route_table,
)

__all__ = [
    "CsrfPolicy",
    "FixedWindowRateLimiter",
    "GateAction",
    "GateDecision",
    "Gatekeeper",
    "Role",
    "RouteAccessEntry",
    "RouteAccessTable",
    "SessionIdentity",
    "client_key",
    "default_route_table",
    "generate_csrf_token",
    "load_route_table",
    "validate_csrf_token",
]
