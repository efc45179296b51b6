"""Domain-specific exceptions for the request gatekeeper.

Each error maps to one rejection outcome. API routes render it as a
``{"success": false, "message": ...}`` envelope with ``status_code``;
page routes redirect to sign-in instead.
"""

from __future__ import annotations


class GatekeeperError(Exception):
    """Base class for requests rejected before reaching a route handler."""

    code: str = "INTERNAL"
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_envelope(self) -> dict[str, object]:
        return {"success": False, "message": self.message}


class UnauthenticatedError(GatekeeperError):
    """No session cookies on a role-restricted route."""

    code = "UNAUTHENTICATED"
    status_code = 401
    default_message = "Unauthorized: missing user ID or role"


class ForbiddenRoleError(GatekeeperError):
    """Session role is not permitted on the route."""

    code = "FORBIDDEN_ROLE"
    status_code = 403
    default_message = "Forbidden: insufficient role permissions"


class ForbiddenOwnershipError(GatekeeperError):
    """Tenant addressed another tenant's resource."""

    code = "FORBIDDEN_OWNERSHIP"
    status_code = 403
    default_message = "Access denied: cannot access another tenant's data"


class CsrfInvalidError(GatekeeperError):
    """Missing or mismatched anti-forgery token."""

    code = "CSRF_INVALID"
    status_code = 403
    default_message = "Invalid CSRF token"


class RateLimitedError(GatekeeperError):
    """Client exceeded the request ceiling for the current window."""

    code = "RATE_LIMITED"
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, message: str | None = None, *, limit: int = 0) -> None:
        self.limit = limit
        super().__init__(message)


class InternalGatekeeperError(GatekeeperError):
    """Unexpected failure while evaluating a request."""
