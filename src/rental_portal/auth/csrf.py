"""Anti-forgery token issuance and validation."""

from __future__ import annotations

import secrets
from collections.abc import Mapping

from starlette.responses import Response

CSRF_COOKIE = "csrf-token"
CSRF_HEADER = "X-CSRF-Token"


def generate_csrf_token() -> str:
    """Generate a fresh, unguessable anti-forgery token.

    Returns:
        URL-safe random string (256 bits of entropy).
    """
    return secrets.token_urlsafe(32)


def set_csrf_cookie(
    response: Response,
    token: str,
    *,
    secure: bool,
    max_age: int = 3600,
) -> None:
    """Bind a token to the caller as an HTTP-only, same-site cookie.

    The cookie is not readable from script, so the token is also returned
    in the response body for the client to echo back in ``X-CSRF-Token``.
    """
    response.set_cookie(
        CSRF_COOKIE,
        token,
        max_age=max_age,
        path="/",
        secure=secure,
        httponly=True,
        samesite="strict",
    )


def extract_supplied_token(headers: Mapping[str, str]) -> str | None:
    """Read the caller-supplied token from request headers.

    Accepts both ``X-CSRF-Token`` and ``x-csrf-token`` so plain mappings
    behave like Starlette's case-insensitive headers.
    """
    return headers.get(CSRF_HEADER) or headers.get(CSRF_HEADER.lower()) or None


def validate_csrf_token(
    cookie_token: str | None,
    supplied_token: str | None,
) -> bool:
    """Return True iff both tokens are present and identical."""
    if not cookie_token or not supplied_token:
        return False
    return secrets.compare_digest(
        cookie_token.encode("utf-8"), supplied_token.encode("utf-8")
    )
