"""Request gatekeeper: role gating, ownership, CSRF and rate limiting.

``Gatekeeper.authorize`` decides the fate of a request from its method,
path, cookies and headers alone. Allowed requests return a
``GateDecision``; rejected ones raise a ``GatekeeperError`` subclass.
Translating either into an HTTP response is the middleware's job.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

import structlog

from rental_portal.auth.context import Role, SessionIdentity
from rental_portal.auth.csrf import (
    CSRF_COOKIE,
    extract_supplied_token,
    validate_csrf_token,
)
from rental_portal.auth.rate_limiter import (
    UNKNOWN_CLIENT,
    FixedWindowRateLimiter,
    RateLimitResult,
    client_key,
)
from rental_portal.auth.route_access import (
    CsrfPolicy,
    RouteAccessEntry,
    RouteAccessTable,
    normalize_path,
)
from rental_portal.config import Settings
from rental_portal.errors import (
    CsrfInvalidError,
    ForbiddenOwnershipError,
    ForbiddenRoleError,
    RateLimitedError,
    UnauthenticatedError,
)

logger = structlog.get_logger()

READ_ONLY_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS"})

STATIC_PREFIXES: tuple[str, ...] = ("/static/", "/_next/")
STATIC_PATHS: frozenset[str] = frozenset({"/favicon.ico"})

# Old property detail pages moved under /property-listings.
_LEGACY_PROPERTY_URL = re.compile(r"^/properties/([^/]+)$")


class GateAction(StrEnum):
    PASS = "pass"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    """Outcome of a request that was not rejected."""

    action: GateAction
    entry: RouteAccessEntry | None = None
    redirect_to: str | None = None
    rate_limit: RateLimitResult | None = None

    @classmethod
    def passed(
        cls,
        entry: RouteAccessEntry | None = None,
        rate_limit: RateLimitResult | None = None,
    ) -> GateDecision:
        return cls(action=GateAction.PASS, entry=entry, rate_limit=rate_limit)

    @classmethod
    def redirect(
        cls, location: str, entry: RouteAccessEntry | None = None
    ) -> GateDecision:
        return cls(action=GateAction.REDIRECT, entry=entry, redirect_to=location)


class Gatekeeper:
    """Composes the route table, session check, CSRF and rate counter.

    Thread-safe: the table is immutable and the rate limiter locks its
    own state.
    """

    def __init__(
        self,
        table: RouteAccessTable,
        rate_limiter: FixedWindowRateLimiter,
        settings: Settings,
    ) -> None:
        self.table = table
        self.rate_limiter = rate_limiter
        self.settings = settings

    def is_bypassed(self, path: str) -> bool:
        """Static and internal asset paths skip gatekeeping entirely."""
        return path in STATIC_PATHS or path.startswith(STATIC_PREFIXES)

    def authorize(
        self,
        method: str,
        path: str,
        cookies: Mapping[str, str],
        headers: Mapping[str, str],
    ) -> GateDecision:
        """Decide whether a request may reach its handler.

        Raises:
            UnauthenticatedError: API route, no session.
            ForbiddenRoleError: API route, role not allowed.
            ForbiddenOwnershipError: tenant addressing another tenant.
            CsrfInvalidError: mutating API call with a bad token.
            RateLimitedError: client over the window ceiling.
        """
        path = normalize_path(path)
        method = method.upper()

        if self.is_bypassed(path):
            return GateDecision.passed()

        legacy = _LEGACY_PROPERTY_URL.match(path)
        if legacy:
            return GateDecision.redirect(f"/property-listings/{legacy.group(1)}")

        if path == self.settings.csrf_token_path:
            return GateDecision.passed()

        entry = self.table.match(path)
        if entry is None:
            return GateDecision.passed()

        if not entry.is_public:
            identity = SessionIdentity.from_cookies(cookies)
            try:
                self._check_session(entry, path, identity)
            except (UnauthenticatedError, ForbiddenRoleError):
                if entry.is_api:
                    raise
                return GateDecision.redirect(self.settings.sign_in_path, entry)

        if entry.is_api and method not in READ_ONLY_METHODS:
            result = self._check_mutation(entry, path, method, cookies, headers)
            return GateDecision.passed(entry, rate_limit=result)

        logger.debug("gate_allowed", path=path, method=method)
        return GateDecision.passed(entry)

    def _check_session(
        self,
        entry: RouteAccessEntry,
        path: str,
        identity: SessionIdentity,
    ) -> None:
        if not identity.is_authenticated:
            logger.info("gate_unauthenticated", path=path)
            raise UnauthenticatedError()

        if identity.role not in entry.allowed_roles:
            logger.warning(
                "gate_forbidden_role",
                path=path,
                role=str(identity.role),
                allowed=sorted(entry.allowed_roles),
                impersonating=identity.is_impersonating,
            )
            raise ForbiddenRoleError()

        if entry.tenant_scoped and identity.role == Role.TENANT:
            tenant_id = _segment_after(entry.prefix, path)
            if tenant_id is not None and tenant_id != identity.user_id:
                logger.warning(
                    "gate_forbidden_ownership",
                    path=path,
                    user_id=identity.user_id,
                    tenant_id=tenant_id,
                    impersonating=identity.is_impersonating,
                )
                raise ForbiddenOwnershipError()

    def _check_mutation(
        self,
        entry: RouteAccessEntry,
        path: str,
        method: str,
        cookies: Mapping[str, str],
        headers: Mapping[str, str],
    ) -> RateLimitResult:
        # Counted before the token check, so bad-token requests use up the window.
        key = client_key(headers)
        if key == UNKNOWN_CLIENT and self.settings.reject_unidentified_clients:
            logger.warning("gate_unidentified_client", path=path, method=method)
            raise RateLimitedError(
                "Client address could not be determined",
                limit=self.rate_limiter.limit,
            )

        result = self.rate_limiter.check(key)
        if not result.allowed:
            logger.warning("gate_rate_limited", path=path, client=key)
            raise RateLimitedError(limit=result.limit)

        if entry.csrf_policy == CsrfPolicy.ENFORCED:
            supplied = extract_supplied_token(headers)
            if not validate_csrf_token(cookies.get(CSRF_COOKIE), supplied):
                logger.warning(
                    "gate_csrf_invalid",
                    path=path,
                    method=method,
                    token_supplied=supplied is not None,
                )
                raise CsrfInvalidError()
        return result


def _segment_after(prefix: str, path: str) -> str | None:
    """Return the first path segment after ``prefix``, if any."""
    rest = path[len(prefix) :].strip("/")
    if not rest:
        return None
    return rest.split("/", 1)[0]
