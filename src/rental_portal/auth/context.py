"""Session identity read from request cookies."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum

USER_ID_COOKIE = "userId"
ROLE_COOKIE = "role"
IMPERSONATING_COOKIE = "isImpersonating"


class Role(StrEnum):
    """Portal roles, as written into the ``role`` cookie at sign-in."""

    ADMIN = "admin"
    PROPERTY_OWNER = "propertyOwner"
    TENANT = "tenant"


def parse_role(value: str | None) -> Role | None:
    """Return the Role for a cookie value, or None if absent or unknown."""
    if not value:
        return None
    try:
        return Role(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class SessionIdentity:
    """Caller identity for the current request.

    Set by the sign-in flow and only ever read here. While a property
    owner impersonates a tenant, ``userId`` and ``role`` already hold the
    tenant's values; ``is_impersonating`` is informational and grants
    nothing.
    """

    user_id: str | None
    role: Role | None
    is_impersonating: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id) and self.role is not None

    @classmethod
    def from_cookies(cls, cookies: Mapping[str, str]) -> SessionIdentity:
        return cls(
            user_id=cookies.get(USER_ID_COOKIE) or None,
            role=parse_role(cookies.get(ROLE_COOKIE)),
            is_impersonating=cookies.get(IMPERSONATING_COOKIE) == "true",
        )
