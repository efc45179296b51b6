"""Route access table: which roles may reach which URL prefixes.

Entries are matched longest-prefix-first, so a specific entry such as
``/api/tenants/maintenance`` overrides the broader ``/api/tenants``.
The table is built once at startup and never mutated.

The default table can be replaced by a YAML file (``ROUTE_TABLE_PATH``)::

    routes:
      - prefix: /api/payments
        roles: [admin, propertyOwner, tenant]
        api: true
      - prefix: /api/tenant/payments
        roles: [tenant, propertyOwner]
        api: true
        csrf: self_handled
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, model_validator

from rental_portal.auth.context import Role


class CsrfPolicy(StrEnum):
    """How mutating API requests on a route are checked for CSRF."""

    ENFORCED = "enforced"
    # Admin-only and impersonation-revert routes, called without a token.
    EXEMPT = "exempt"
    # The route handler validates the token itself (header or body).
    SELF_HANDLED = "self_handled"


@dataclass(frozen=True)
class RouteAccessEntry:
    prefix: str
    allowed_roles: frozenset[Role]
    is_api: bool
    csrf_policy: CsrfPolicy = CsrfPolicy.ENFORCED
    # Segment after the prefix is a tenant id that tenants may only
    # access for themselves.
    tenant_scoped: bool = False

    @property
    def is_public(self) -> bool:
        return not self.allowed_roles

    def matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(self.prefix + "/")


def normalize_path(path: str) -> str:
    """Strip query string and trailing slash (except for the root)."""
    path = path.split("?", 1)[0]
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path


class RouteAccessTable:
    """Ordered prefix table; the longest matching prefix wins."""

    def __init__(self, entries: Iterable[RouteAccessEntry]) -> None:
        ordered = sorted(entries, key=lambda e: len(e.prefix), reverse=True)
        seen: set[str] = set()
        for entry in ordered:
            if entry.prefix in seen:
                raise ValueError(f"Duplicate route prefix: '{entry.prefix}'")
            if not entry.prefix.startswith("/"):
                raise ValueError(f"Route prefix must start with '/': '{entry.prefix}'")
            seen.add(entry.prefix)
        self._entries: tuple[RouteAccessEntry, ...] = tuple(ordered)

    @property
    def entries(self) -> tuple[RouteAccessEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def match(self, path: str) -> RouteAccessEntry | None:
        """Return the most specific entry for ``path``, or None if unrestricted."""
        path = normalize_path(path)
        # Exact match first; among prefixes, entries are already longest-first.
        for entry in self._entries:
            if entry.prefix == path:
                return entry
        for entry in self._entries:
            if entry.matches(path):
                return entry
        return None


def _entry(
    prefix: str,
    *roles: Role,
    api: bool = True,
    csrf: CsrfPolicy = CsrfPolicy.ENFORCED,
    tenant_scoped: bool = False,
) -> RouteAccessEntry:
    return RouteAccessEntry(
        prefix=prefix,
        allowed_roles=frozenset(roles),
        is_api=api,
        csrf_policy=csrf,
        tenant_scoped=tenant_scoped,
    )


_ADMIN = Role.ADMIN
_OWNER = Role.PROPERTY_OWNER
_TENANT = Role.TENANT

DEFAULT_ROUTES: tuple[RouteAccessEntry, ...] = (
    # Admin API
    _entry("/api/users", _ADMIN, csrf=CsrfPolicy.EXEMPT),
    _entry("/api/admins", _ADMIN, csrf=CsrfPolicy.EXEMPT),
    _entry("/api/admin/properties", _ADMIN, csrf=CsrfPolicy.EXEMPT),
    _entry("/api/admin/property-owners", _ADMIN, csrf=CsrfPolicy.EXEMPT),
    _entry("/api/invoices/generate", _ADMIN),
    # Shared API
    _entry("/api/payments", _ADMIN, _OWNER, _TENANT),
    _entry("/api/invoices", _ADMIN, _OWNER),
    _entry("/api/properties", _OWNER, _TENANT),
    _entry("/api/tenants", _OWNER, _TENANT, tenant_scoped=True),
    _entry("/api/tenants/check-dues", _OWNER, _TENANT),
    _entry("/api/tenants/profile", _TENANT, _OWNER),
    _entry("/api/tenants/maintenance", _TENANT, _OWNER, csrf=CsrfPolicy.SELF_HANDLED),
    _entry("/api/revert-impersonation", _OWNER, _TENANT, csrf=CsrfPolicy.EXEMPT),
    # Tenant API
    _entry("/api/tenant/payments", _TENANT, _OWNER, csrf=CsrfPolicy.SELF_HANDLED),
    _entry("/api/tenant/profile", _TENANT, _OWNER, csrf=CsrfPolicy.SELF_HANDLED),
    _entry("/api/tenant/change-password", _TENANT, csrf=CsrfPolicy.SELF_HANDLED),
    # Property owner API
    _entry("/api/list-properties", _OWNER),
    _entry("/api/update-wallet", _OWNER),
    _entry("/api/impersonate", _OWNER),
    _entry("/api/ownerstats", _OWNER),
    _entry("/api/ownercharts", _OWNER),
    # Pages
    _entry("/properties", _OWNER, _TENANT, api=False),
    _entry("/tenants", _OWNER, api=False),
    _entry("/property-owner-dashboard", _OWNER, api=False),
    _entry("/tenant-dashboard", _TENANT, _OWNER, api=False),
    _entry("/property-listings", api=False),
)


def default_route_table() -> RouteAccessTable:
    return RouteAccessTable(DEFAULT_ROUTES)


# --- YAML loading ---


class RouteEntryConfig(BaseModel):
    """Single route entry as written in the YAML table."""

    prefix: str
    roles: list[Role] = []
    api: bool = True
    csrf: CsrfPolicy = CsrfPolicy.ENFORCED
    tenant_scoped: bool = False

    def to_entry(self) -> RouteAccessEntry:
        return RouteAccessEntry(
            prefix=self.prefix,
            allowed_roles=frozenset(self.roles),
            is_api=self.api,
            csrf_policy=self.csrf,
            tenant_scoped=self.tenant_scoped,
        )


class RouteTableConfig(BaseModel):
    """Top-level YAML document.

    Validates that every prefix is absolute and unique.
    """

    routes: list[RouteEntryConfig]

    @model_validator(mode="after")
    def validate_prefixes(self) -> RouteTableConfig:
        errors: list[str] = []
        seen: set[str] = set()
        for route in self.routes:
            if not route.prefix.startswith("/"):
                errors.append(f"Prefix must start with '/': '{route.prefix}'")
            if route.prefix in seen:
                errors.append(f"Duplicate prefix: '{route.prefix}'")
            seen.add(route.prefix)
        if errors:
            raise ValueError(
                "Route table validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )
        return self

    def build(self) -> RouteAccessTable:
        return RouteAccessTable(route.to_entry() for route in self.routes)


def load_route_table(config_path: Path) -> RouteAccessTable:
    """Load and validate a route access table from YAML.

    Args:
        config_path: Path to the YAML file. Typically comes from
            Settings.route_table_path.

    Raises:
        FileNotFoundError: if YAML file doesn't exist.
        ValueError: if YAML parsing or validation fails.
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Route table not found: {config_path}")

    try:
        raw = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse route table '{config_path}': {e}") from e
    return RouteTableConfig.model_validate(raw).build()
