"""Tests for the route access table and its YAML loader."""

from pathlib import Path

import pytest

from rental_portal.auth.context import Role
from rental_portal.auth.route_access import (
    DEFAULT_ROUTES,
    CsrfPolicy,
    RouteAccessEntry,
    RouteAccessTable,
    default_route_table,
    load_route_table,
    normalize_path,
)


def _entry(prefix: str, *roles: Role, api: bool = True) -> RouteAccessEntry:
    return RouteAccessEntry(prefix=prefix, allowed_roles=frozenset(roles), is_api=api)


class TestNormalizePath:
    def test_strips_query(self) -> None:
        assert normalize_path("/api/payments?page=2") == "/api/payments"

    def test_strips_trailing_slash(self) -> None:
        assert normalize_path("/api/payments/") == "/api/payments"

    def test_keeps_root(self) -> None:
        assert normalize_path("/") == "/"


class TestRouteAccessTable:
    def test_exact_match(self) -> None:
        table = RouteAccessTable([_entry("/api/users", Role.ADMIN)])
        entry = table.match("/api/users")
        assert entry is not None
        assert entry.prefix == "/api/users"

    def test_prefix_match_requires_segment_boundary(self) -> None:
        """``/api/users`` covers ``/api/users/1`` but not ``/api/usersx``."""
        table = RouteAccessTable([_entry("/api/users", Role.ADMIN)])
        assert table.match("/api/users/1") is not None
        assert table.match("/api/usersx") is None

    def test_longest_prefix_wins(self) -> None:
        table = RouteAccessTable(
            [
                _entry("/api/invoices", Role.ADMIN, Role.PROPERTY_OWNER),
                _entry("/api/invoices/generate", Role.ADMIN),
            ]
        )
        entry = table.match("/api/invoices/generate/monthly")
        assert entry is not None
        assert entry.prefix == "/api/invoices/generate"

        entry = table.match("/api/invoices/42")
        assert entry is not None
        assert entry.prefix == "/api/invoices"

    def test_order_of_construction_irrelevant(self) -> None:
        short_first = RouteAccessTable(
            [_entry("/api/tenants"), _entry("/api/tenants/maintenance")]
        )
        long_first = RouteAccessTable(
            [_entry("/api/tenants/maintenance"), _entry("/api/tenants")]
        )
        for table in (short_first, long_first):
            entry = table.match("/api/tenants/maintenance/7")
            assert entry is not None
            assert entry.prefix == "/api/tenants/maintenance"

    def test_query_string_ignored(self) -> None:
        table = RouteAccessTable([_entry("/api/users", Role.ADMIN)])
        assert table.match("/api/users?active=1") is not None

    def test_no_match(self) -> None:
        table = RouteAccessTable([_entry("/api/users", Role.ADMIN)])
        assert table.match("/api/signin") is None

    def test_duplicate_prefix_rejected(self) -> None:
        with pytest.raises(ValueError, match="Duplicate"):
            RouteAccessTable([_entry("/api/users"), _entry("/api/users")])

    def test_relative_prefix_rejected(self) -> None:
        with pytest.raises(ValueError, match="must start with"):
            RouteAccessTable([_entry("api/users")])

    def test_public_entry(self) -> None:
        assert _entry("/property-listings", api=False).is_public is True
        assert _entry("/api/users", Role.ADMIN).is_public is False


class TestDefaultRouteTable:
    @pytest.fixture()
    def table(self) -> RouteAccessTable:
        return default_route_table()

    def test_contains_all_defaults(self, table: RouteAccessTable) -> None:
        assert len(table) == len(DEFAULT_ROUTES)

    def test_admin_properties(self, table: RouteAccessTable) -> None:
        entry = table.match("/api/admin/properties")
        assert entry is not None
        assert entry.allowed_roles == {Role.ADMIN}
        assert entry.is_api is True

    def test_tenant_payments_policy(self, table: RouteAccessTable) -> None:
        entry = table.match("/api/tenant/payments/manual")
        assert entry is not None
        assert entry.allowed_roles == {Role.TENANT, Role.PROPERTY_OWNER}
        assert entry.csrf_policy == CsrfPolicy.SELF_HANDLED

    def test_tenants_is_tenant_scoped(self, table: RouteAccessTable) -> None:
        entry = table.match("/api/tenants/xyz789")
        assert entry is not None
        assert entry.tenant_scoped is True

    def test_tenant_subresources_not_scoped(self, table: RouteAccessTable) -> None:
        for path in (
            "/api/tenants/maintenance",
            "/api/tenants/check-dues",
            "/api/tenants/profile",
        ):
            entry = table.match(path)
            assert entry is not None
            assert entry.tenant_scoped is False, path

    def test_page_routes(self, table: RouteAccessTable) -> None:
        entry = table.match("/property-owner-dashboard/reports")
        assert entry is not None
        assert entry.is_api is False

    def test_property_listings_public(self, table: RouteAccessTable) -> None:
        entry = table.match("/property-listings/123")
        assert entry is not None
        assert entry.is_public is True

    def test_admin_apis_csrf_exempt(self, table: RouteAccessTable) -> None:
        for path in ("/api/users", "/api/admins", "/api/admin/property-owners"):
            entry = table.match(path)
            assert entry is not None
            assert entry.csrf_policy == CsrfPolicy.EXEMPT, path


class TestLoadRouteTable:
    def test_load_valid(self, tmp_path: Path) -> None:
        config = tmp_path / "routes.yaml"
        config.write_text(
            """
routes:
  - prefix: /api/payments
    roles: [admin, propertyOwner, tenant]
  - prefix: /api/tenant/payments
    roles: [tenant]
    csrf: self_handled
  - prefix: /property-listings
    api: false
""",
            encoding="utf-8",
        )
        table = load_route_table(config)

        assert len(table) == 3
        entry = table.match("/api/tenant/payments")
        assert entry is not None
        assert entry.allowed_roles == {Role.TENANT}
        assert entry.csrf_policy == CsrfPolicy.SELF_HANDLED

        listings = table.match("/property-listings")
        assert listings is not None
        assert listings.is_public is True
        assert listings.is_api is False

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_route_table(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        config = tmp_path / "routes.yaml"
        config.write_text("routes: [unclosed", encoding="utf-8")
        with pytest.raises(ValueError, match="Failed to parse"):
            load_route_table(config)

    def test_unknown_role(self, tmp_path: Path) -> None:
        config = tmp_path / "routes.yaml"
        config.write_text(
            "routes:\n  - prefix: /api/x\n    roles: [superuser]\n",
            encoding="utf-8",
        )
        with pytest.raises(ValueError):
            load_route_table(config)

    def test_duplicate_prefix(self, tmp_path: Path) -> None:
        config = tmp_path / "routes.yaml"
        config.write_text(
            "routes:\n  - prefix: /api/x\n  - prefix: /api/x\n",
            encoding="utf-8",
        )
        with pytest.raises(ValueError, match="Duplicate prefix"):
            load_route_table(config)
