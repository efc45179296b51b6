"""CLI for inspecting the route access table.

Usage::

    uv run python -m scripts.check_access <command> [options]

Commands:
    list-routes     Print the access table
    check           Show the gatekeeper outcome for a simulated request
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from pathlib import Path

from rental_portal.auth.csrf import CSRF_COOKIE, CSRF_HEADER
from rental_portal.auth.gatekeeper import GateAction, Gatekeeper
from rental_portal.auth.rate_limiter import FixedWindowRateLimiter
from rental_portal.auth.route_access import (
    RouteAccessTable,
    default_route_table,
    load_route_table,
)
from rental_portal.config import settings
from rental_portal.errors import GatekeeperError

# Token used to simulate a client that passed CSRF validation.
_SIMULATED_TOKEN = "simulated-csrf-token"


def get_table(path: Path | None) -> RouteAccessTable:
    """Load the table from ``path``, the configured file, or the defaults."""
    path = path or settings.route_table_path
    if path is None:
        return default_route_table()
    try:
        return load_route_table(path)
    except (FileNotFoundError, ValueError) as e:
        print(f"Cannot load route table: {e}", file=sys.stderr)
        sys.exit(1)


def list_routes(args: argparse.Namespace) -> None:
    """Print every entry, most specific prefix first."""
    table = get_table(args.table)
    print("Routes:")
    for i, entry in enumerate(table.entries, 1):
        roles = ",".join(sorted(entry.allowed_roles)) or "public"
        kind = "api" if entry.is_api else "page"
        scoped = " tenant-scoped" if entry.tenant_scoped else ""
        print(
            f"  {i}. {entry.prefix} [{kind}] roles={roles} "
            f"csrf={entry.csrf_policy}{scoped}"
        )


def check(args: argparse.Namespace) -> None:
    """Run a simulated request through a throwaway gatekeeper."""
    table = get_table(args.table)
    gatekeeper = Gatekeeper(
        table,
        FixedWindowRateLimiter(limit=settings.rate_limit_max),
        settings,
    )

    cookies: dict[str, str] = {}
    headers: dict[str, str] = {"x-forwarded-for": "127.0.0.1"}
    if args.user_id:
        cookies["userId"] = args.user_id
    if args.role:
        cookies["role"] = args.role
    if not args.no_csrf:
        cookies[CSRF_COOKIE] = _SIMULATED_TOKEN
        headers[CSRF_HEADER.lower()] = _SIMULATED_TOKEN

    try:
        decision = gatekeeper.authorize(args.method, args.path, cookies, headers)
    except GatekeeperError as e:
        print(f"{args.method.upper()} {args.path}: rejected {e.status_code} {e.code}")
        print(f"   Message: {e.message}")
        sys.exit(2)

    matched = decision.entry.prefix if decision.entry else "none"
    if decision.action == GateAction.REDIRECT:
        print(f"{args.method.upper()} {args.path}: redirect -> {decision.redirect_to}")
    else:
        print(f"{args.method.upper()} {args.path}: pass")
    print(f"   Matched: {matched}")


def main() -> None:
    """Parse arguments and dispatch to command handler."""
    parser = argparse.ArgumentParser(description="Route access inspection CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    # list-routes
    p = sub.add_parser("list-routes", help="Print the access table")
    p.add_argument("--table", type=Path, default=None, help="YAML route table")

    # check
    p = sub.add_parser("check", help="Simulate a request")
    p.add_argument("--path", required=True, help="Request path")
    p.add_argument("--method", default="GET", help="HTTP method")
    p.add_argument("--role", default=None, help="admin, propertyOwner or tenant")
    p.add_argument("--user-id", default=None, help="Session user id")
    p.add_argument(
        "--no-csrf", action="store_true", help="Omit the CSRF token on mutations"
    )
    p.add_argument("--table", type=Path, default=None, help="YAML route table")

    args = parser.parse_args()
    commands: dict[str, Callable[[argparse.Namespace], None]] = {
        "list-routes": list_routes,
        "check": check,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
