"""Tests for anti-forgery token issuance and validation."""

from starlette.responses import Response

from rental_portal.auth.csrf import (
    CSRF_COOKIE,
    extract_supplied_token,
    generate_csrf_token,
    set_csrf_cookie,
    validate_csrf_token,
)


class TestGenerateCsrfToken:
    def test_tokens_are_unique(self) -> None:
        tokens = {generate_csrf_token() for _ in range(50)}
        assert len(tokens) == 50

    def test_token_is_url_safe(self) -> None:
        token = generate_csrf_token()
        assert len(token) >= 32
        assert all(c.isalnum() or c in "-_" for c in token)


class TestValidateCsrfToken:
    def test_matching_tokens(self) -> None:
        assert validate_csrf_token("T1", "T1") is True

    def test_mismatched_tokens(self) -> None:
        assert validate_csrf_token("T1", "T2") is False

    def test_missing_supplied(self) -> None:
        assert validate_csrf_token("T1", None) is False

    def test_missing_cookie(self) -> None:
        assert validate_csrf_token(None, "T1") is False

    def test_both_empty(self) -> None:
        """Two empty values are not a valid pair."""
        assert validate_csrf_token("", "") is False
        assert validate_csrf_token(None, None) is False

    def test_non_ascii(self) -> None:
        assert validate_csrf_token("tökén", "tökén") is True
        assert validate_csrf_token("tökén", "token") is False


class TestExtractSuppliedToken:
    def test_canonical_header(self) -> None:
        assert extract_supplied_token({"X-CSRF-Token": "T1"}) == "T1"

    def test_lowercase_header(self) -> None:
        assert extract_supplied_token({"x-csrf-token": "T1"}) == "T1"

    def test_absent(self) -> None:
        assert extract_supplied_token({}) is None

    def test_empty_value(self) -> None:
        assert extract_supplied_token({"x-csrf-token": ""}) is None


class TestSetCsrfCookie:
    def test_cookie_attributes(self) -> None:
        response = Response()
        set_csrf_cookie(response, "T1", secure=False, max_age=3600)

        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"{CSRF_COOKIE}=T1")
        assert "HttpOnly" in cookie
        assert "Max-Age=3600" in cookie
        assert "Path=/" in cookie
        assert "samesite=strict" in cookie.lower()
        assert "Secure" not in cookie

    def test_secure_in_production(self) -> None:
        response = Response()
        set_csrf_cookie(response, "T1", secure=True)
        assert "Secure" in response.headers["set-cookie"]
