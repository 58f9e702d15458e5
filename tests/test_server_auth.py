from __future__ import annotations

from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlsplit

import pytest
from fastapi.testclient import TestClient

import authgate.api.server as srv
import authgate.auth.deps as deps
from authgate.auth.config import load_auth_config
from authgate.auth.deps import build_authenticator

STATE = "9a6c1b52-3d1e-4c8f-a1d2-5e7f9b0c3d4e"

USERINFO = {
    "sub": "1234567890",
    "name": "Ada Lovelace",
    "given_name": "Ada",
    "family_name": "Lovelace",
    "picture": "https://lh3.googleusercontent.com/a/photo.jpg",
    "email": "Ada@Example.com",
}


@pytest.fixture
def google_env(monkeypatch) -> None:
    monkeypatch.setenv("AUTH_SESSION_SECRETS", "test-secret-key-for-testing-purposes-only")
    monkeypatch.setenv("AUTH_COOKIE_SECURE", "0")
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "test-client-secret")
    load_auth_config.cache_clear()


@pytest.fixture
def http(make_json_response) -> MagicMock:
    http = MagicMock()
    http.post.return_value = make_json_response(
        {"access_token": "ya29.token", "expires_in": 3599, "token_type": "Bearer", "scope": "openid email profile"}
    )
    http.get.return_value = make_json_response(USERINFO)
    return http


@pytest.fixture
def client(google_env, http, monkeypatch) -> TestClient:
    # Build the authenticator lazily so tests can adjust env vars first.
    def _get_authenticator():  # type: ignore[no-untyped-def]
        return build_authenticator(load_auth_config(), http=http, token_factory=lambda: STATE)

    monkeypatch.setattr(srv, "get_authenticator", _get_authenticator)
    monkeypatch.setattr(deps, "get_authenticator", _get_authenticator)
    return TestClient(srv.app)


def _sign_in(client: TestClient) -> None:
    r = client.get("/api/auth/login/google", follow_redirects=False)
    assert r.status_code == 302
    r = client.get("/api/auth/callback/google", params={"state": STATE, "code": "4/0Ab-code"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"


def test_healthz_is_public() -> None:
    """Health check endpoint should be accessible without authentication."""
    r = TestClient(srv.app).get("/healthz")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_mode_reports_google_disabled() -> None:
    """The auth mode endpoint reports sign-in disabled when Google is not configured."""
    r = TestClient(srv.app).get("/api/auth/mode")
    assert r.status_code == 200
    assert r.json() == {"ok": True, "googleEnabled": False}


def test_mode_reports_google_enabled(google_env) -> None:
    """The auth mode endpoint reports Google sign-in when it is configured."""
    assert TestClient(srv.app).get("/api/auth/mode").json()["googleEnabled"] is True


def test_login_forbidden_when_not_configured() -> None:
    """Login is refused when Google sign-in is not configured."""
    r = TestClient(srv.app).get("/api/auth/login/google", follow_redirects=False)
    assert r.status_code == 403


def test_me_requires_auth_when_not_configured() -> None:
    """The current-user endpoint returns 401 when sign-in is not configured."""
    assert TestClient(srv.app).get("/api/auth/me").status_code == 401


def test_login_redirects_to_google(client, http) -> None:
    """Login redirects to Google's authorization endpoint."""
    r = client.get("/api/auth/login/google", follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["cache-control"] == "no-store"
    location = urlsplit(r.headers["location"])
    assert location.netloc == "accounts.google.com"
    query = parse_qs(location.query)
    assert query["response_type"] == ["code"]
    assert query["client_id"] == ["test-client-id"]
    assert query["redirect_uri"] == ["http://testserver/api/auth/callback/google"]
    assert query["state"] == [STATE]
    assert query["scope"] == ["openid profile email"]
    assert query["access_type"] == ["online"]
    assert "google_state" in client.cookies
    assert client.cookies.get("__flash_google_state__") == "true"
    http.post.assert_not_called()


def test_full_sign_in_flow(client, http) -> None:
    """Login, callback and the current-user endpoint work end to end."""
    _sign_in(client)

    assert "authgate_session" in client.cookies
    assert "authgate_strategy" in client.cookies
    assert "google_state" not in client.cookies
    assert "__flash_google_state__" not in client.cookies

    token_call = http.post.call_args
    assert token_call.args[0] == "https://oauth2.googleapis.com/token"
    assert token_call.kwargs["data"]["grant_type"] == "authorization_code"
    assert token_call.kwargs["data"]["code"] == "4/0Ab-code"
    assert token_call.kwargs["data"]["redirect_uri"] == "http://testserver/api/auth/callback/google"
    assert http.get.call_args.kwargs["headers"] == {"Authorization": "Bearer ya29.token"}

    r = client.get("/api/auth/me")
    assert r.status_code == 200
    assert r.json()["user"] == {
        "provider": "google",
        "id": "1234567890",
        "email": "ada@example.com",
        "name": "Ada Lovelace",
        "picture": USERINFO["picture"],
    }


def test_already_signed_in_skips_provider(client, http) -> None:
    """A signed-in browser is sent to the success URL without visiting Google."""
    _sign_in(client)
    assert http.post.call_count == 1

    r = client.get("/api/auth/login/google", follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/"
    assert http.post.call_count == 1
    assert http.get.call_count == 1


def test_state_mismatch_redirects_to_failure(client, http) -> None:
    """A tampered callback state redirects to the failure URL without signing in."""
    client.get("/api/auth/login/google", follow_redirects=False)
    r = client.get("/api/auth/callback/google", params={"state": "wrong", "code": "c"}, follow_redirects=False)

    assert r.status_code == 302
    assert r.headers["location"] == "/api/auth/error"
    assert "authgate_session" not in client.cookies
    http.post.assert_not_called()

    r = client.get("/api/auth/error")
    assert r.json()["ok"] is False
    assert "does not match url state wrong" in r.json()["error"]
    # The error is reported once.
    assert client.get("/api/auth/error").json()["error"] is None

    assert client.get("/api/auth/me").status_code == 401


def test_callback_without_login_fails(client) -> None:
    """A callback without a prior login fails with a missing-state error."""
    r = client.get("/api/auth/callback/google", params={"state": STATE, "code": "c"}, follow_redirects=False)
    assert r.headers["location"] == "/api/auth/error"
    assert client.get("/api/auth/error").json()["error"] == "Missing state value on session"


def test_domain_restriction(client, monkeypatch) -> None:
    """Emails outside the allowed domains are rejected."""
    monkeypatch.setenv("AUTH_ALLOWED_DOMAINS", "corp.example.org")
    load_auth_config.cache_clear()

    client.get("/api/auth/login/google", follow_redirects=False)
    r = client.get("/api/auth/callback/google", params={"state": STATE, "code": "c"}, follow_redirects=False)

    assert r.headers["location"] == "/api/auth/error"
    assert client.get("/api/auth/error").json()["error"] == "Email domain example.com is not allowed"


def test_status_redirects(client) -> None:
    """The status endpoint redirects according to whether the user is signed in."""
    r = client.get("/api/auth/status", follow_redirects=False)
    assert r.headers["location"] == "/api/auth/error"

    _sign_in(client)
    r = client.get("/api/auth/status", follow_redirects=False)
    assert r.headers["location"] == "/"


def test_logout_clears_session(client) -> None:
    """Logout drops the session so the user is no longer authenticated."""
    _sign_in(client)
    assert client.get("/api/auth/me").status_code == 200

    r = client.post("/api/auth/logout", params={"next": "/bye"}, follow_redirects=False)
    assert r.status_code == 302
    assert r.headers["location"] == "/bye"
    assert "max-age=0" in r.headers.get("set-cookie", "").lower()

    assert client.get("/api/auth/me").status_code == 401


def test_logout_rejects_open_redirect(client) -> None:
    """Logout ignores off-site next URLs."""
    r = client.get("/api/auth/logout", params={"next": "//evil.example.com"}, follow_redirects=False)
    assert r.headers["location"] == "/"


def test_tampered_session_is_unauthenticated(client) -> None:
    """A tampered session cookie is treated as signed out."""
    _sign_in(client)
    value = client.cookies.get("authgate_session")
    assert value
    tampered = TestClient(srv.app, cookies={"authgate_session": "x" + value[1:]})
    assert tampered.get("/api/auth/me").status_code == 401
