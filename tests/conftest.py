"""
Pytest config.

Tests import the local `authgate/` package straight from the repo root, whether or
not it has been installed, so the root is pinned onto sys.path here.
"""

from __future__ import annotations

import sys
from http.cookies import Morsel, SimpleCookie
from pathlib import Path
from typing import Callable, Dict, Optional
from unittest.mock import MagicMock
from urllib.parse import urlencode


def _ensure_repo_root_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)


_ensure_repo_root_on_syspath()

import pytest  # noqa: E402
from starlette.requests import Request  # noqa: E402
from starlette.responses import Response  # noqa: E402

from authgate.auth.config import load_auth_config  # noqa: E402
from authgate.auth.deps import get_authenticator  # noqa: E402

_AUTH_ENV = (
    "AUTH_SESSION_SECRETS",
    "AUTH_SESSION_SECRET",
    "AUTH_PUBLIC_BASE_URL",
    "AUTH_COOKIE_SECURE",
    "AUTH_SESSION_TTL_SECONDS",
    "AUTH_SUCCESS_URL",
    "AUTH_FAILURE_URL",
    "AUTH_ALLOWED_DOMAINS",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_CALLBACK_URL",
    "GOOGLE_SCOPE",
    "GOOGLE_ACCESS_TYPE",
    "GOOGLE_INCLUDE_GRANTED_SCOPES",
    "GOOGLE_PROMPT",
)


@pytest.fixture(autouse=True)
def _isolated_auth_env(monkeypatch: pytest.MonkeyPatch):
    """Start every test from an empty auth environment and cold config caches."""
    for name in _AUTH_ENV:
        monkeypatch.delenv(name, raising=False)
    load_auth_config.cache_clear()
    get_authenticator.cache_clear()
    yield
    load_auth_config.cache_clear()
    get_authenticator.cache_clear()


def build_request(
    path: str = "/",
    query: Optional[Dict[str, str]] = None,
    cookies: Optional[Dict[str, str]] = None,
    host: str = "testserver",
) -> Request:
    headers = [(b"host", host.encode("latin-1"))]
    if cookies:
        headers.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode("latin-1")))
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": "GET",
        "scheme": "http",
        "server": (host, 80),
        "path": path,
        "root_path": "",
        "query_string": urlencode(query or {}).encode("latin-1"),
        "headers": headers,
    }
    return Request(scope)


def parse_set_cookies(response: Response) -> Dict[str, Morsel]:
    """Set-Cookie headers of a response by cookie name (last write wins)."""
    out: Dict[str, Morsel] = {}
    for header in response.headers.getlist("set-cookie"):
        jar: SimpleCookie = SimpleCookie()
        jar.load(header)
        for name, morsel in jar.items():
            out[name] = morsel
    return out


def json_response(payload, status: int = 200) -> MagicMock:  # type: ignore[no-untyped-def]
    r = MagicMock()
    r.status_code = status
    r.ok = 200 <= status < 300
    r.json.return_value = payload
    return r


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return build_request


@pytest.fixture
def make_json_response() -> Callable[..., MagicMock]:
    return json_response


@pytest.fixture
def set_cookies() -> Callable[[Response], Dict[str, Morsel]]:
    return parse_set_cookies
