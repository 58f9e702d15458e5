"""
OAuth2 authorization-code strategy.

Each request re-enters `authenticate` from scratch; the shape of the request picks
the step:

- a valid session cookie: already signed in, succeed without calling the provider;
- any path other than the callback: redirect to the provider, flashing a fresh
  CSRF state into a cookie;
- the callback path: check state, exchange the code, fetch the profile, hand both
  to the application's verify callback, then write the session (or the error).

Nothing about a flow is kept in process memory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, Union
from urllib.parse import urlencode, urljoin, urlsplit, urlunsplit

import requests
from starlette.requests import Request
from starlette.responses import Response

from authgate.auth.models import AuthError, OAuth2Profile, TokenResponse, VerifyParams
from authgate.auth.strategy import (
    AuthenticateConf,
    User,
    VerifyCallback,
    failure_response,
    redirect,
    success_response,
)
from authgate.auth.util import random_state
from authgate.session.container import CookieContainer

logger = logging.getLogger(__name__)

STATE_TTL_SECONDS = 10 * 60


@dataclass(frozen=True)
class OAuth2Provider:
    """
    A bare OAuth2 provider: endpoints and client credentials, no profile endpoint.

    Provider adapters subclass this and override `authorization_params` and
    `user_profile`.
    """

    client_id: str
    client_secret: str
    authorization_url: str
    token_url: str
    name: str = "oauth2"

    def authorization_params(self, params: Dict[str, str]) -> Dict[str, str]:
        """
        Provider parameters for the authorization URL and the token request.

        The bare provider passes `params` through unchanged. It does not add
        `grant_type`: that belongs to the token request, where `fetch_access_token`
        sets it, and authorization endpoints ignore it.
        """
        return dict(params)

    def user_profile(
        self,
        access_token: str,
        extra_params: Dict[str, Any],
        http: requests.Session,
        timeout: float = 10.0,
    ) -> Union[OAuth2Profile, AuthError]:
        return OAuth2Profile(provider=self.name)


class OAuth2Strategy(Generic[User]):
    def __init__(
        self,
        provider: OAuth2Provider,
        conf: AuthenticateConf,
        verify: VerifyCallback[User],
        *,
        callback_url: str,
        http: Optional[requests.Session] = None,
        token_factory: Optional[Callable[[], str]] = None,
        state: Optional[CookieContainer[str]] = None,
        timeout: float = 10.0,
    ) -> None:
        self.provider = provider
        self._conf = conf
        self._verify = verify
        self._callback_url = callback_url
        self.http = http or requests.Session()
        self._token_factory = token_factory or random_state
        self.timeout = timeout
        if state is None:
            state = CookieContainer(
                f"{provider.name}_state",
                secrets=conf.session.secrets,
                attributes=conf.session.attributes.merged(max_age=STATE_TTL_SECONDS),
                max_age=STATE_TTL_SECONDS,
            )
        self.state = state

    @property
    def name(self) -> str:
        return self.provider.name

    @property
    def conf(self) -> AuthenticateConf:
        return self._conf

    def callback_url_for(self, url: str) -> str:
        """Resolve the configured callback URL against the current request URL."""
        cb = self._callback_url
        if cb.startswith("http:") or cb.startswith("https:"):
            return cb
        if cb.startswith("//"):
            return f"{urlsplit(url).scheme}:{cb}"
        if cb.startswith("/"):
            return urljoin(url, cb)
        # Host-relative form: "example.com/auth/callback"
        return f"{urlsplit(url).scheme}://{cb}"

    def authorization_url(self, request: Request, state: str) -> str:
        params = self.provider.authorization_params(dict(request.query_params))
        params["response_type"] = "code"
        params["client_id"] = self.provider.client_id
        params["redirect_uri"] = self.callback_url_for(str(request.url))
        params["state"] = state

        parts = urlsplit(self.provider.authorization_url)
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), ""))

    def authorize(self, request: Request) -> Response:
        """Send the user to the provider, remembering a fresh state in a flash cookie."""
        state = self._token_factory()
        response = redirect(self.authorization_url(request, state))
        self.state.flash(state, response)
        logger.debug("%s: redirecting to provider for authorization", self.name)
        return response

    def authenticate(self, request: Request) -> Response:
        user = self._conf.session.get(request)
        if user is not None:
            return success_response(self._conf, user, self.name)

        callback_path = urlsplit(self.callback_url_for(str(request.url))).path
        if request.url.path != callback_path:
            return self.authorize(request)

        return self.handle_callback(request)

    def handle_callback(self, request: Request) -> Response:
        outcome = self._complete(request)
        if isinstance(outcome, AuthError):
            response = failure_response(self._conf, outcome.message)
        else:
            logger.info("%s: sign-in succeeded", self.name)
            response = success_response(self._conf, outcome, self.name)
        # The state is single-use whatever the outcome.
        self.state.get(request, response)
        self.state.clear(response)
        return response

    def _complete(self, request: Request) -> Union[User, AuthError]:
        url_state = request.query_params.get("state")
        if not url_state:
            return AuthError(f"Missing state querystring on url: {request.url}")

        session_state = self.state.get(request)
        if not session_state:
            return AuthError("Missing state value on session")

        if session_state != url_state:
            return AuthError(f"session state {session_state} does not match url state {url_state}")

        code = request.query_params.get("code")
        if not code:
            return AuthError("Missing code")

        params = self.provider.authorization_params({})
        params["redirect_uri"] = self.callback_url_for(str(request.url))

        logger.debug("%s: exchanging authorization code", self.name)
        tokens = self.fetch_access_token(code, params)
        if isinstance(tokens, AuthError):
            return tokens

        logger.debug("%s: fetching user profile", self.name)
        try:
            profile = self.provider.user_profile(
                tokens.access_token, tokens.extra_params, self.http, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.warning("%s: profile request failed: %s", self.name, type(e).__name__)
            return AuthError("Failed to fetch user profile")
        if isinstance(profile, AuthError):
            return profile

        return self._verify(
            VerifyParams(
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                extra_params=tokens.extra_params,
                profile=profile,
            )
        )

    def fetch_access_token(self, code: str, params: Dict[str, str]) -> Union[TokenResponse, AuthError]:
        """
        POST to the token endpoint.

        `code` is the authorization code, or the refresh token when `params` already
        carries `grant_type=refresh_token`.
        """
        payload = dict(params)
        if payload.get("grant_type") != "refresh_token":
            payload["grant_type"] = "authorization_code"
        payload["client_id"] = self.provider.client_id
        payload["client_secret"] = self.provider.client_secret
        if payload["grant_type"] == "refresh_token":
            payload["refresh_token"] = code
        else:
            payload["code"] = code

        try:
            r = self.http.post(
                self.provider.token_url,
                data=payload,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            # Avoid leaking request details; the type is enough to debug.
            logger.warning("%s: token request failed: %s", self.name, type(e).__name__)
            return AuthError("Token request failed")
        if not r.ok:
            logger.info("%s: token endpoint returned status=%s", self.name, r.status_code)
            return AuthError("Invalid response received")
        return parse_token_response(r)

    def refresh(self, refresh_token: str) -> Union[TokenResponse, AuthError]:
        """Exchange a refresh token for a new access token."""
        params = self.provider.authorization_params({})
        params["grant_type"] = "refresh_token"
        return self.fetch_access_token(refresh_token, params)


def parse_token_response(r: requests.Response) -> Union[TokenResponse, AuthError]:
    try:
        data = r.json()
    except ValueError:
        return AuthError("Invalid token response")
    if not isinstance(data, dict):
        return AuthError("Invalid token response")

    if data.get("error"):
        return AuthError(str(data.get("error_description") or data["error"]))

    extra = dict(data)
    access_token = extra.pop("access_token", None)
    refresh_token = extra.pop("refresh_token", None)
    if not access_token:
        return AuthError("Missing access token")
    return TokenResponse(
        access_token=str(access_token),
        refresh_token=str(refresh_token) if refresh_token else None,
        extra_params=extra,
    )
