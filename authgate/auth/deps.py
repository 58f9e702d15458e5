from __future__ import annotations

from dataclasses import asdict
from functools import lru_cache
from typing import Any, Callable, Dict, Optional, Union

import requests
from starlette.requests import HTTPConnection

from authgate.auth.authenticator import Authenticator
from authgate.auth.config import AuthConfig, load_auth_config
from authgate.auth.google import GoogleProvider
from authgate.auth.models import AuthError, AuthUser, VerifyParams
from authgate.auth.oauth2 import OAuth2Strategy
from authgate.auth.strategy import AuthenticateConf, VerifyCallback
from authgate.session.container import CookieAttributes, CookieContainer


def session_cookie_name(cfg: AuthConfig) -> str:
    # `__Host-` requires Secure + Path=/ + no Domain; browsers may reject it on HTTP.
    return "__Host-authgate_session" if cfg.cookie_secure else "authgate_session"


def build_conf(cfg: AuthConfig) -> AuthenticateConf:
    attrs = CookieAttributes(path="/", secure=cfg.cookie_secure, httponly=True, samesite="lax")
    return AuthenticateConf(
        session=CookieContainer(
            session_cookie_name(cfg),
            secrets=cfg.session_secrets,
            attributes=attrs.merged(max_age=cfg.session_ttl_seconds),
            max_age=cfg.session_ttl_seconds,
        ),
        error=CookieContainer("authgate_error", secrets=cfg.session_secrets, attributes=attrs),
        strategy_type=CookieContainer("authgate_strategy", secrets=cfg.session_secrets, attributes=attrs),
        success_url=cfg.success_url,
        failure_url=cfg.failure_url,
    )


def make_verify(cfg: AuthConfig) -> VerifyCallback[Dict[str, Any]]:
    """Default verify callback: accept profiles with an email in an allowed domain."""

    def verify(params: VerifyParams) -> Union[Dict[str, Any], AuthError]:
        profile = params.profile
        email = (profile.email or "").strip().lower()
        if not email:
            return AuthError("Email address missing from profile")
        domain = email.rsplit("@", 1)[-1]
        if cfg.allowed_domains and domain not in cfg.allowed_domains:
            return AuthError(f"Email domain {domain} is not allowed")
        # Keep cookie small and non-sensitive (no access tokens).
        user = AuthUser(
            provider=profile.provider,
            id=profile.id,
            email=email,
            name=profile.display_name,
            picture=profile.photo,
        )
        return asdict(user)

    return verify


def resolve_callback_url(cfg: AuthConfig) -> str:
    cb = cfg.google_callback_url
    if cb.startswith("/") and not cb.startswith("//") and cfg.public_base_url:
        return cfg.public_base_url.rstrip("/") + cb
    return cb


def build_authenticator(
    cfg: AuthConfig,
    *,
    verify: Optional[VerifyCallback[Any]] = None,
    http: Optional[requests.Session] = None,
    token_factory: Optional[Callable[[], str]] = None,
) -> Authenticator:
    if not cfg.google_client_id or not cfg.google_client_secret:
        raise ValueError("Google client ID/secret not configured")
    provider = GoogleProvider(
        client_id=cfg.google_client_id,
        client_secret=cfg.google_client_secret,
        scope=cfg.google_scope,
        access_type=cfg.google_access_type,
        include_granted_scopes=cfg.google_include_granted_scopes,
        prompt=cfg.google_prompt,
    )
    strategy: OAuth2Strategy[Any] = OAuth2Strategy(
        provider,
        build_conf(cfg),
        verify or make_verify(cfg),
        callback_url=resolve_callback_url(cfg),
        http=http,
        token_factory=token_factory,
    )
    return Authenticator(strategy)


@lru_cache(maxsize=1)
def get_authenticator() -> Optional[Authenticator]:
    """The process-wide authenticator, or None when Google sign-in is not configured."""
    cfg = load_auth_config()
    if not cfg.google_enabled:
        return None
    return build_authenticator(cfg)


def user_from_session(data: Any) -> Optional[AuthUser]:
    if not isinstance(data, dict):
        return None
    provider = str(data.get("provider") or "").strip()
    if not provider:
        return None
    fields = {k: data.get(k) for k in ("id", "email", "name", "picture")}
    return AuthUser(provider=provider, **{k: str(v) if v else None for k, v in fields.items()})


def authenticate_request(request: HTTPConnection) -> Optional[AuthUser]:
    """
    Authenticate a request and return an AuthUser if its session cookie is valid.
    """
    authenticator = get_authenticator()
    if authenticator is None:
        # Nothing could have signed the cookie; fail closed.
        return None
    return user_from_session(authenticator.get_user(request))
