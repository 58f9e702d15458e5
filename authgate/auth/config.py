"""
Authentication configuration, loaded from environment variables.

Session secrets are an ordered list: the first one signs new cookies, all of them
are accepted when verifying, so a secret can be rotated by prepending the new one
and dropping the old one once its cookies have expired.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional

from authgate.auth.google import ACCESS_TYPES, DEFAULT_SCOPE, PROMPTS


@dataclass(frozen=True)
class AuthConfig:
    # Session configuration
    session_secrets: List[str]  # First entry signs; every entry verifies.
    public_base_url: Optional[str]
    session_ttl_seconds: int
    cookie_secure: bool

    # Where the flow lands
    success_url: str
    failure_url: str

    # Sign-in restricted to these email domains (empty = any)
    allowed_domains: List[str]

    # Google provider
    google_client_id: Optional[str]
    google_client_secret: Optional[str]
    google_callback_url: str
    google_scope: str
    google_access_type: str  # online|offline
    google_include_granted_scopes: bool
    google_prompt: Optional[str]  # none|consent|select_account

    @property
    def google_enabled(self) -> bool:
        """Google sign-in needs client credentials and something to sign sessions with."""
        return bool(self.google_client_id and self.google_client_secret and self.session_secrets)


def _parse_csv(value: str, *, lower: bool = True) -> List[str]:
    items = [x.strip() for x in (value or "").split(",")]
    return [x.lower() if lower else x for x in items if x]


def _parse_bool(value: str) -> Optional[bool]:
    v = (value or "").strip().lower()
    if v in ("1", "true", "yes", "on"):
        return True
    if v in ("0", "false", "no", "off"):
        return False
    return None


def _env(name: str) -> Optional[str]:
    return (os.getenv(name, "") or "").strip() or None


@lru_cache(maxsize=1)
def load_auth_config() -> AuthConfig:
    """
    Load authentication configuration from environment variables.

    Google sign-in is enabled if GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and
    AUTH_SESSION_SECRETS (or AUTH_SESSION_SECRET) are set.
    """
    public_base_url = _env("AUTH_PUBLIC_BASE_URL")
    cookie_secure = _parse_bool(os.getenv("AUTH_COOKIE_SECURE", ""))
    if cookie_secure is None:
        # Default: secure cookies when base URL is https; otherwise allow local dev.
        cookie_secure = (public_base_url or "").startswith("https://")

    ttl = int(float((os.getenv("AUTH_SESSION_TTL_SECONDS", "") or "43200").strip() or "43200"))  # 12h default
    if ttl <= 60:
        ttl = 60

    secrets = _parse_csv(os.getenv("AUTH_SESSION_SECRETS", ""), lower=False)
    if not secrets and _env("AUTH_SESSION_SECRET"):
        secrets = [str(_env("AUTH_SESSION_SECRET"))]

    access_type = (_env("GOOGLE_ACCESS_TYPE") or "online").lower()
    if access_type not in ACCESS_TYPES:
        access_type = "online"
    prompt = (_env("GOOGLE_PROMPT") or "").lower() or None
    if prompt not in PROMPTS:
        prompt = None

    return AuthConfig(
        session_secrets=secrets,
        public_base_url=public_base_url,
        session_ttl_seconds=ttl,
        cookie_secure=cookie_secure,
        success_url=_env("AUTH_SUCCESS_URL") or "/",
        failure_url=_env("AUTH_FAILURE_URL") or "/api/auth/error",
        allowed_domains=_parse_csv(os.getenv("AUTH_ALLOWED_DOMAINS", "")),
        google_client_id=_env("GOOGLE_CLIENT_ID"),
        google_client_secret=_env("GOOGLE_CLIENT_SECRET"),
        google_callback_url=_env("GOOGLE_CALLBACK_URL") or "/api/auth/callback/google",
        google_scope=_env("GOOGLE_SCOPE") or DEFAULT_SCOPE,
        google_access_type=access_type,
        google_include_granted_scopes=bool(_parse_bool(os.getenv("GOOGLE_INCLUDE_GRANTED_SCOPES", ""))),
        google_prompt=prompt,
    )
