from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import requests

from authgate.auth.models import AuthError, OAuth2Profile, ProfileName, ProfileValue
from authgate.auth.oauth2 import OAuth2Provider

logger = logging.getLogger(__name__)

AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"

DEFAULT_SCOPE = "openid profile email"
ACCESS_TYPES = ("online", "offline")
PROMPTS = ("none", "consent", "select_account")


@dataclass(frozen=True)
class GoogleProvider(OAuth2Provider):
    authorization_url: str = AUTHORIZATION_URL
    token_url: str = TOKEN_URL
    name: str = "google"
    userinfo_url: str = USERINFO_URL
    scope: str = DEFAULT_SCOPE
    access_type: str = "online"
    include_granted_scopes: bool = False
    prompt: Optional[str] = None

    def authorization_params(self, params: Dict[str, str]) -> Dict[str, str]:
        # Google's parameters replace whatever the request carried.
        out = {
            "scope": self.scope or DEFAULT_SCOPE,
            "access_type": self.access_type or "online",
            "include_granted_scopes": "true" if self.include_granted_scopes else "false",
        }
        if self.prompt:
            out["prompt"] = self.prompt
        return out

    def user_profile(
        self,
        access_token: str,
        extra_params: Dict[str, Any],
        http: requests.Session,
        timeout: float = 10.0,
    ) -> Union[OAuth2Profile, AuthError]:
        r = http.get(
            self.userinfo_url,
            headers={"Authorization": f"Bearer {access_token}"},
            timeout=timeout,
        )
        if not r.ok:
            logger.info("google: userinfo returned status=%s", r.status_code)
            return AuthError("Failed to fetch user profile")
        try:
            raw = r.json()
        except ValueError:
            return AuthError("Invalid user profile response")
        if not isinstance(raw, dict):
            return AuthError("Invalid user profile response")
        return profile_from_userinfo(raw)


def profile_from_userinfo(raw: Dict[str, Any]) -> OAuth2Profile:
    email = raw.get("email")
    picture = raw.get("picture")
    return OAuth2Profile(
        provider="google",
        id=str(raw["sub"]) if raw.get("sub") else None,
        display_name=raw.get("name"),
        name=ProfileName(
            family_name=raw.get("family_name"),
            given_name=raw.get("given_name"),
        ),
        emails=[ProfileValue(value=str(email))] if email else [],
        photos=[ProfileValue(value=str(picture))] if picture else [],
        raw=raw,
    )
