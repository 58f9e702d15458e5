from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class AuthUser:
    """Authenticated user stored in the session cookie."""

    provider: str  # google|oauth2|...
    id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    picture: Optional[str] = None


@dataclass(frozen=True)
class AuthError:
    """A failed step of the sign-in flow. Returned, not raised."""

    message: str


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    refresh_token: Optional[str] = None
    extra_params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ProfileName:
    family_name: Optional[str] = None
    given_name: Optional[str] = None
    middle_name: Optional[str] = None


@dataclass(frozen=True)
class ProfileValue:
    value: str
    type: Optional[str] = None


@dataclass(frozen=True)
class OAuth2Profile:
    """Provider-normalized identity."""

    provider: str
    id: Optional[str] = None
    display_name: Optional[str] = None
    name: Optional[ProfileName] = None
    emails: List[ProfileValue] = field(default_factory=list)
    photos: List[ProfileValue] = field(default_factory=list)
    raw: Dict[str, Any] = field(default_factory=dict)  # provider document as received

    @property
    def email(self) -> Optional[str]:
        return self.emails[0].value if self.emails else None

    @property
    def photo(self) -> Optional[str]:
        return self.photos[0].value if self.photos else None


@dataclass(frozen=True)
class VerifyParams:
    """What the application's verify callback receives after a successful exchange."""

    access_token: str
    refresh_token: Optional[str]
    extra_params: Dict[str, Any]
    profile: OAuth2Profile
