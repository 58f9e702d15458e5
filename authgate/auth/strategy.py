from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Protocol, TypeVar, Union

from fastapi.responses import RedirectResponse
from starlette.requests import Request
from starlette.responses import Response

from authgate.auth.models import AuthError, VerifyParams
from authgate.session.container import CookieContainer

logger = logging.getLogger(__name__)

User = TypeVar("User")

VerifyCallback = Callable[[VerifyParams], Union[User, AuthError]]


@dataclass(frozen=True)
class AuthenticateConf:
    session: CookieContainer[Any]
    error: CookieContainer[Dict[str, str]]
    strategy_type: CookieContainer[Dict[str, str]]
    # Where to redirect after a successful / failed authentication.
    # Relative URLs are resolved by the client against the current page.
    success_url: str
    failure_url: str


class Strategy(Protocol):
    @property
    def name(self) -> str: ...

    @property
    def conf(self) -> AuthenticateConf: ...

    def authenticate(self, request: Request) -> Response: ...


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=302)


def success_response(conf: AuthenticateConf, user: Any, name: str) -> RedirectResponse:
    """Redirect to the success URL with the session and strategy-type cookies set."""
    response = redirect(conf.success_url)
    conf.session.set(user, response)
    conf.strategy_type.set({"name": name}, response)
    return response


def failure_response(conf: AuthenticateConf, message: str) -> RedirectResponse:
    """Redirect to the failure URL carrying the error message; the session is cleared."""
    logger.info("Authentication failed: %s", message)
    response = redirect(conf.failure_url)
    conf.error.set({"message": message}, response)
    conf.session.clear(response)
    return response
