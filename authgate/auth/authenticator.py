from __future__ import annotations

from typing import Any, Optional

from fastapi.responses import RedirectResponse
from starlette.requests import Request
from starlette.responses import Response

from authgate.auth.strategy import Strategy, redirect


class Authenticator:
    """Request-level entry points over one strategy. Holds no state of its own."""

    def __init__(self, strategy: Strategy) -> None:
        self.strategy = strategy

    @property
    def name(self) -> str:
        return self.strategy.name

    def authenticate(self, request: Request) -> Response:
        return self.strategy.authenticate(request)

    def get_user(self, request: Request) -> Optional[Any]:
        return self.strategy.conf.session.get(request)

    def is_authenticated(self, request: Request) -> RedirectResponse:
        conf = self.strategy.conf
        user = self.get_user(request)
        return redirect(conf.success_url if user is not None else conf.failure_url)

    def logout(self, redirect_url: str) -> RedirectResponse:
        response = redirect(redirect_url)
        self.strategy.conf.session.clear(response)
        return response
