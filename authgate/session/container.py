from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Generic, Optional, Sequence, Tuple, TypeVar

from starlette.requests import HTTPConnection
from starlette.responses import Response

from authgate.session.encoding import decode_cookie_value, encode_cookie_value

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CookieAttributes:
    """Set-Cookie attributes shared by every write of a container."""

    path: str = "/"
    domain: Optional[str] = None
    max_age: Optional[int] = None
    secure: bool = False
    httponly: bool = True
    samesite: Optional[str] = "lax"

    def merged(self, **overrides: Any) -> "CookieAttributes":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def set_cookie_kwargs(self) -> Dict[str, Any]:
        return {
            "max_age": self.max_age,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.httponly,
            "samesite": self.samesite,
        }


class CookieContainer(Generic[T]):
    """
    A named cookie holding one encoded (and, with secrets, signed) value.

    Reads come from the request's cookies; writes append Set-Cookie headers to a
    response. `flash` additionally sets a `__flash_<name>__` marker that the next
    `get` expires. Only the marker is expired: the value cookie stays until its own
    max-age runs out or the caller clears it.

    With `max_age` (and secrets) the signature carries its signing time and the
    value is rejected server-side once older than `max_age` seconds, whatever the
    browser does with the cookie.
    """

    def __init__(
        self,
        name: str,
        secrets: Sequence[str] = (),
        attributes: Optional[CookieAttributes] = None,
        max_age: Optional[int] = None,
    ) -> None:
        if not name:
            raise ValueError("Cookie name is required")
        self._name = name
        self._secrets: Tuple[str, ...] = tuple(secrets)
        self._attributes = attributes or CookieAttributes()
        self._max_age = max_age

    @property
    def name(self) -> str:
        return self._name

    @property
    def flash_name(self) -> str:
        return f"__flash_{self._name}__"

    @property
    def secrets(self) -> Tuple[str, ...]:
        return self._secrets

    @property
    def max_age(self) -> Optional[int]:
        return self._max_age

    @property
    def attributes(self) -> CookieAttributes:
        return self._attributes

    def get(self, request: HTTPConnection, response: Optional[Response] = None) -> Optional[T]:
        """
        Return the decoded value, or None if the cookie is missing or invalid.

        If the flash marker is present and a response is given, the marker's deletion
        is written to that response.
        """
        cookies = request.cookies
        output: Optional[T] = None
        if self._name in cookies:
            output = decode_cookie_value(cookies[self._name], self._secrets, max_age=self._max_age)
            if output is None:
                logger.debug("Ignoring invalid %s cookie", self._name)
        if self.flash_name in cookies and response is not None:
            response.delete_cookie(
                self.flash_name,
                path=self._attributes.path,
                domain=self._attributes.domain,
                secure=self._attributes.secure,
                httponly=self._attributes.httponly,
                samesite=self._attributes.samesite,
            )
        return output

    def is_flashed(self, request: HTTPConnection) -> bool:
        return self.flash_name in request.cookies

    def set(self, value: T, response: Response, **attributes: Any) -> None:
        attrs = self._attributes.merged(**attributes)
        response.set_cookie(
            key=self._name,
            value=encode_cookie_value(value, self._secrets, max_age=self._max_age),
            **attrs.set_cookie_kwargs(),
        )

    def flash(self, value: T, response: Response, **attributes: Any) -> None:
        """Set the value and mark it as read-once."""
        self.set(value, response, **attributes)
        attrs = self._attributes.merged(**attributes)
        response.set_cookie(key=self.flash_name, value="true", **attrs.set_cookie_kwargs())

    def clear(self, response: Response, *, path: Optional[str] = None, domain: Optional[str] = None) -> None:
        attrs = self._attributes.merged(path=path, domain=domain)
        response.delete_cookie(
            self._name,
            path=attrs.path,
            domain=attrs.domain,
            secure=attrs.secure,
            httponly=attrs.httponly,
            samesite=attrs.samesite,
        )
