"""
Signed cookie storage.

`encoding` turns JSON-serializable values into cookie-safe strings (optionally
signed against a rotating list of secrets); `container` binds that codec to a
named cookie with flash support.
"""

from authgate.session.container import CookieAttributes, CookieContainer
from authgate.session.encoding import decode_cookie_value, encode_cookie_value

__all__ = [
    "CookieAttributes",
    "CookieContainer",
    "decode_cookie_value",
    "encode_cookie_value",
]
