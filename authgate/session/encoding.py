"""
Cookie value codec.

Values are serialized as compact JSON, UTF-8 encoded and carried as URL-safe
base64 (padding stripped) so they survive cookie transport unquoted. With secrets
configured the encoded form is signed with the first secret; decoding tries every
secret in order so retired-but-listed secrets keep verifying during rotation.
A `max_age` makes the signature carry its signing time and expire after that many
seconds.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from authgate.auth.util import b64url, b64url_decode
from authgate.session.signing import sign, unsign

logger = logging.getLogger(__name__)


def encode_cookie_value(value: Any, secrets: Sequence[str], *, max_age: Optional[int] = None) -> str:
    encoded = _encode_data(value)
    if secrets:
        encoded = sign(encoded, secrets[0], timed=max_age is not None)
    return encoded


def decode_cookie_value(value: str, secrets: Sequence[str], *, max_age: Optional[int] = None) -> Optional[Any]:
    """
    Decode a cookie value produced by `encode_cookie_value`.

    Returns None when no secret verifies the signature, the signature is older than
    `max_age`, or the payload is malformed; callers treat that exactly like a
    missing cookie. `max_age` only applies to signed values.
    """
    if secrets:
        for secret in secrets:
            unsigned = unsign(value, secret, max_age=max_age)
            if unsigned is not None:
                return _decode_data(unsigned)
        logger.debug("Cookie signature did not match any configured secret (or expired)")
        return None

    return _decode_data(value)


def _encode_data(value: Any) -> str:
    raw = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return b64url(raw.encode("utf-8"))


def _decode_data(value: str) -> Optional[Any]:
    try:
        return json.loads(b64url_decode(value).decode("utf-8"))
    except (ValueError, RecursionError) as e:
        # binascii.Error, UnicodeError and JSONDecodeError are all ValueErrors;
        # deeply nested arrays/objects exhaust the decoder's recursion limit.
        logger.debug("Discarding undecodable cookie value: %s", type(e).__name__)
        return None
