from __future__ import annotations

import hashlib
from typing import Optional

from itsdangerous import BadSignature, Signer, TimestampSigner

SIGNING_SALT = "authgate-cookie-v1"


def _signer(secret: str) -> Signer:
    return Signer(secret_key=secret, salt=SIGNING_SALT, digest_method=hashlib.sha256)


def _timestamp_signer(secret: str) -> TimestampSigner:
    return TimestampSigner(secret_key=secret, salt=SIGNING_SALT, digest_method=hashlib.sha256)


def sign(value: str, secret: str, *, timed: bool = False) -> str:
    """
    Return `value.signature` signed with `secret`.

    With `timed`, the signing time is embedded (`value.timestamp.signature`) so
    `unsign` can enforce a max age.
    """
    signer = _timestamp_signer(secret) if timed else _signer(secret)
    return signer.sign(value).decode("utf-8")


def unsign(value: str, secret: str, max_age: Optional[int] = None) -> Optional[str]:
    """
    Return the payload of a signed value, or None if `secret` did not sign it.

    With `max_age`, the value must have been signed with `timed=True` no more than
    `max_age` seconds ago.
    """
    try:
        if max_age is None:
            return _signer(secret).unsign(value).decode("utf-8")
        return _timestamp_signer(secret).unsign(value, max_age=max_age).decode("utf-8")
    except (BadSignature, UnicodeDecodeError):
        # SignatureExpired and BadTimeSignature are BadSignatures.
        return None
