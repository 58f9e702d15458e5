from __future__ import annotations

import base64
import uuid


def b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(value: str) -> bytes:
    # Raises binascii.Error (a ValueError) on malformed input.
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def random_state() -> str:
    """CSRF state for one authorization attempt."""
    return str(uuid.uuid4())


def sanitize_next_path(next_path: str | None) -> str:
    """
    Prevent open-redirects: allow only relative paths like `/inbox`.
    """
    p = (next_path or "").strip()
    if not p:
        return "/"
    if not p.startswith("/"):
        return "/"
    # Disallow scheme-relative: `//evil.com`
    if p.startswith("//"):
        return "/"
    p = p.replace("\r", "").replace("\n", "")
    return p or "/"
