"""
Authentication for the web API.

Design goals:
- Provider-agnostic OAuth2 authorization-code flow (Google now; others plug in as providers).
- No server-side flow state: the CSRF state rides in a flash cookie.
- Cookie-based session (HttpOnly, signed) for same-origin UI.
"""
