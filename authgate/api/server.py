"""
Sign-in HTTP server.

Exposes the Google authorization-code flow, the session it produces, and logout.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from authgate.auth.authenticator import Authenticator
from authgate.auth.config import load_auth_config
from authgate.auth.deps import authenticate_request, get_authenticator
from authgate.auth.util import sanitize_next_path

logger = logging.getLogger(__name__)

app = FastAPI(title="authgate")


def _authenticator() -> Authenticator:
    authenticator = get_authenticator()
    if authenticator is None:
        raise HTTPException(status_code=403, detail="Google sign-in is not enabled")
    return authenticator


def _no_store(response: Response) -> Response:
    response.headers["Cache-Control"] = "no-store"
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
    start_time = time.time()
    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.exception("%s %s - ERROR after %.3fs: %s", request.method, request.url.path, process_time, str(e))
        raise
    process_time = time.time() - start_time
    logger.debug("%s %s - %d (%.3fs)", request.method, request.url.path, response.status_code, process_time)
    return response


@app.get("/healthz")
def healthz() -> Dict[str, Any]:
    return {"ok": True}


@app.get("/api/auth/mode")
def auth_mode() -> Dict[str, Any]:
    """
    Expose which sign-in providers are configured so the UI can render them.
    This endpoint is intentionally public; it returns no secrets.
    """
    cfg = load_auth_config()
    return {"ok": True, "googleEnabled": cfg.google_enabled}


@app.get("/api/auth/login/google")
def auth_login_google(request: Request) -> Response:
    """Start Google sign-in (or succeed straight away if already signed in)."""
    return _no_store(_authenticator().authenticate(request))


@app.get("/api/auth/callback/google")
def auth_callback_google(request: Request) -> Response:
    """Handle the provider redirect back after the user signs in."""
    return _no_store(_authenticator().authenticate(request))


@app.get("/api/auth/status")
def auth_status(request: Request) -> Response:
    return _no_store(_authenticator().is_authenticated(request))


@app.get("/api/auth/me")
def auth_me(request: Request) -> Dict[str, Any]:
    user = authenticate_request(request)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return {
        "ok": True,
        "user": {
            "provider": user.provider,
            "id": user.id,
            "email": user.email,
            "name": user.name,
            "picture": user.picture,
        },
    }


@app.get("/api/auth/error")
def auth_error(request: Request) -> JSONResponse:
    """Report (once) why the last sign-in failed."""
    conf = _authenticator().strategy.conf
    data = conf.error.get(request)
    message = data.get("message") if isinstance(data, dict) else None
    resp = JSONResponse(content={"ok": False, "error": message})
    conf.error.clear(resp)
    _no_store(resp)
    return resp


@app.api_route("/api/auth/logout", methods=["GET", "POST"])
def auth_logout(next_path: str = Query("/", alias="next")) -> Response:
    return _no_store(_authenticator().logout(sanitize_next_path(next_path)))


def run(host: str = "0.0.0.0", port: int = 8080) -> None:
    import uvicorn

    # Configure logging for the application
    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    # Map Python logging levels to uvicorn log levels
    uvicorn_log_level = (
        log_level.lower() if log_level.lower() in ["critical", "error", "warning", "info", "debug", "trace"] else "info"
    )

    cfg = load_auth_config()
    if not cfg.google_enabled:
        logger.warning("Google sign-in is not configured; auth endpoints will return 403")
    logger.info("Starting auth server on %s:%d (log_level=%s)", host, port, log_level)
    uvicorn.run(app, host=host, port=port, log_level=uvicorn_log_level)
