"""
Security middleware for the listings site.

Browser sessions authenticate with the cl_session cookie set by
/auth/login and /auth/register. Those responses also set the readable
cl_csrf cookie, which the form script in the page layout echoes back in
the X-CSRF-Token header on every JSON submit. API clients send a bearer
token instead and never ride on cookies.
"""

from __future__ import annotations

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.core.auth import CSRF_COOKIE, CSRF_HEADER, SESSION_COOKIE
from app.core.errors import error_body

log = structlog.get_logger()

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

# These issue a fresh CSRF cookie, so a stale session cookie must not block them
CSRF_EXEMPT_PATHS = {"/auth/login", "/auth/register"}

# ---------------------------------------------------------------------------
# Security Headers
# ---------------------------------------------------------------------------

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# Pages inline their form script and render listing bodies as sanitized HTML
PAGE_SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; "
        "form-action 'self'; "
        "frame-ancestors 'none';"
    ),
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers, plus the page policy on HTML responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        headers = dict(SECURITY_HEADERS)
        if response.headers.get("content-type", "").startswith("text/html"):
            headers.update(PAGE_SECURITY_HEADERS)
        for header, value in headers.items():
            response.headers.setdefault(header, value)
        return response


# ---------------------------------------------------------------------------
# CSRF Protection (Double-Submit Cookie)
# ---------------------------------------------------------------------------

class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie check for cookie-authenticated writes.

    Enforced on unsafe methods that carry the session cookie and no
    Authorization header, outside the endpoints that start a session.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method in SAFE_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
            return await call_next(request)

        if request.headers.get("Authorization"):
            return await call_next(request)

        if SESSION_COOKIE not in request.cookies:
            return await call_next(request)

        cookie_token = request.cookies.get(CSRF_COOKIE)
        header_token = request.headers.get(CSRF_HEADER)

        if not cookie_token or not header_token or cookie_token != header_token:
            log.warning(
                "auth.csrf_rejected",
                path=request.url.path,
                method=request.method,
                has_header=bool(header_token),
            )
            return JSONResponse(
                status_code=403,
                content=error_body(
                    "CSRF_VALIDATION_FAILED", "Invalid or missing CSRF token.", 403
                ),
            )

        return await call_next(request)
