"""
Domain errors and their HTTP mapping.

Services raise these where callers need to tell the failure apart from a
plain HTTPException (e.g. authorization checks exercised outside a request).
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = structlog.get_logger()


class NotAuthorizedError(Exception):
    """The acting user may not perform this action on this record."""

    def __init__(self, message: str = "Not authorized", *, action: str | None = None):
        super().__init__(message)
        self.message = message
        self.action = action


class RateLimitExceededError(Exception):
    """The acting user hit the limit for a rate-limited action."""

    def __init__(self, action: str, retry_after: int):
        super().__init__(f"Rate limit reached for {action}")
        self.action = action
        self.retry_after = retry_after


def error_body(code: str, message: str, status: int) -> dict:
    return {"error": {"code": code, "message": message, "status": status}}


async def not_authorized_handler(request: Request, exc: NotAuthorizedError) -> JSONResponse:
    log.warning("auth.not_authorized", path=request.url.path, action=exc.action)
    return JSONResponse(
        status_code=403,
        content=error_body("NOT_AUTHORIZED", exc.message, 403),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceededError) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=error_body(
            "RATE_LIMIT_EXCEEDED", "Rate limit reached. Try again later.", 429
        ),
        headers={"Retry-After": str(exc.retry_after)},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(NotAuthorizedError, not_authorized_handler)
    app.add_exception_handler(RateLimitExceededError, rate_limit_handler)
