"""
Classifieds Hub API Server

Entry point for the FastAPI application.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url

from app.core.config import get_settings
from app.core.database import create_tables, database_available
from app.core.errors import register_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware
from app.core.redis import close_redis, redis_available
from app.api.v1 import router as api_v1_router
from app.api.v1.auth import router as auth_router
from app.pages.routes import router as pages_router

settings = get_settings()
log = structlog.get_logger()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(settings.log_level, settings.log_format)

    app = FastAPI(
        title="Classifieds Hub",
        description="Classified listings and sponsorships paid with credits.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    register_exception_handlers(app)

    # Middleware, outermost first
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(CSRFMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-CSRF-Token"],
    )

    app.include_router(auth_router, prefix="/auth", tags=["Authentication"])
    app.include_router(api_v1_router, prefix="/api/v1")
    app.include_router(pages_router, include_in_schema=False)

    @app.get("/health", tags=["System"])
    async def health_check():
        """Health check endpoint for liveness probes."""
        return {"status": "ok"}

    @app.get("/ready", tags=["System"])
    async def readiness_check():
        """Readiness check: database always, Redis only when it backs rate limiting."""
        checks = {"database": await database_available()}
        if settings.rate_limit_backend == "redis":
            checks["redis"] = await redis_available()
        ready = all(checks.values())
        return JSONResponse(
            status_code=200 if ready else 503,
            content={"status": "ready" if ready else "unavailable", "checks": checks},
        )

    @app.on_event("startup")
    async def on_startup():
        log.info("app.starting", rate_limit_backend=settings.rate_limit_backend)
        if settings.debug or make_url(settings.database_url).get_backend_name() == "sqlite":
            await create_tables()

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("app.stopping")
        await close_redis()

    return app


app = create_app()
