"""Main FastAPI application for Viberank."""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.errors import register_exception_handlers
from .api.routes import router as api_router
from .config import Settings, get_settings
from .database.connection import db_manager
from .database.migrations import create_tables, upgrade_backfill_submission_source
from .exceptions import StorageError
from .middleware.rate_limit import RateLimiter, RateLimitMiddleware, SubmissionRateLimits
from .observability.logging import clear_log_context, configure_logging, set_log_context
from .storage.base import StorageBackend
from .storage.factory import StorageFactory, get_storage

logger = logging.getLogger(__name__)


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        configure_logging(
            environment=settings.environment,
            log_level="DEBUG" if settings.debug else "INFO",
        )

        storage = StorageFactory.get_instance(settings.storage_backend)
        if settings.storage_backend == "sql":
            db_manager.initialize(settings.database_url)
            await create_tables()
            await upgrade_backfill_submission_source()
            logger.info("Database: Connected")

        logger.info("%s v%s started", settings.app_name, settings.app_version)
        logger.info("Environment: %s", settings.environment)
        logger.info("Storage backend: %s", settings.storage_backend)

        yield

        logger.info("Shutting down %s...", settings.app_name)
        await storage.close()
        StorageFactory.reset()
        logger.info("%s shutdown complete", settings.app_name)

    return lifespan


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Claude Code usage leaderboard",
        lifespan=_lifespan(settings),
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.submission_limits = SubmissionRateLimits(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    rate_limiter = RateLimiter(
        rpm=settings.api_rate_limit_rpm,
        burst=settings.api_rate_limit_burst,
    )
    app.add_middleware(RateLimitMiddleware, rate_limiter=rate_limiter)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:12]
        set_log_context(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            clear_log_context()
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "endpoints": {
                "health": "/health",
                "submit": "POST /api/submit",
                "leaderboard": "GET /api/leaderboard",
                "profile": "GET /api/profile/{username}",
                "stats": "GET /api/stats",
            },
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/health/live")
    async def health_live():
        """Liveness probe: process is running."""
        return {"status": "alive"}

    @app.get("/health/ready")
    async def health_ready(storage: StorageBackend = Depends(get_storage)):
        """Readiness probe: storage reachable."""
        try:
            await storage.ping()
        except StorageError as e:
            return JSONResponse(
                status_code=503,
                content={"status": "not_ready", "checks": {"storage": f"error: {e.message}"}},
            )
        return {"status": "ready", "checks": {"storage": "ok"}}

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "viberank.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
    )
