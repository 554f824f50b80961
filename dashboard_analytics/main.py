"""
FastAPI Application

Main entry point for the E-Commerce Dashboard Analytics API.
"""

from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
import structlog

from dashboard_analytics.analytics.exceptions import AnalyticsError
from dashboard_analytics.analytics.service import init_analytics_service
from dashboard_analytics.config import get_settings
from dashboard_analytics.config.logging import configure_logging
from dashboard_analytics.database.connection import init_database, close_database
from dashboard_analytics.serving.cache import (
    RedisSnapshotStore,
    SnapshotStore,
    close_redis,
    init_redis,
)
from dashboard_analytics.serving.api.middleware import RequestLoggingMiddleware
from dashboard_analytics.serving.api.routes import dashboard_router, health_router

settings = get_settings()
logger = structlog.get_logger(__name__)


async def _init_snapshot_store() -> Optional[SnapshotStore]:
    """Redis store when configured and reachable, otherwise the in-process default."""
    if settings.analytics.cache_backend != "redis":
        return None

    try:
        await init_redis()
    except Exception as e:
        logger.warning("Redis init failed, caching snapshots in process memory", error=str(e))
        return None
    return RedisSnapshotStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    configure_logging()

    logger.info("Starting E-Commerce Dashboard Analytics API", environment=settings.app_env)

    # Requests answer 503 until the database is reachable
    try:
        await init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.warning(f"Database init failed: {e}")

    init_analytics_service(store=await _init_snapshot_store())

    yield

    logger.info("Shutting down...")
    await close_database()
    await close_redis()


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    """Render an AnalyticsError as a single failure response."""
    logger.error(
        "Dashboard analytics request failed",
        path=request.url.path,
        code=exc.error_code,
        error=exc.message,
        **exc.details,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "message": HTTPStatus(exc.status_code).phrase,
            "error": exc.message,
            "code": exc.error_code,
        },
    )


def create_app() -> FastAPI:
    """Build the FastAPI application with middleware, routes and error handlers."""
    app = FastAPI(
        title="E-Commerce Dashboard Analytics API",
        description="Aggregated, cached analytics for the e-commerce dashboard",
        version=settings.version,
        debug=settings.debug,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(AnalyticsError, analytics_error_handler)

    app.include_router(health_router, prefix="/api", tags=["Health"])
    app.include_router(dashboard_router, prefix="/api/dashboard", tags=["Dashboard"])

    @app.get("/", response_class=PlainTextResponse)
    async def root() -> str:
        """Liveness banner."""
        return "E-commerce Analytics API is running!"

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
