"""
Main FastAPI application for the charity indexer.
Exposes the sync trigger that a scheduler (cron, cloud scheduler) calls.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

import structlog

from charity_indexer.core import database
from charity_indexer.core.config import settings
from charity_indexer.core.database import DatabaseManager, init_database, close_database
from charity_indexer.core.logging import setup_logging
from charity_indexer.api.routes import indexer
from charity_indexer.api.schemas.common import APIResponse, HealthCheckResponse
from charity_indexer.services.aptos_client import close_aptos_client


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup; release the client and engine on shutdown."""
    logger.info("Starting charity indexer API server")

    if database.async_session_maker is None:
        await init_database()

    yield

    logger.info("Shutting down charity indexer API server")
    try:
        await close_aptos_client()
        await close_database()
    except Exception as e:
        logger.error("Indexer shutdown incomplete", error=str(e))


def create_app() -> FastAPI:
    """Build the trigger API."""
    setup_logging()

    app = FastAPI(
        title="Charity Indexer API",
        description="Mirrors charity contract events from Aptos into the database.",
        version=settings.app_version,
        lifespan=lifespan,
    )

    @app.get(
        "/health",
        response_model=HealthCheckResponse,
        tags=["System"],
        summary="Health Check",
        description="Check API server health and database connectivity"
    )
    async def health_check():
        """Report database reachability."""
        if await DatabaseManager.health_check():
            return HealthCheckResponse(version=settings.app_version)

        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "unhealthy",
                "services": {
                    "database": "unhealthy",
                    "api": "healthy"
                },
            }
        )

    @app.get(
        "/",
        response_model=APIResponse,
        tags=["System"],
        summary="API Information",
    )
    async def root():
        """Service name, version and tracked event kinds."""
        return APIResponse(
            message=f"{settings.app_name} v{settings.app_version}",
            data={
                "version": settings.app_version,
                "environment": settings.environment,
                "processor": settings.indexer_processor_name,
                "tracked_event_kinds": settings.tracked_event_kinds,
            }
        )

    app.include_router(
        indexer.router,
        prefix=f"{settings.api_v1_prefix}/indexer",
        tags=["Indexer"]
    )

    logger.info("Trigger API ready", prefix=settings.api_v1_prefix)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "charity_indexer.api.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
