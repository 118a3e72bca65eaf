"""
REST API main application.
Entry point for the FastAPI REST server.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rest_api.models import Base
from rest_api.routers.public import health_router
from rest_api.routers.traceability import router as traceability_router
from shared.config.logging import rest_api_logger as logger
from shared.config.logging import setup_logging
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.db import engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    # Initialize logging
    setup_logging()

    # Refuse to start in production with an unsafe configuration
    config_errors = settings.validate_production_settings()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error: %s", error)
        if settings.environment == "production":
            raise RuntimeError(
                f"Production configuration errors: {'; '.join(config_errors)}. "
                "Server will not start with an invalid configuration."
            )
        else:
            logger.warning("Running with invalid settings (acceptable for development only)")

    # Startup
    logger.info("Starting REST API", port=settings.rest_api_port, env=settings.environment)

    if settings.auto_create_tables:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")

    yield

    # Shutdown
    logger.info("Shutting down REST API")
    engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="Batch Traceability API",
    description="Forward and backward batch lineage with mass balance",
    version="0.1.0",
    lifespan=lifespan,
)

# Correlation IDs for log stitching across services
app.add_middleware(CorrelationIdMiddleware)

# CORS middleware for the recall dashboard
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(health_router)
app.include_router(traceability_router)


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=True,
    )
