"""
Health check endpoints for the REST API.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.utils.schemas import HealthResponse

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """
    Basic health check endpoint.
    Returns service status without checking dependencies.
    """
    return HealthResponse(
        status="healthy",
        service="traceability-api",
        environment=settings.environment,
    )


@router.get("/health/detailed", response_model=HealthResponse)
def detailed_health_check(db: Session = Depends(get_db)):
    """
    Health check that also verifies database connectivity.
    Returns 503 Service Unavailable if the database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", error=str(e))
        body = HealthResponse(
            status="degraded",
            service="traceability-api",
            environment=settings.environment,
            database="unreachable",
        )
        return JSONResponse(content=body.model_dump(), status_code=503)

    return HealthResponse(
        status="healthy",
        service="traceability-api",
        environment=settings.environment,
        database="ok",
    )
