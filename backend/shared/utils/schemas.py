"""
Shared Pydantic schemas used across the application.
"""

from typing import Literal

from pydantic import BaseModel


# =============================================================================
# Common Types
# =============================================================================

BatchKindLiteral = Literal["raw_material_lot", "production_batch", "finished_good", "shipment"]
BatchStatusLiteral = Literal["active", "consumed", "disposed", "recalled"]
DirectionLiteral = Literal["forward", "backward"]
EndpointKindLiteral = Literal["supplier", "customer"]


# =============================================================================
# Common Responses
# =============================================================================


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None


class HealthResponse(BaseModel):
    """Basic liveness response."""

    status: Literal["healthy", "degraded"]
    service: str
    environment: str
    database: str | None = None
