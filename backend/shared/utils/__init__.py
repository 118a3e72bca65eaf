"""
Utilities module: Exceptions and shared schemas.
"""

from shared.utils.exceptions import (
    AppException,
    NotFoundError,
    BatchNotFoundError,
    ValidationError,
    UnitMismatchError,
    TraceDeadlineExceededError,
    InternalError,
)
from shared.utils.schemas import ErrorResponse, HealthResponse

__all__ = [
    # exceptions
    "AppException",
    "NotFoundError",
    "BatchNotFoundError",
    "ValidationError",
    "UnitMismatchError",
    "TraceDeadlineExceededError",
    "InternalError",
    # schemas
    "ErrorResponse",
    "HealthResponse",
]
