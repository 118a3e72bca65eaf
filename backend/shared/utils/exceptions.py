"""
Centralized HTTP exceptions for consistent error handling.

Every exception logs itself on creation with structured context, so a failed
trace leaves a record even when the caller swallows the error.

Usage:
    from shared.utils.exceptions import NotFoundError, ValidationError

    raise NotFoundError("Batch", "RM-FLOUR-001", tenant_id=tenant_id)
    raise ValidationError("max_depth must be positive", field="max_depth", value=0)
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """
    Base exception with automatic logging.

    All custom exceptions should inherit from this class
    to ensure consistent logging and response format.
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity not found error (404).

    Usage:
        raise NotFoundError("Batch", "DOUGH-550")
        raise NotFoundError("Batch", code, tenant_id=tenant_id)
    """

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        if entity_id is not None:
            detail = f"{entity} '{entity_id}' not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


class BatchNotFoundError(NotFoundError):
    """Batch code does not resolve within the tenant."""

    def __init__(self, code: str, **log_context: Any):
        super().__init__("Batch", code, **log_context)


# =============================================================================
# 400 Bad Request Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Usage:
        raise ValidationError("batch_code is required")
        raise ValidationError("Invalid depth", field="max_depth", value=-1)
    """

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            **log_context,
        )


class UnitMismatchError(ValidationError):
    """
    Quantities in units with no known conversion met at one point.

    Raised by the unit table; the mass balance calculator records it per node
    instead of letting it fail the whole trace.
    """

    def __init__(
        self,
        units: list[str],
        batch_id: int | None = None,
        reason: str | None = None,
        **log_context: Any,
    ):
        self.units = list(units)
        self.batch_id = batch_id
        self.reason = reason or "no known conversion"
        units_str = ", ".join(self.units)
        if batch_id is not None:
            detail = f"Unit mismatch at batch {batch_id}: {units_str} ({self.reason})"
        else:
            detail = f"Unit mismatch: {units_str} ({self.reason})"
        super().__init__(detail, units=self.units, batch_id=batch_id, **log_context)


# =============================================================================
# 5xx Errors
# =============================================================================


class InternalError(AppException):
    """
    Internal server error (500).

    Usage:
        raise InternalError("Edge store returned an inconsistent row", relation_id=12)
    """

    def __init__(self, detail: str = "Internal server error", **log_context: Any):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            **log_context,
        )


class TraceDeadlineExceededError(AppException):
    """
    The request-scoped deadline expired mid-traversal (504).
    Partial levels already fetched are discarded; nothing was written.
    """

    def __init__(self, timeout_seconds: float, levels_completed: int, **log_context: Any):
        self.timeout_seconds = timeout_seconds
        self.levels_completed = levels_completed
        super().__init__(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail=(
                f"Trace exceeded its {timeout_seconds:g}s deadline after "
                f"{levels_completed} level(s); partial result discarded"
            ),
            log_level="error",
            timeout_seconds=timeout_seconds,
            levels_completed=levels_completed,
            **log_context,
        )
