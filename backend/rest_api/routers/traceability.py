"""
Traceability router.
Forward and backward batch traces for recall exercises and compliance review.
CLEAN-ARCH: Thin router delegating to TraceService.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from rest_api.routers._common import current_tenant_id
from rest_api.services.traceability import TraceService
from shared.infrastructure.db import get_db
from shared.utils.schemas import ErrorResponse
from shared.utils.trace_schemas import TraceResultOutput

router = APIRouter(prefix="/api/traceability", tags=["traceability"])


def _get_service(db: Session) -> TraceService:
    return TraceService.for_session(db)


@router.get(
    "/{direction}",
    response_model=TraceResultOutput,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
def trace_batch(
    direction: str,
    batch_code: str = Query(default="", description="Root batch code (case-insensitive)"),
    max_depth: int | None = Query(default=None, description="Maximum hops from the root"),
    max_nodes: int | None = Query(default=None, description="Maximum batches in the trace"),
    db: Session = Depends(get_db),
    tenant_id: int = Depends(current_tenant_id),
) -> TraceResultOutput:
    """
    Trace a batch forward (where it went) or backward (what went into it).

    A truncated result means a depth or node bound cut the trace short; the
    caller must not treat it as complete.
    """
    service = _get_service(db)
    result = service.trace(
        tenant_id=tenant_id,
        batch_code=batch_code,
        direction=direction,
        max_depth=max_depth,
        max_nodes=max_nodes,
    )
    return TraceResultOutput.from_result(result)
