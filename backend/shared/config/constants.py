"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import BatchKind, BatchStatus, TraceDirection

    if batch.status == BatchStatus.RECALLED:
        ...

    if direction is TraceDirection.FORWARD:
        ...
"""

from enum import Enum
from typing import Final


# =============================================================================
# Batch Constants
# =============================================================================


class BatchKind:
    """Kind of tracked unit of material."""

    RAW_MATERIAL_LOT: Final[str] = "raw_material_lot"
    PRODUCTION_BATCH: Final[str] = "production_batch"
    FINISHED_GOOD: Final[str] = "finished_good"
    SHIPMENT: Final[str] = "shipment"

    ALL: Final[list[str]] = [RAW_MATERIAL_LOT, PRODUCTION_BATCH, FINISHED_GOOD, SHIPMENT]


class BatchStatus:
    """Batch lifecycle status constants."""

    ACTIVE: Final[str] = "active"
    CONSUMED: Final[str] = "consumed"
    DISPOSED: Final[str] = "disposed"
    RECALLED: Final[str] = "recalled"

    ALL: Final[list[str]] = [ACTIVE, CONSUMED, DISPOSED, RECALLED]


# Status only moves forward: active -> consumed / disposed / recalled
BATCH_TRANSITIONS: Final[dict[str, list[str]]] = {
    BatchStatus.ACTIVE: [BatchStatus.CONSUMED, BatchStatus.DISPOSED, BatchStatus.RECALLED],
    BatchStatus.CONSUMED: [],
    BatchStatus.DISPOSED: [],
    BatchStatus.RECALLED: [],
}


# =============================================================================
# Traceability
# =============================================================================


class TraceDirection(str, Enum):
    """
    Direction of a lineage trace.

    BACKWARD follows relations output -> input (ingredient ancestry).
    FORWARD follows relations input -> output (distribution descendancy).
    """

    FORWARD = "forward"
    BACKWARD = "backward"

    @classmethod
    def parse(cls, value: "str | TraceDirection") -> "TraceDirection | None":
        """Case-insensitive lookup. Returns None for unknown values."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class EndpointKind:
    """Parties at the edge of a trace: where material came from or went to."""

    SUPPLIER: Final[str] = "supplier"
    CUSTOMER: Final[str] = "customer"

    ALL: Final[list[str]] = [SUPPLIER, CUSTOMER]


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # String lengths
    MAX_BATCH_CODE_LENGTH: Final[int] = 100
    MAX_UNIT_LENGTH: Final[int] = 20
    MAX_PARTY_NAME_LENGTH: Final[int] = 255
    MAX_REFERENCE_LENGTH: Final[int] = 64

    # Quantity storage precision: Numeric(18, 6)
    QUANTITY_PRECISION: Final[int] = 18
    QUANTITY_SCALE: Final[int] = 6
