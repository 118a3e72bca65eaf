"""
Batch traceability engine.

Read-only lineage reconstruction (forward and backward) with per-node mass
balance and the suppliers or customers at the edge of a trace. Stateless:
every call borrows a snapshot of the edge store.
"""

from .endpoints import EndpointCollector
from .lineage import LineageGraphBuilder
from .mass_balance import MassBalanceCalculator
from .trace_service import TraceService
from .types import (
    BatchSnapshot,
    CycleFlag,
    DispatchSnapshot,
    LineageGraph,
    MassBalanceRecord,
    MassBalanceReport,
    RelationSnapshot,
    TraceEndpoint,
    TraceLink,
    TraceNode,
    TraceResult,
    TraceSummary,
    UnitMismatch,
)

__all__ = [
    "BatchSnapshot",
    "CycleFlag",
    "DispatchSnapshot",
    "EndpointCollector",
    "LineageGraph",
    "LineageGraphBuilder",
    "MassBalanceCalculator",
    "MassBalanceRecord",
    "MassBalanceReport",
    "RelationSnapshot",
    "TraceEndpoint",
    "TraceLink",
    "TraceNode",
    "TraceResult",
    "TraceService",
    "TraceSummary",
    "UnitMismatch",
]
