"""
Output schemas for the traceability API.

Quantities leave the engine as Decimal and are rendered as float here;
the JSON surface is for display and export, the exact figures stay in the
engine.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

from rest_api.services.traceability.types import (
    BatchSnapshot,
    CycleFlag,
    MassBalanceRecord,
    TraceEndpoint,
    TraceLink,
    TraceNode,
    TraceResult,
    TraceSummary,
    UnitMismatch,
)
from shared.utils.schemas import (
    BatchKindLiteral,
    BatchStatusLiteral,
    DirectionLiteral,
    EndpointKindLiteral,
)


def _as_float(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


class BatchOutput(BaseModel):
    """Snapshot of a batch as seen by the trace."""
    id: int
    code: str
    kind: BatchKindLiteral
    quantity_produced: float
    unit: str
    status: BatchStatusLiteral
    site_id: int | None = None
    produced_at: datetime | None = None
    description: str | None = None
    supplier_batch_code: str | None = None
    supplier_name: str | None = None
    allergens: list[str] = []

    @classmethod
    def from_snapshot(cls, batch: BatchSnapshot) -> "BatchOutput":
        return cls(
            id=batch.id,
            code=batch.code,
            kind=batch.kind,
            quantity_produced=float(batch.quantity_produced),
            unit=batch.unit,
            status=batch.status,
            site_id=batch.site_id,
            produced_at=batch.produced_at,
            description=batch.description,
            supplier_batch_code=batch.supplier_batch_code,
            supplier_name=batch.supplier_name,
            allergens=list(batch.allergens),
        )


class TraceNodeOutput(BaseModel):
    batch: BatchOutput
    depth: int
    cycle_guard_triggered: bool = False

    @classmethod
    def from_node(cls, node: TraceNode) -> "TraceNodeOutput":
        return cls(
            batch=BatchOutput.from_snapshot(node.batch),
            depth=node.depth,
            cycle_guard_triggered=node.cycle_guard_triggered,
        )


class TraceLinkOutput(BaseModel):
    """A consumed-into relation; from_node is always the input batch."""
    relation_id: int
    from_node: int
    to_node: int
    quantity: float
    unit: str
    recorded_at: datetime | None = None

    @classmethod
    def from_link(cls, link: TraceLink) -> "TraceLinkOutput":
        return cls(
            relation_id=link.relation_id,
            from_node=link.from_node,
            to_node=link.to_node,
            quantity=float(link.quantity),
            unit=link.unit,
            recorded_at=link.recorded_at,
        )


class MassBalanceOutput(BaseModel):
    batch_id: int | None = None
    total_input: float
    total_output: float
    variance: float
    variance_percent: float | None = None
    unit: str

    @classmethod
    def from_record(cls, record: MassBalanceRecord) -> "MassBalanceOutput":
        return cls(
            batch_id=record.batch_id,
            total_input=float(record.total_input),
            total_output=float(record.total_output),
            variance=float(record.variance),
            variance_percent=_as_float(record.variance_percent),
            unit=record.unit,
        )


class UnitMismatchOutput(BaseModel):
    batch_id: int | None = None
    units: list[str]
    reason: str

    @classmethod
    def from_mismatch(cls, mismatch: UnitMismatch) -> "UnitMismatchOutput":
        return cls(batch_id=mismatch.batch_id, units=list(mismatch.units), reason=mismatch.reason)


class CycleFlagOutput(BaseModel):
    batch_id: int
    from_batch_id: int
    relation_id: int
    depth: int

    @classmethod
    def from_flag(cls, flag: CycleFlag) -> "CycleFlagOutput":
        return cls(
            batch_id=flag.batch_id,
            from_batch_id=flag.from_batch_id,
            relation_id=flag.relation_id,
            depth=flag.depth,
        )


class TraceEndpointOutput(BaseModel):
    """Supplier or customer at the edge of a trace."""
    kind: EndpointKindLiteral
    batch_id: int
    label: str
    sublabel: str | None = None
    date: datetime | None = None
    quantity: float | None = None
    unit: str | None = None

    @classmethod
    def from_endpoint(cls, endpoint: TraceEndpoint) -> "TraceEndpointOutput":
        return cls(
            kind=endpoint.kind,
            batch_id=endpoint.batch_id,
            label=endpoint.label,
            sublabel=endpoint.sublabel,
            date=endpoint.date,
            quantity=_as_float(endpoint.quantity),
            unit=endpoint.unit,
        )


class TraceSummaryOutput(BaseModel):
    node_count: int
    link_count: int
    max_depth_reached: int
    levels_fetched: int
    batches_by_kind: dict[str, int]
    elapsed_ms: float

    @classmethod
    def from_summary(cls, summary: TraceSummary) -> "TraceSummaryOutput":
        return cls(
            node_count=summary.node_count,
            link_count=summary.link_count,
            max_depth_reached=summary.max_depth_reached,
            levels_fetched=summary.levels_fetched,
            batches_by_kind=dict(summary.batches_by_kind),
            elapsed_ms=summary.elapsed_ms,
        )


class TraceResultOutput(BaseModel):
    """Response for GET /api/traceability/{direction}."""
    direction: DirectionLiteral
    batch: BatchOutput
    nodes: list[TraceNodeOutput]
    links: list[TraceLinkOutput]
    mass_balance: MassBalanceOutput | None = None
    node_balances: list[MassBalanceOutput]
    unit_mismatches: list[UnitMismatchOutput]
    truncated: bool
    cycle_flags: list[CycleFlagOutput]
    summary: TraceSummaryOutput
    endpoints: list[TraceEndpointOutput] = []
    allergens: list[str] = []

    @classmethod
    def from_result(cls, result: TraceResult) -> "TraceResultOutput":
        return cls(
            direction=result.direction.value,
            batch=BatchOutput.from_snapshot(result.batch),
            nodes=[TraceNodeOutput.from_node(n) for n in result.nodes],
            links=[TraceLinkOutput.from_link(link) for link in result.links],
            mass_balance=(
                MassBalanceOutput.from_record(result.mass_balance)
                if result.mass_balance is not None
                else None
            ),
            node_balances=[MassBalanceOutput.from_record(r) for r in result.node_balances],
            unit_mismatches=[UnitMismatchOutput.from_mismatch(m) for m in result.unit_mismatches],
            truncated=result.truncated,
            cycle_flags=[CycleFlagOutput.from_flag(f) for f in result.cycle_flags],
            summary=TraceSummaryOutput.from_summary(result.summary),
            endpoints=[TraceEndpointOutput.from_endpoint(e) for e in result.endpoints],
            allergens=list(result.allergens),
        )
