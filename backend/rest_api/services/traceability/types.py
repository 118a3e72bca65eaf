"""
Value types for the traceability engine.

Everything here is derived per query and never persisted. Snapshots are
detached from the ORM session so a result can outlive the request.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from shared.config.constants import TraceDirection


@dataclass(frozen=True)
class BatchSnapshot:
    """Read-only copy of a Batch row."""

    id: int
    tenant_id: int
    code: str
    kind: str
    quantity_produced: Decimal
    unit: str
    status: str
    site_id: int | None = None
    produced_at: datetime | None = None
    description: str | None = None
    supplier_batch_code: str | None = None
    supplier_name: str | None = None
    allergens: tuple[str, ...] = ()


@dataclass(frozen=True)
class RelationSnapshot:
    """Read-only copy of a BatchRelation row with both endpoint batches."""

    id: int
    input_batch: BatchSnapshot
    output_batch: BatchSnapshot
    quantity_consumed: Decimal
    unit: str
    recorded_at: datetime | None = None

    @property
    def input_batch_id(self) -> int:
        return self.input_batch.id

    @property
    def output_batch_id(self) -> int:
        return self.output_batch.id

    def source_id(self, direction: TraceDirection) -> int:
        """End of the edge the traversal arrives from."""
        if direction is TraceDirection.FORWARD:
            return self.input_batch.id
        return self.output_batch.id

    def next_batch(self, direction: TraceDirection) -> BatchSnapshot:
        """End of the edge the traversal moves to."""
        if direction is TraceDirection.FORWARD:
            return self.output_batch
        return self.input_batch


@dataclass(frozen=True)
class DispatchSnapshot:
    """Read-only copy of a BatchDispatch row."""

    id: int
    batch_id: int
    customer_name: str
    quantity: Decimal
    unit: str
    dispatched_at: datetime | None = None
    delivery_note_reference: str | None = None


@dataclass
class TraceNode:
    """A batch in a trace, with its BFS depth from the root."""

    batch: BatchSnapshot
    depth: int
    cycle_guard_triggered: bool = False

    @property
    def batch_id(self) -> int:
        return self.batch.id


@dataclass(frozen=True)
class TraceLink:
    """
    One relation inside a trace.

    from_node/to_node always follow material flow (input -> output),
    whatever the trace direction.
    """

    relation_id: int
    from_node: int
    to_node: int
    quantity: Decimal
    unit: str
    recorded_at: datetime | None = None

    @classmethod
    def from_relation(cls, relation: RelationSnapshot) -> "TraceLink":
        return cls(
            relation_id=relation.id,
            from_node=relation.input_batch_id,
            to_node=relation.output_batch_id,
            quantity=relation.quantity_consumed,
            unit=relation.unit,
            recorded_at=relation.recorded_at,
        )


@dataclass(frozen=True)
class CycleFlag:
    """An edge that re-entered its own path; the branch was stopped there."""

    batch_id: int
    from_batch_id: int
    relation_id: int
    depth: int


@dataclass
class LineageGraph:
    """Output of the Lineage Graph Builder."""

    direction: TraceDirection
    root: TraceNode
    nodes: list[TraceNode]
    links: list[TraceLink]
    # Every relation incident to a traced node, including ones pointing away
    # from the traversal direction; feeds the mass balance
    balance_links: list[TraceLink]
    truncated: bool = False
    cycle_flags: list[CycleFlag] = field(default_factory=list)
    levels_fetched: int = 0

    @property
    def max_depth_reached(self) -> int:
        return max((n.depth for n in self.nodes), default=0)


@dataclass(frozen=True)
class MassBalanceRecord:
    """Input vs output quantity at a node (batch_id) or over the trace (None)."""

    batch_id: int | None
    total_input: Decimal
    total_output: Decimal
    variance: Decimal
    variance_percent: Decimal | None
    unit: str

    @classmethod
    def from_totals(
        cls,
        batch_id: int | None,
        total_input: Decimal,
        total_output: Decimal,
        unit: str,
    ) -> "MassBalanceRecord":
        variance = total_input - total_output
        variance_percent = None
        if total_input > 0:
            variance_percent = variance / total_input * Decimal(100)
        return cls(
            batch_id=batch_id,
            total_input=total_input,
            total_output=total_output,
            variance=variance,
            variance_percent=variance_percent,
            unit=unit,
        )


@dataclass(frozen=True)
class UnitMismatch:
    """A node whose quantities could not be brought to one base unit."""

    batch_id: int | None
    units: tuple[str, ...]
    reason: str


@dataclass
class MassBalanceReport:
    """Output of the Mass Balance Calculator."""

    per_node: list[MassBalanceRecord]
    aggregate: MassBalanceRecord | None
    unit_mismatches: list[UnitMismatch] = field(default_factory=list)

    def for_batch(self, batch_id: int) -> MassBalanceRecord | None:
        for record in self.per_node:
            if record.batch_id == batch_id:
                return record
        return None


@dataclass(frozen=True)
class TraceEndpoint:
    """
    A party at the edge of a trace.

    Suppliers are read from the raw material lots of a backward trace,
    customers from the dispatches of a forward trace. batch_id is the traced
    batch the party is attached to.
    """

    kind: str
    batch_id: int
    label: str
    sublabel: str | None = None
    date: datetime | None = None
    quantity: Decimal | None = None
    unit: str | None = None


@dataclass(frozen=True)
class TraceSummary:
    node_count: int
    link_count: int
    max_depth_reached: int
    levels_fetched: int
    batches_by_kind: dict[str, int]
    elapsed_ms: float

    @classmethod
    def from_graph(cls, graph: LineageGraph, elapsed_ms: float) -> "TraceSummary":
        kinds = Counter(node.batch.kind for node in graph.nodes)
        return cls(
            node_count=len(graph.nodes),
            link_count=len(graph.links),
            max_depth_reached=graph.max_depth_reached,
            levels_fetched=graph.levels_fetched,
            batches_by_kind=dict(sorted(kinds.items())),
            elapsed_ms=elapsed_ms,
        )


@dataclass
class TraceResult:
    """Assembled answer to one trace() call."""

    direction: TraceDirection
    batch: BatchSnapshot
    nodes: list[TraceNode]
    links: list[TraceLink]
    mass_balance: MassBalanceRecord | None
    node_balances: list[MassBalanceRecord]
    unit_mismatches: list[UnitMismatch]
    truncated: bool
    cycle_flags: list[CycleFlag]
    summary: TraceSummary
    endpoints: list[TraceEndpoint] = field(default_factory=list)
    # Union of allergens declared on every traced batch, sorted
    allergens: list[str] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycle_flags)
