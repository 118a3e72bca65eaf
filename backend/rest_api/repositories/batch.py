"""
Batch Repository - read-only edge store for the traceability engine.

Lookups are batched by traversal frontier: one statement per depth level
(IN-list over all frontier batch IDs), never one per node. Both endpoint
batches are loaded in the same statement and every table in it is filtered by
tenant, so rows from another tenant can never enter a trace.
"""

from __future__ import annotations

import json
from typing import Iterable, Protocol, Sequence

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session, aliased

from rest_api.models import Batch, BatchDispatch, BatchRelation
from rest_api.services.traceability.types import BatchSnapshot, DispatchSnapshot, RelationSnapshot
from shared.config.constants import TraceDirection
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.utils.validators import normalize_batch_code

logger = get_logger(__name__)


class EdgeStore(Protocol):
    """
    What the Lineage Graph Builder needs from persistence.

    Implementations must be side-effect free.
    """

    def get_batch_by_code(self, tenant_id: int, code: str) -> BatchSnapshot | None:
        """Exact, case-insensitive code match within the tenant."""
        ...

    def get_relations_for_batches_at_level(
        self,
        tenant_id: int,
        batch_ids: Sequence[int],
        direction: TraceDirection | None,
    ) -> list[RelationSnapshot]:
        """
        Relations touching any of batch_ids, in one call per traversal level.

        FORWARD: relations whose input is in batch_ids.
        BACKWARD: relations whose output is in batch_ids.
        None: both (every relation incident to the level).
        """
        ...

    def get_dispatches_for_batches(
        self,
        tenant_id: int,
        batch_ids: Sequence[int],
    ) -> list[DispatchSnapshot]:
        """Customer dispatches of any of batch_ids, in one call."""
        ...


def batch_snapshot(batch: Batch) -> BatchSnapshot:
    """Detach a Batch row into an immutable snapshot."""
    return BatchSnapshot(
        id=batch.id,
        tenant_id=batch.tenant_id,
        code=batch.code,
        kind=batch.kind,
        quantity_produced=batch.quantity_produced,
        unit=batch.unit,
        status=batch.status,
        site_id=batch.site_id,
        produced_at=batch.produced_at,
        description=batch.description,
        supplier_batch_code=batch.supplier_batch_code,
        supplier_name=batch.supplier_name,
        allergens=_parse_allergens(batch),
    )


def _parse_allergens(batch: Batch) -> tuple[str, ...]:
    if not batch.allergens:
        return ()
    try:
        names = json.loads(batch.allergens)
    except json.JSONDecodeError:
        logger.warning("Unreadable allergen list", batch_id=batch.id, value=batch.allergens)
        return ()
    if isinstance(names, str):
        names = [names]
    return tuple(sorted({str(name).strip().lower() for name in names if str(name).strip()}))


def _chunks(ids: Sequence[int], size: int) -> Iterable[list[int]]:
    for start in range(0, len(ids), size):
        yield list(ids[start : start + size])


class SqlEdgeStore:
    """
    EdgeStore over the batch and batch_relation tables.

    Usage:
        store = get_edge_store(db)
        root = store.get_batch_by_code(tenant_id=1, code="rm-flour-001")
        edges = store.get_relations_for_batches_at_level(1, [root.id], TraceDirection.FORWARD)
    """

    def __init__(self, db: Session, chunk_size: int | None = None):
        self._db = db
        self._chunk_size = max(1, chunk_size or settings.trace_fetch_chunk_size)
        # SELECTs issued for level fetches; one per IN-list chunk
        self.statements_executed = 0

    def get_batch_by_code(self, tenant_id: int, code: str) -> BatchSnapshot | None:
        normalized = normalize_batch_code(code)
        if not normalized:
            return None
        batch = self._db.scalar(
            select(Batch).where(
                Batch.tenant_id == tenant_id,
                Batch.code_normalized == normalized,
            )
        )
        return batch_snapshot(batch) if batch is not None else None

    def _level_query(
        self,
        tenant_id: int,
        batch_ids: list[int],
        direction: TraceDirection | None,
    ) -> Select:
        input_batch = aliased(Batch, name="input_batch")
        output_batch = aliased(Batch, name="output_batch")

        if direction is TraceDirection.FORWARD:
            frontier_filter = BatchRelation.input_batch_id.in_(batch_ids)
        elif direction is TraceDirection.BACKWARD:
            frontier_filter = BatchRelation.output_batch_id.in_(batch_ids)
        else:
            frontier_filter = or_(
                BatchRelation.input_batch_id.in_(batch_ids),
                BatchRelation.output_batch_id.in_(batch_ids),
            )

        return (
            select(BatchRelation, input_batch, output_batch)
            .join(input_batch, BatchRelation.input_batch_id == input_batch.id)
            .join(output_batch, BatchRelation.output_batch_id == output_batch.id)
            .where(
                BatchRelation.tenant_id == tenant_id,
                input_batch.tenant_id == tenant_id,
                output_batch.tenant_id == tenant_id,
                frontier_filter,
            )
            .order_by(BatchRelation.id)
        )

    def get_relations_for_batches_at_level(
        self,
        tenant_id: int,
        batch_ids: Sequence[int],
        direction: TraceDirection | None,
    ) -> list[RelationSnapshot]:
        unique_ids = sorted(set(batch_ids))
        if not unique_ids:
            return []

        by_id: dict[int, RelationSnapshot] = {}
        statements = 0
        for chunk in _chunks(unique_ids, self._chunk_size):
            rows = self._db.execute(self._level_query(tenant_id, chunk, direction)).all()
            statements += 1
            for relation, input_batch, output_batch in rows:
                # A relation between two batches of different chunks shows up twice
                if relation.id in by_id:
                    continue
                by_id[relation.id] = RelationSnapshot(
                    id=relation.id,
                    input_batch=batch_snapshot(input_batch),
                    output_batch=batch_snapshot(output_batch),
                    quantity_consumed=relation.quantity_consumed,
                    unit=relation.unit,
                    recorded_at=relation.recorded_at,
                )

        logger.debug(
            "Level relations fetched",
            tenant_id=tenant_id,
            frontier_size=len(unique_ids),
            relation_count=len(by_id),
            statements=statements,
            direction=direction.value if direction else "incident",
        )
        self.statements_executed += statements
        return [by_id[key] for key in sorted(by_id)]

    def get_dispatches_for_batches(
        self,
        tenant_id: int,
        batch_ids: Sequence[int],
    ) -> list[DispatchSnapshot]:
        unique_ids = sorted(set(batch_ids))
        if not unique_ids:
            return []

        dispatches: list[DispatchSnapshot] = []
        for chunk in _chunks(unique_ids, self._chunk_size):
            rows = self._db.scalars(
                select(BatchDispatch)
                .join(Batch, BatchDispatch.batch_id == Batch.id)
                .where(
                    BatchDispatch.tenant_id == tenant_id,
                    Batch.tenant_id == tenant_id,
                    BatchDispatch.batch_id.in_(chunk),
                )
                .order_by(BatchDispatch.id)
            ).all()
            self.statements_executed += 1
            dispatches.extend(
                DispatchSnapshot(
                    id=dispatch.id,
                    batch_id=dispatch.batch_id,
                    customer_name=dispatch.customer_name,
                    quantity=dispatch.quantity,
                    unit=dispatch.unit,
                    dispatched_at=dispatch.dispatched_at,
                    delivery_note_reference=dispatch.delivery_note_reference,
                )
                for dispatch in rows
            )

        return sorted(dispatches, key=lambda dispatch: dispatch.id)


def get_edge_store(db: Session) -> SqlEdgeStore:
    """Factory function for dependency injection."""
    return SqlEdgeStore(db)
