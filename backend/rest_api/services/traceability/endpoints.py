"""
Trace endpoints: suppliers behind a backward trace, customers after a
forward one.

Suppliers come from the traced raw material lots themselves. Customers need
one extra store call for the dispatches of every traced batch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_api.services.traceability.types import LineageGraph, TraceEndpoint
from shared.config.constants import BatchKind, EndpointKind, TraceDirection
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from rest_api.repositories.batch import EdgeStore

logger = get_logger(__name__)


class EndpointCollector:
    """
    Usage:
        endpoints = EndpointCollector(store).collect(tenant_id, graph)
        [e.label for e in endpoints if e.kind == EndpointKind.CUSTOMER]
    """

    def __init__(self, store: "EdgeStore"):
        self._store = store

    def collect(self, tenant_id: int, graph: LineageGraph) -> list[TraceEndpoint]:
        if graph.direction is TraceDirection.BACKWARD:
            return self._suppliers(graph)
        return self._customers(tenant_id, graph)

    @staticmethod
    def _suppliers(graph: LineageGraph) -> list[TraceEndpoint]:
        endpoints = []
        for node in graph.nodes:
            batch = node.batch
            if batch.kind != BatchKind.RAW_MATERIAL_LOT:
                continue
            endpoints.append(
                TraceEndpoint(
                    kind=EndpointKind.SUPPLIER,
                    batch_id=batch.id,
                    label=batch.supplier_name or "Unknown supplier",
                    sublabel=batch.supplier_batch_code,
                    date=batch.produced_at,
                    quantity=batch.quantity_produced,
                    unit=batch.unit,
                )
            )
        return endpoints

    def _customers(self, tenant_id: int, graph: LineageGraph) -> list[TraceEndpoint]:
        dispatches = self._store.get_dispatches_for_batches(
            tenant_id, [node.batch_id for node in graph.nodes]
        )
        if graph.truncated:
            logger.warning(
                "Customer list is partial: trace was truncated",
                tenant_id=tenant_id,
                root_batch_id=graph.root.batch_id,
                customer_count=len(dispatches),
            )
        return [
            TraceEndpoint(
                kind=EndpointKind.CUSTOMER,
                batch_id=dispatch.batch_id,
                label=dispatch.customer_name,
                sublabel=dispatch.delivery_note_reference,
                date=dispatch.dispatched_at,
                quantity=dispatch.quantity,
                unit=dispatch.unit,
            )
            for dispatch in dispatches
        ]
