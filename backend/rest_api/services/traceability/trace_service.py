"""
Trace Query Service.

Validates a trace request, runs the Lineage Graph Builder then the Mass
Balance Calculator, collects the suppliers or customers at the edge of the
trace, and assembles the TraceResult. Pure read: holds only its
store and settings, so one instance may serve concurrent calls.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from rest_api.services.traceability.endpoints import EndpointCollector
from rest_api.services.traceability.lineage import LineageGraphBuilder
from rest_api.services.traceability.mass_balance import MassBalanceCalculator
from rest_api.services.traceability.types import TraceResult, TraceSummary
from shared.config.constants import TraceDirection
from shared.config.logging import trace_logger as logger
from shared.config.settings import Settings, get_settings
from shared.utils.exceptions import ValidationError
from shared.utils.validators import validate_batch_code, validate_positive_bound

if TYPE_CHECKING:
    from rest_api.repositories.batch import EdgeStore


class TraceService:
    """
    Usage:
        service = TraceService.for_session(db)
        result = service.trace(tenant_id=1, batch_code="RM-FLOUR-001", direction="forward")
        result.mass_balance.variance_percent  # Decimal("1.25")
    """

    def __init__(self, store: "EdgeStore", settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._builder = LineageGraphBuilder(store)
        self._calculator = MassBalanceCalculator()
        self._endpoints = EndpointCollector(store)

    @classmethod
    def for_session(cls, db: Session, settings: Settings | None = None) -> "TraceService":
        from rest_api.repositories.batch import SqlEdgeStore

        settings = settings or get_settings()
        return cls(SqlEdgeStore(db, chunk_size=settings.trace_fetch_chunk_size), settings)

    def trace(
        self,
        tenant_id: int,
        batch_code: str,
        direction: str | TraceDirection,
        max_depth: int | None = None,
        max_nodes: int | None = None,
        timeout_seconds: float | None = None,
    ) -> TraceResult:
        """
        Reconstruct the lineage of a batch.

        Args:
            tenant_id: Tenant scope.
            batch_code: Root batch code (case-insensitive).
            direction: "forward" (descendants) or "backward" (ancestors).
            max_depth: Hop limit; defaults to TRACE_DEFAULT_MAX_DEPTH.
            max_nodes: Node limit; defaults to TRACE_DEFAULT_MAX_NODES.
            timeout_seconds: Deadline; defaults to TRACE_TIMEOUT_SECONDS.

        Raises:
            ValidationError: Malformed input; raised before any store access.
            BatchNotFoundError: Code does not resolve within the tenant.
            TraceDeadlineExceededError: Deadline passed mid-traversal.
        """
        code, trace_direction, depth, nodes = self._validate(
            batch_code, direction, max_depth, max_nodes
        )
        if timeout_seconds is None:
            timeout_seconds = self._settings.trace_timeout_seconds

        started = time.perf_counter()
        graph = self._builder.build(
            tenant_id, code, trace_direction, depth, nodes, timeout_seconds=timeout_seconds
        )
        report = self._calculator.compute(graph.nodes, graph.balance_links)
        endpoints = self._endpoints.collect(tenant_id, graph)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 3)

        result = TraceResult(
            direction=trace_direction,
            batch=graph.root.batch,
            nodes=graph.nodes,
            links=graph.links,
            mass_balance=report.aggregate,
            node_balances=report.per_node,
            unit_mismatches=report.unit_mismatches,
            truncated=graph.truncated,
            cycle_flags=graph.cycle_flags,
            summary=TraceSummary.from_graph(graph, elapsed_ms),
            endpoints=endpoints,
            allergens=sorted({name for node in graph.nodes for name in node.batch.allergens}),
        )
        self._log_result(tenant_id, result)
        return result

    def _validate(
        self,
        batch_code: str,
        direction: str | TraceDirection,
        max_depth: int | None,
        max_nodes: int | None,
    ) -> tuple[str, TraceDirection, int, int]:
        try:
            code = validate_batch_code(batch_code)
        except ValueError as exc:
            raise ValidationError(str(exc), field="batch_code") from exc

        trace_direction = TraceDirection.parse(direction)
        if trace_direction is None:
            raise ValidationError(
                f"direction must be 'forward' or 'backward', got '{direction}'",
                field="direction",
            )

        if max_depth is None:
            max_depth = self._settings.trace_default_max_depth
        if max_nodes is None:
            max_nodes = self._settings.trace_default_max_nodes

        try:
            depth = validate_positive_bound(
                max_depth, "max_depth", self._settings.trace_max_depth_limit
            )
            nodes = validate_positive_bound(
                max_nodes, "max_nodes", self._settings.trace_max_nodes_limit
            )
        except ValueError as exc:
            raise ValidationError(str(exc), max_depth=max_depth, max_nodes=max_nodes) from exc

        return code, trace_direction, depth, nodes

    @staticmethod
    def _log_result(tenant_id: int, result: TraceResult) -> None:
        logger.info(
            "Trace completed",
            tenant_id=tenant_id,
            batch_code=result.batch.code,
            direction=result.direction.value,
            node_count=result.summary.node_count,
            link_count=result.summary.link_count,
            levels_fetched=result.summary.levels_fetched,
            truncated=result.truncated,
            cycle_count=len(result.cycle_flags),
            endpoint_count=len(result.endpoints),
            elapsed_ms=result.summary.elapsed_ms,
        )
        if result.cycle_flags:
            logger.warning(
                "Trace crossed a cycle in batch relations",
                tenant_id=tenant_id,
                batch_code=result.batch.code,
                relation_ids=[flag.relation_id for flag in result.cycle_flags],
            )
        if result.unit_mismatches:
            logger.warning(
                "Mass balance incomplete: unit mismatch",
                tenant_id=tenant_id,
                batch_code=result.batch.code,
                batch_ids=[m.batch_id for m in result.unit_mismatches],
            )
