"""
Mass Balance Calculator.

Per-node input vs output totals over the balance links of a lineage graph,
normalized to one base unit per node, plus a headline figure taken at the
boundary of the traced set. A node whose quantities cannot be brought to a
common unit is reported as a UnitMismatch and gets no record; it never fails
the whole computation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Sequence

from rest_api.services.traceability.types import (
    MassBalanceRecord,
    MassBalanceReport,
    TraceLink,
    TraceNode,
    UnitMismatch,
)
from rest_api.services.traceability.units import common_base_unit, convert
from shared.utils.exceptions import UnitMismatchError

ZERO = Decimal("0")


def _total(links: Iterable[TraceLink], unit: str) -> Decimal:
    return sum((convert(link.quantity, link.unit, unit) for link in links), ZERO)


class MassBalanceCalculator:
    """
    Usage:
        report = MassBalanceCalculator().compute(graph.nodes, graph.balance_links)
        report.for_batch(dough.id).variance  # Decimal("2")
    """

    def compute(
        self,
        nodes: Sequence[TraceNode],
        links: Sequence[TraceLink],
    ) -> MassBalanceReport:
        inbound: dict[int, list[TraceLink]] = {node.batch_id: [] for node in nodes}
        outbound: dict[int, list[TraceLink]] = {node.batch_id: [] for node in nodes}
        for link in links:
            if link.to_node in inbound:
                inbound[link.to_node].append(link)
            if link.from_node in outbound:
                outbound[link.from_node].append(link)

        per_node: list[MassBalanceRecord] = []
        mismatches: list[UnitMismatch] = []

        for node in nodes:
            try:
                record = self._node_record(node, inbound[node.batch_id], outbound[node.batch_id])
            except UnitMismatchError as exc:
                mismatches.append(
                    UnitMismatch(batch_id=exc.batch_id, units=tuple(exc.units), reason=exc.reason)
                )
                continue
            per_node.append(record)

        aggregate = self._aggregate(nodes, links, inbound, outbound, per_node, mismatches)
        return MassBalanceReport(per_node=per_node, aggregate=aggregate, unit_mismatches=mismatches)

    def _node_record(
        self,
        node: TraceNode,
        node_in: list[TraceLink],
        node_out: list[TraceLink],
    ) -> MassBalanceRecord:
        units = [link.unit for link in node_in] + [link.unit for link in node_out]
        if not units:
            # Isolated batch: zero totals in the unit it was produced in
            units = [node.batch.unit]

        try:
            base = common_base_unit(units)
        except UnitMismatchError as exc:
            exc.batch_id = node.batch_id
            exc.units = sorted(set(units))
            raise

        return MassBalanceRecord.from_totals(
            batch_id=node.batch_id,
            total_input=_total(node_in, base),
            total_output=_total(node_out, base),
            unit=base.value,
        )

    @staticmethod
    def _aggregate(
        nodes: Sequence[TraceNode],
        links: Sequence[TraceLink],
        inbound: dict[int, list[TraceLink]],
        outbound: dict[int, list[TraceLink]],
        per_node: list[MassBalanceRecord],
        mismatches: list[UnitMismatch],
    ) -> MassBalanceRecord | None:
        """
        Headline figure for the whole trace, taken at its boundary.

        Input is what enters the traced set: relations from batches outside
        it, plus everything drawn from traced batches with no recorded inputs
        (raw material lots). Output is what leaves it: relations into batches
        outside it, plus everything put into traced batches nothing was drawn
        from (finished goods, shipments). Flows between two intermediate
        batches are interior and never counted, so a multi-stage trace
        reports what actually went in and came out.
        """
        if not nodes:
            return None

        entering = [
            link for link in links
            if link.from_node not in outbound or not inbound[link.from_node]
        ]
        leaving = [
            link for link in links
            if link.to_node not in inbound or not outbound[link.to_node]
        ]
        if not entering and not leaving:
            # No relation crosses the boundary, e.g. an isolated batch or a
            # closed loop: fall back to the root's own record
            root = min(nodes, key=lambda node: node.depth)
            return next((r for r in per_node if r.batch_id == root.batch_id), None)

        units = [link.unit for link in entering] + [link.unit for link in leaving]
        try:
            base = common_base_unit(units)
        except UnitMismatchError as exc:
            mismatches.append(
                UnitMismatch(batch_id=None, units=tuple(sorted(set(units))), reason=exc.reason)
            )
            return None

        return MassBalanceRecord.from_totals(
            batch_id=None,
            total_input=_total(entering, base),
            total_output=_total(leaving, base),
            unit=base.value,
        )
