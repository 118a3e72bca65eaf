"""
Lineage Graph Builder.

Breadth-first, frontier-batched traversal of batch relations from a root
batch, backward (ingredient ancestry) or forward (where the batch ended up).

Guarantees:
- one store call per depth level, whatever the fan-out, so a trace costs
  at most max_depth + 1 level fetches
- every relation of every reached node is followed (blends and splits)
- a relation that re-enters its own path stops that branch and flags the
  re-entered node; it never raises and never loops
- hitting max_depth or max_nodes sets truncated only if something was
  actually left out
"""

from __future__ import annotations

import time
from collections import defaultdict
from enum import Enum
from typing import TYPE_CHECKING, Callable

from rest_api.services.traceability.types import (
    BatchSnapshot,
    CycleFlag,
    LineageGraph,
    RelationSnapshot,
    TraceLink,
    TraceNode,
)
from shared.config.constants import TraceDirection
from shared.config.logging import get_logger
from shared.utils.exceptions import (
    BatchNotFoundError,
    InternalError,
    TraceDeadlineExceededError,
)

if TYPE_CHECKING:
    from rest_api.repositories.batch import EdgeStore

logger = get_logger(__name__)


class Step(str, Enum):
    """Outcome of following one relation out of a frontier node."""

    CONTINUE = "continue"  # new node, expand it next level
    REJOIN = "rejoin"  # node already reached through an independent branch
    CYCLE_STOP = "cycle_stop"  # node is on this branch's own path
    DEPTH_LIMIT = "depth_limit"
    NODE_LIMIT = "node_limit"


class _Traversal:
    """Mutable state of a single build() call. Never shared between calls."""

    def __init__(self, root: BatchSnapshot, direction: TraceDirection):
        self.direction = direction
        self.root = TraceNode(batch=root, depth=0)
        # Insertion order is BFS discovery order
        self.nodes: dict[int, TraceNode] = {root.id: self.root}
        # Followed relations in traversal order, source -> targets. Kept
        # acyclic: an edge that would close a loop is a CYCLE_STOP instead
        self.followed: dict[int, set[int]] = defaultdict(set)
        self.links: dict[int, TraceLink] = {}
        self.balance_links: dict[int, TraceLink] = {}
        self.cycle_flags: list[CycleFlag] = []
        self.truncated = False
        self.levels_fetched = 0

    def classify(
        self,
        source: TraceNode,
        target: BatchSnapshot,
        max_depth: int,
        max_nodes: int,
    ) -> Step:
        if target.id in self.nodes:
            if self.reaches(target.id, source.batch_id):
                return Step.CYCLE_STOP
            return Step.REJOIN
        if source.depth + 1 > max_depth:
            return Step.DEPTH_LIMIT
        if len(self.nodes) >= max_nodes:
            return Step.NODE_LIMIT
        return Step.CONTINUE

    def reaches(self, start: int, goal: int) -> bool:
        """Whether goal is reachable from start over followed relations."""
        seen = {start}
        stack = [start]
        while stack:
            current = stack.pop()
            if current == goal:
                return True
            for nxt in self.followed.get(current, ()):
                if nxt not in seen:
                    seen.add(nxt)
                    stack.append(nxt)
        return False

    def follow(
        self,
        source: TraceNode,
        relation: RelationSnapshot,
        max_depth: int,
        max_nodes: int,
    ) -> TraceNode | None:
        """Apply one relation; returns the new node when the branch continues."""
        target = relation.next_batch(self.direction)
        step = self.classify(source, target, max_depth, max_nodes)

        if step in (Step.DEPTH_LIMIT, Step.NODE_LIMIT):
            self.truncated = True
            return None

        self.links.setdefault(relation.id, TraceLink.from_relation(relation))

        if step is Step.CYCLE_STOP:
            self.nodes[target.id].cycle_guard_triggered = True
            self.cycle_flags.append(
                CycleFlag(
                    batch_id=target.id,
                    from_batch_id=source.batch_id,
                    relation_id=relation.id,
                    depth=source.depth + 1,
                )
            )
            logger.warning(
                "Cycle guard triggered",
                batch_id=target.id,
                batch_code=target.code,
                from_batch_id=source.batch_id,
                relation_id=relation.id,
            )
            return None

        self.followed[source.batch_id].add(target.id)
        if step is Step.REJOIN:
            return None

        node = TraceNode(batch=target, depth=source.depth + 1)
        self.nodes[target.id] = node
        return node

    def to_graph(self) -> LineageGraph:
        return LineageGraph(
            direction=self.direction,
            root=self.root,
            nodes=list(self.nodes.values()),
            links=list(self.links.values()),
            balance_links=[self.balance_links[key] for key in sorted(self.balance_links)],
            truncated=self.truncated,
            cycle_flags=list(self.cycle_flags),
            levels_fetched=self.levels_fetched,
        )


class LineageGraphBuilder:
    """
    Builds the node/link set of a trace from an EdgeStore.

    Usage:
        builder = LineageGraphBuilder(get_edge_store(db))
        graph = builder.build(1, "RM-FLOUR-001", TraceDirection.FORWARD, 25, 2000)
    """

    def __init__(self, store: "EdgeStore", clock: Callable[[], float] = time.monotonic):
        self._store = store
        self._clock = clock

    def build(
        self,
        tenant_id: int,
        root_batch_code: str,
        direction: TraceDirection,
        max_depth: int,
        max_nodes: int,
        timeout_seconds: float | None = None,
    ) -> LineageGraph:
        """
        Traverse from root_batch_code and return the lineage graph.

        Args:
            tenant_id: Tenant scope; the root and every relation must belong to it.
            root_batch_code: Batch code, matched case-insensitively.
            direction: FORWARD (descendants) or BACKWARD (ancestors).
            max_depth: Maximum hops from the root (root is depth 0).
            max_nodes: Maximum total nodes, root included.
            timeout_seconds: Deadline checked before every level fetch.

        Raises:
            BatchNotFoundError: Root code does not resolve within the tenant.
            TraceDeadlineExceededError: Deadline passed; partial graph discarded.
        """
        deadline = None
        if timeout_seconds is not None:
            deadline = self._clock() + timeout_seconds

        root = self._store.get_batch_by_code(tenant_id, root_batch_code)
        if root is None or root.tenant_id != tenant_id:
            raise BatchNotFoundError(root_batch_code, tenant_id=tenant_id)

        state = _Traversal(root, direction)
        frontier: list[TraceNode] = [state.root]

        while frontier:
            if deadline is not None and self._clock() > deadline:
                raise TraceDeadlineExceededError(
                    timeout_seconds=timeout_seconds,
                    levels_completed=state.levels_fetched,
                    tenant_id=tenant_id,
                    batch_code=root.code,
                )
            frontier = self._expand_level(state, tenant_id, frontier, max_depth, max_nodes)

        graph = state.to_graph()
        logger.debug(
            "Lineage graph built",
            tenant_id=tenant_id,
            root_batch_id=root.id,
            direction=direction.value,
            node_count=len(graph.nodes),
            link_count=len(graph.links),
            levels_fetched=graph.levels_fetched,
            truncated=graph.truncated,
        )
        return graph

    def _expand_level(
        self,
        state: _Traversal,
        tenant_id: int,
        frontier: list[TraceNode],
        max_depth: int,
        max_nodes: int,
    ) -> list[TraceNode]:
        # Incident relations in both directions: the traversal direction
        # drives expansion, the rest is kept for the mass balance
        relations = self._store.get_relations_for_batches_at_level(
            tenant_id, [node.batch_id for node in frontier], None
        )
        state.levels_fetched += 1

        frontier_ids = {node.batch_id for node in frontier}
        outgoing: dict[int, list[RelationSnapshot]] = defaultdict(list)
        for relation in relations:
            self._check_tenant(relation, tenant_id)
            state.balance_links.setdefault(relation.id, TraceLink.from_relation(relation))
            source_id = relation.source_id(state.direction)
            if source_id in frontier_ids:
                outgoing[source_id].append(relation)

        next_frontier: list[TraceNode] = []
        for source in frontier:
            for relation in outgoing.get(source.batch_id, ()):
                node = state.follow(source, relation, max_depth, max_nodes)
                if node is not None:
                    next_frontier.append(node)
        return next_frontier

    @staticmethod
    def _check_tenant(relation: RelationSnapshot, tenant_id: int) -> None:
        # The store filters by tenant; a foreign row here is a store bug and
        # must fail the trace rather than leak into it
        if relation.input_batch.tenant_id != tenant_id or relation.output_batch.tenant_id != tenant_id:
            raise InternalError(
                "Edge store returned a relation outside the tenant scope",
                relation_id=relation.id,
                tenant_id=tenant_id,
            )
