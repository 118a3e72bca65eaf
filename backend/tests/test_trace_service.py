"""
Tests for TraceService.
Validation, defaults and result assembly.
"""

from decimal import Decimal

import pytest

from rest_api.services.traceability import TraceService
from shared.config.constants import TraceDirection
from shared.config.settings import Settings
from shared.utils.exceptions import BatchNotFoundError, ValidationError
from tests.conftest import CountingEdgeStore


@pytest.fixture
def trace_settings():
    return Settings(
        trace_default_max_depth=3,
        trace_default_max_nodes=50,
        trace_max_depth_limit=20,
        trace_max_nodes_limit=500,
        trace_timeout_seconds=30.0,
    )


@pytest.fixture
def service(edge_store, trace_settings):
    return TraceService(edge_store, trace_settings)


class TestTraceResult:
    def test_forward_scenario(self, bakery, service):
        result = service.trace(1, "RM-FLOUR-001", "forward")

        assert result.direction is TraceDirection.FORWARD
        assert result.batch.code == "RM-FLOUR-001"
        assert len(result.nodes) == 4
        assert len(result.links) == 3
        assert result.truncated is False
        assert result.has_cycles is False
        assert result.mass_balance.total_input == Decimal("160")
        assert result.mass_balance.total_output == Decimal("158")
        assert result.mass_balance.variance == Decimal("2")
        assert result.mass_balance.variance_percent == Decimal("1.25")

    def test_node_balances_cover_every_node(self, bakery, service):
        result = service.trace(1, "LOAF-9001", "backward")

        assert {r.batch_id for r in result.node_balances} == {n.batch_id for n in result.nodes}

    def test_summary(self, bakery, service):
        result = service.trace(1, "RM-FLOUR-001", TraceDirection.FORWARD)

        assert result.summary.node_count == 4
        assert result.summary.link_count == 3
        assert result.summary.max_depth_reached == 2
        assert result.summary.levels_fetched == 3
        assert result.summary.batches_by_kind == {
            "finished_good": 2,
            "production_batch": 1,
            "raw_material_lot": 1,
        }
        assert result.summary.elapsed_ms >= 0

    def test_direction_is_case_insensitive(self, bakery, service):
        result = service.trace(1, "rm-flour-001", " FORWARD ")
        assert result.direction is TraceDirection.FORWARD

    def test_default_depth_applies(self, lineage, service):
        lineage.chain(10)

        result = service.trace(1, "CHAIN-000", "forward")

        assert result.summary.max_depth_reached == 3
        assert result.truncated is True

    def test_explicit_depth_overrides_default(self, lineage, service):
        lineage.chain(10)

        result = service.trace(1, "CHAIN-000", "forward", max_depth=20)

        assert len(result.nodes) == 10
        assert result.truncated is False

    def test_cycle_is_reported_not_raised(self, lineage, service):
        a = lineage.batch("A")
        b = lineage.batch("B")
        lineage.relation(a, b)
        lineage.relation(b, a)

        result = service.trace(1, "A", "forward")

        assert result.has_cycles is True
        assert result.cycle_flags[0].batch_id == a.id

    def test_unit_mismatch_is_reported(self, lineage, service):
        flour = lineage.batch("FLOUR")
        dough = lineage.batch("DOUGH")
        rolls = lineage.batch("ROLLS", unit="unit")
        lineage.relation(flour, dough, quantity="10", unit="kg")
        lineage.relation(dough, rolls, quantity="120", unit="unit")

        result = service.trace(1, "FLOUR", "forward")

        assert [m.batch_id for m in result.unit_mismatches] == [dough.id]
        assert dough.id not in {r.batch_id for r in result.node_balances}

    def test_repeated_calls_are_identical(self, bakery, service):
        first = service.trace(1, "DOUGH-550", "backward")
        second = service.trace(1, "DOUGH-550", "backward")

        assert first.nodes == second.nodes
        assert first.links == second.links
        assert first.mass_balance == second.mass_balance


class TestValidation:
    @pytest.mark.parametrize("code", ["", "   ", None])
    def test_blank_batch_code(self, code, service, edge_store):
        with pytest.raises(ValidationError) as exc_info:
            service.trace(1, code, "forward")
        assert exc_info.value.status_code == 400
        assert edge_store.level_calls == []

    def test_batch_code_too_long(self, service):
        with pytest.raises(ValidationError):
            service.trace(1, "X" * 101, "forward")

    @pytest.mark.parametrize("direction", ["sideways", "", "fwd", None])
    def test_bad_direction(self, direction, service):
        with pytest.raises(ValidationError) as exc_info:
            service.trace(1, "RM-FLOUR-001", direction)
        assert "direction" in exc_info.value.detail

    @pytest.mark.parametrize("max_depth", [0, -1, 21, True])
    def test_bad_max_depth(self, max_depth, service):
        with pytest.raises(ValidationError):
            service.trace(1, "RM-FLOUR-001", "forward", max_depth=max_depth)

    @pytest.mark.parametrize("max_nodes", [0, -5, 501])
    def test_bad_max_nodes(self, max_nodes, service):
        with pytest.raises(ValidationError):
            service.trace(1, "RM-FLOUR-001", "forward", max_nodes=max_nodes)

    def test_validation_happens_before_lookup(self, db_session, trace_settings):
        class ExplodingStore(CountingEdgeStore):
            def get_batch_by_code(self, tenant_id, code):
                raise AssertionError("store must not be touched")

        service = TraceService(ExplodingStore(None), trace_settings)

        with pytest.raises(ValidationError):
            service.trace(1, "RM-FLOUR-001", "forward", max_depth=0)

    def test_not_found(self, bakery, service):
        with pytest.raises(BatchNotFoundError) as exc_info:
            service.trace(1, "LOAF-0000", "backward")
        assert exc_info.value.detail == "Batch 'LOAF-0000' not found"


class TestForSession:
    def test_builds_sql_store(self, bakery, db_session, trace_settings):
        service = TraceService.for_session(db_session, trace_settings)

        result = service.trace(1, "DOUGH-550", "backward")

        assert {n.batch.code for n in result.nodes} == {"DOUGH-550", "RM-FLOUR-001", "RM-WATER-014"}
