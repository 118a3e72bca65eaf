"""
Tests for trace endpoints and allergens.
Suppliers behind backward traces, customers after forward traces.
"""

from decimal import Decimal

import pytest

from rest_api.repositories import SqlEdgeStore
from rest_api.services.traceability import TraceService
from shared.config.constants import BatchKind, EndpointKind


@pytest.fixture
def service(edge_store):
    return TraceService(edge_store)


@pytest.fixture
def delivered_bakery(lineage, bakery, db_session):
    bakery["flour"].supplier_name = "Northfield Mills"
    bakery["flour"].supplier_batch_code = "NFM-24-118"
    db_session.commit()
    lineage.dispatch(bakery["loaf_1"], "Corner Cafe", quantity="40", reference="DN-1001")
    lineage.dispatch(bakery["loaf_1"], "Harbour Deli", quantity="40", reference="DN-1002")
    lineage.dispatch(bakery["loaf_2"], "Corner Cafe", quantity="78", reference="DN-1003")
    return bakery


class TestCustomers:
    def test_forward_trace_lists_customers(self, delivered_bakery, service):
        result = service.trace(1, "RM-FLOUR-001", "forward")

        assert all(e.kind == EndpointKind.CUSTOMER for e in result.endpoints)
        assert [(e.label, e.sublabel) for e in result.endpoints] == [
            ("Corner Cafe", "DN-1001"),
            ("Harbour Deli", "DN-1002"),
            ("Corner Cafe", "DN-1003"),
        ]
        loaf_2 = result.endpoints[2]
        assert loaf_2.batch_id == delivered_bakery["loaf_2"].id
        assert loaf_2.quantity == Decimal("78")
        assert loaf_2.unit == "kg"

    def test_customers_limited_to_traced_batches(self, delivered_bakery, service):
        result = service.trace(1, "DOUGH-550", "forward", max_depth=1)

        assert result.truncated is False
        assert len(result.endpoints) == 3

        result = service.trace(1, "RM-FLOUR-001", "forward", max_depth=1)

        assert result.truncated is True
        assert result.endpoints == []

    def test_other_tenant_dispatch_is_invisible(self, lineage, bakery, other_tenant, service):
        lineage.dispatch(bakery["loaf_1"], "Leaky Customer", tenant_id=other_tenant.id)

        result = service.trace(1, "RM-FLOUR-001", "forward")

        assert "Leaky Customer" not in {e.label for e in result.endpoints}

    def test_dispatch_fetch_is_chunked(self, delivered_bakery, db_session):
        store = SqlEdgeStore(db_session, chunk_size=1)

        dispatches = store.get_dispatches_for_batches(
            1, [delivered_bakery["loaf_1"].id, delivered_bakery["loaf_2"].id]
        )

        assert [d.delivery_note_reference for d in dispatches] == ["DN-1001", "DN-1002", "DN-1003"]
        assert store.statements_executed == 2


class TestSuppliers:
    def test_backward_trace_lists_suppliers(self, delivered_bakery, service):
        result = service.trace(1, "LOAF-9001", "backward")

        suppliers = {e.batch_id: e for e in result.endpoints}
        assert all(e.kind == EndpointKind.SUPPLIER for e in result.endpoints)
        assert set(suppliers) == {delivered_bakery["flour"].id, delivered_bakery["water"].id}
        flour = suppliers[delivered_bakery["flour"].id]
        assert flour.label == "Northfield Mills"
        assert flour.sublabel == "NFM-24-118"
        assert flour.quantity == Decimal("100")
        assert suppliers[delivered_bakery["water"].id].label == "Unknown supplier"

    def test_backward_trace_has_no_customers(self, delivered_bakery, service):
        result = service.trace(1, "LOAF-9001", "backward")
        assert EndpointKind.CUSTOMER not in {e.kind for e in result.endpoints}


class TestAllergens:
    def test_union_over_traced_batches(self, lineage, service):
        flour = lineage.batch("RM-FLOUR-002", kind=BatchKind.RAW_MATERIAL_LOT, allergens=[" Gluten "])
        seeds = lineage.batch("RM-SESAME-003", kind=BatchKind.RAW_MATERIAL_LOT, allergens=["sesame"])
        loaf = lineage.batch("LOAF-SEED-01", kind=BatchKind.FINISHED_GOOD, allergens=["gluten"])
        lineage.relation(flour, loaf, quantity="10")
        lineage.relation(seeds, loaf, quantity="1")

        result = service.trace(1, "LOAF-SEED-01", "backward")

        assert result.allergens == ["gluten", "sesame"]
        assert result.batch.allergens == ("gluten",)

    def test_unreadable_allergen_list_is_empty(self, lineage, db_session, service):
        batch = lineage.batch("DOUGH-BAD-01")
        batch.allergens = "gluten, sesame"
        db_session.commit()

        result = service.trace(1, "DOUGH-BAD-01", "forward")

        assert result.batch.allergens == ()
        assert result.allergens == []
