"""
Tests for the traceability API endpoints.
"""

TENANT_HEADERS = {"X-Tenant-ID": "1"}


class TestTraceEndpoint:
    def test_forward_trace(self, client, bakery):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "RM-FLOUR-001"},
            headers=TENANT_HEADERS,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["direction"] == "forward"
        assert data["batch"]["code"] == "RM-FLOUR-001"
        assert data["batch"]["kind"] == "raw_material_lot"
        assert len(data["nodes"]) == 4
        assert len(data["links"]) == 3
        assert data["truncated"] is False
        assert data["cycle_flags"] == []

    def test_mass_balance_headline(self, client, bakery):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "rm-flour-001"},
            headers=TENANT_HEADERS,
        )

        balance = response.json()["mass_balance"]
        assert balance["total_input"] == 160
        assert balance["total_output"] == 158
        assert balance["variance"] == 2
        assert abs(balance["variance_percent"] - 1.25) < 1e-9
        assert balance["unit"] == "kg"

    def test_backward_trace(self, client, bakery):
        response = client.get(
            "/api/traceability/backward",
            params={"batch_code": "LOAF-9002"},
            headers=TENANT_HEADERS,
        )

        assert response.status_code == 200
        codes = {node["batch"]["code"] for node in response.json()["nodes"]}
        assert codes == {"LOAF-9002", "DOUGH-550", "RM-FLOUR-001", "RM-WATER-014"}

    def test_links_carry_relation_and_quantity(self, client, bakery):
        response = client.get(
            "/api/traceability/backward",
            params={"batch_code": "LOAF-9002"},
            headers=TENANT_HEADERS,
        )

        links = {(link["from_node"], link["to_node"]): link for link in response.json()["links"]}
        water_link = links[(bakery["water"].id, bakery["dough"].id)]
        assert water_link["quantity"] == 60
        assert water_link["unit"] == "kg"

    def test_customers_and_allergens(self, client, lineage, bakery):
        lineage.dispatch(bakery["loaf_2"], "Corner Cafe", quantity="78", reference="DN-1003")

        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "RM-FLOUR-001"},
            headers=TENANT_HEADERS,
        )

        data = response.json()
        assert data["endpoints"] == [
            {
                "kind": "customer",
                "batch_id": bakery["loaf_2"].id,
                "label": "Corner Cafe",
                "sublabel": "DN-1003",
                "date": None,
                "quantity": 78.0,
                "unit": "kg",
            }
        ]
        assert data["allergens"] == []
        assert data["batch"]["allergens"] == []

    def test_truncated_with_small_depth(self, client, lineage):
        lineage.chain(6)

        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "CHAIN-000", "max_depth": 2},
            headers=TENANT_HEADERS,
        )

        data = response.json()
        assert data["truncated"] is True
        assert data["summary"]["max_depth_reached"] == 2

    def test_request_id_echoed(self, client, bakery):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "RM-FLOUR-001"},
            headers={**TENANT_HEADERS, "X-Request-ID": "recall-drill-7"},
        )
        assert response.headers["X-Request-ID"] == "recall-drill-7"


class TestTraceErrors:
    def test_unknown_batch(self, client, bakery):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "NOPE-1"},
            headers=TENANT_HEADERS,
        )
        assert response.status_code == 404
        assert response.json()["detail"] == "Batch 'NOPE-1' not found"

    def test_other_tenant_gets_404(self, client, bakery, other_tenant):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "RM-FLOUR-001"},
            headers={"X-Tenant-ID": str(other_tenant.id)},
        )
        assert response.status_code == 404

    def test_bad_direction(self, client, bakery):
        response = client.get(
            "/api/traceability/sideways",
            params={"batch_code": "RM-FLOUR-001"},
            headers=TENANT_HEADERS,
        )
        assert response.status_code == 400

    def test_missing_batch_code(self, client, bakery):
        response = client.get("/api/traceability/forward", headers=TENANT_HEADERS)
        assert response.status_code == 400

    def test_non_positive_depth(self, client, bakery):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "RM-FLOUR-001", "max_depth": 0},
            headers=TENANT_HEADERS,
        )
        assert response.status_code == 400

    def test_missing_tenant_header(self, client, bakery):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "RM-FLOUR-001"},
        )
        assert response.status_code == 400

    def test_malformed_tenant_header(self, client, bakery):
        response = client.get(
            "/api/traceability/forward",
            params={"batch_code": "RM-FLOUR-001"},
            headers={"X-Tenant-ID": "bakery"},
        )
        assert response.status_code == 400
