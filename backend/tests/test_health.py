"""
Tests for health check endpoints.
"""


class TestHealthEndpoints:
    """Test health check API endpoints."""

    def test_health_check(self, client):
        """Basic health check should return healthy status."""
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "traceability-api"

    def test_detailed_health_check(self, client):
        """Detailed check runs a query against the overridden session."""
        response = client.get("/api/health/detailed")
        assert response.status_code == 200
        assert response.json()["database"] == "ok"
