"""Test health check endpoint and router mounting."""

from fastapi.testclient import TestClient

from cortex.main import app

client = TestClient(app)


def test_health_check():
    """Test that /health returns 200 with status ok."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_v1_routes_mounted():
    paths = app.openapi()["paths"]
    assert "/v1/records" in paths
    assert "/v1/records/{record_id}/suggestions/refresh" in paths
    assert "/v1/records/{record_id}/suggestions/{suggestion_id}/accept" in paths
    assert "/v1/records/{record_id}/suggestions/{suggestion_id}/reject" in paths
    assert "/v1/disclaimers/acknowledge" in paths
    assert "/v1/preferences/ai" in paths
    assert "/v1/admin/users/{user_id}/role" in paths
