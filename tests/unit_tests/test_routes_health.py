"""Tests for health check endpoints."""

from datetime import datetime

from fastapi.testclient import TestClient

from tests.consts import API_BASE


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get(f"{API_BASE}/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert data["service"] == "Transport Requisition API"
    assert data["version"] == "v1"

    # Verify timestamp is a valid ISO format
    datetime.fromisoformat(data["timestamp"])


def test_health_check_needs_no_user(client):
    """Test that /health works without the X-User-Id header."""
    assert client.get(f"{API_BASE}/health").status_code == 200


def test_readiness_check_success(client):
    """Test readiness check endpoint when the database answers."""
    response = client.get(f"{API_BASE}/health/ready")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "ready"
    assert data["database"] == "reachable"
    assert data["tables"]["users"] == 6


def test_readiness_database_unreachable(client, mock_domain_db_pool):
    """Test readiness check returns 503 when the database is down."""
    mock_domain_db_pool.health_check.return_value = False

    response = client.get(f"{API_BASE}/health/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "unreachable"


def test_readiness_table_counts_fail(client, mock_domain_db_pool):
    """Test readiness check returns 503 when row counts cannot be read."""
    mock_domain_db_pool.get_table_counts.side_effect = RuntimeError("Domain DB pool not initialized")

    response = client.get(f"{API_BASE}/health/ready")

    assert response.status_code == 503
    assert response.json()["database"] == "error"


def test_pool_lifecycle_hooks(app, mock_domain_db_pool):
    """Test the pool is initialized on startup and closed on shutdown."""
    with TestClient(app):
        mock_domain_db_pool.initialize.assert_awaited_once()
        mock_domain_db_pool.close.assert_not_awaited()

    mock_domain_db_pool.close.assert_awaited_once()


def test_openapi_schema(client):
    """Test the OpenAPI document is served."""
    response = client.get("/openapi.json")

    assert response.status_code == 200
    assert f"{API_BASE}/requests/{{request_id}}/forward" in response.json()["paths"]
