"""
Tests for health check endpoint.
"""
from unittest.mock import MagicMock

from fastapi import status
from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import get_db
from app.main import app


def test_health_endpoint_returns_ok(client, store):
    """Test that /api/v1/health returns ok when DB is healthy."""
    store.load([("u1", ["report:view"])])

    response = client.get("/api/v1/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["ok"] is True
    assert data["db"] is True
    assert "environment" in data
    assert data["custom_permission_users"] == 1


def test_health_endpoint_with_db_failure(store):
    """Test that /api/v1/health returns 503 when the DB query fails."""
    def failing_get_db():
        db = MagicMock()
        db.execute.side_effect = SQLAlchemyError("Simulated DB failure")
        yield db

    app.dependency_overrides[get_db] = failing_get_db

    try:
        client = TestClient(app)
        response = client.get("/api/v1/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["detail"] == "Database connection failed"
    finally:
        app.dependency_overrides.clear()


def test_health_endpoint_trace_id_header(client):
    """Test that health endpoint includes trace_id in response headers."""
    response = client.get("/api/v1/health")

    assert "X-Trace-ID" in response.headers
    assert len(response.headers["X-Trace-ID"]) > 0


def test_root_endpoint(client):
    response = client.get("/")

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["docs"] == "/docs"
