"""Tests for FastAPI application endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from quickparse.config import get_settings
from quickparse.main import app


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def supabase_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test-key")
    get_settings.cache_clear()


# Version Endpoint Tests


def test_version_endpoint(client: TestClient) -> None:
    """Test version endpoint returns version and commit hash."""
    response = client.get("/version")
    assert response.status_code == 200

    data = response.json()
    assert data == {"version": "1.0.0", "commit_hash": "development"}


# Health Check Tests


def test_health_check_without_supabase(client: TestClient) -> None:
    """Test health check when Supabase is not configured."""
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["services"] == {"parser": "healthy", "supabase": "not configured"}


@patch("quickparse.main.get_supabase_client")
def test_health_check_all_healthy(
    mock_supabase: MagicMock, client: TestClient, supabase_env
) -> None:
    """Test health check when Supabase answers."""
    mock_supabase_client = MagicMock()
    mock_query = MagicMock()
    mock_query.execute.return_value = MagicMock()
    mock_supabase_client.table.return_value.select.return_value.limit.return_value = mock_query
    mock_supabase.return_value = mock_supabase_client

    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["services"]["supabase"] == "healthy"
    mock_supabase_client.table.assert_called_once_with("questions")


@patch("quickparse.main.get_supabase_client")
def test_health_check_supabase_unhealthy(
    mock_supabase: MagicMock, client: TestClient, supabase_env
) -> None:
    """Test health check when the Supabase query fails."""
    mock_supabase_client = MagicMock()
    mock_supabase_client.table.side_effect = Exception("Connection refused")
    mock_supabase.return_value = mock_supabase_client

    response = client.get("/health")
    assert response.status_code == 503

    data = response.json()
    assert data["status"] == "unhealthy"
    assert "unhealthy" in data["services"]["supabase"]
    assert "Connection refused" in data["services"]["supabase"]


# Lifespan Tests


def test_lifespan_startup(capsys) -> None:
    """Test that startup validates configuration and logs the settings."""
    with TestClient(app) as client:
        assert client.get("/version").status_code == 200

    output = capsys.readouterr().out
    assert "Starting Quick-Parse API v1.0.0" in output
    assert "Supabase: not configured" in output
    assert "Shutting down Quick-Parse API" in output


def test_lifespan_fails_on_invalid_config(monkeypatch) -> None:
    """Test that startup fails fast on invalid configuration."""
    monkeypatch.setenv("SUPABASE_URL", "http://insecure.example.com")
    get_settings.cache_clear()

    with pytest.raises(Exception):
        with TestClient(app):
            pass


def test_openapi_lists_routes(client: TestClient) -> None:
    paths = client.get("/openapi.json").json()["paths"]
    assert "/api/quick-parse" in paths
    assert "/api/quick-parse/format" in paths
    assert "/api/quick-parse/validate" in paths
    assert "/api/lectures/{lecture_id}/group-ids" in paths
