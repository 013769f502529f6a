"""
Unit tests for repository listing API endpoints.
"""

import pytest
from unittest.mock import AsyncMock

# Skip tests if fastapi is not installed
pytest.importorskip("fastapi")

from fastapi.testclient import TestClient
from repodeck.main import app
from repodeck.api.dependencies import get_gateway
from repodeck.models.api_response import GatewayResult
from repodeck.models.repository import RepositorySummary


@pytest.fixture
def mock_gateway():
    """Mock GitHub gateway."""
    gateway = AsyncMock()
    app.dependency_overrides[get_gateway] = lambda: gateway
    yield gateway
    app.dependency_overrides.clear()


@pytest.fixture
def client(mock_gateway):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer gho_test"}


def test_list_repositories_requires_token(client, mock_gateway):
    """Test that listing repositories requires a token."""
    response = client.get("/api/repositories")

    assert response.status_code == 401
    mock_gateway.list_user_repositories.assert_not_awaited()


def test_list_repositories_rejects_malformed_header(client):
    """Test that an unknown authorization scheme is rejected."""
    response = client.get("/api/repositories", headers={"Authorization": "Basic abc"})

    assert response.status_code == 401


def test_list_repositories_success(client, mock_gateway, auth_headers):
    """Test successful repository listing."""
    mock_gateway.list_user_repositories.return_value = GatewayResult.ok([
        RepositorySummary(
            id=1,
            name="widgets",
            full_name="acme/widgets",
            owner_login="acme",
            language="Python",
            html_url="https://github.com/acme/widgets",
        )
    ])

    response = client.get("/api/repositories", headers=auth_headers)

    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.json()[0]["full_name"] == "acme/widgets"
    mock_gateway.list_user_repositories.assert_awaited_once_with("gho_test")


def test_list_repositories_upstream_failure(client, mock_gateway, auth_headers):
    """Test that GitHub failures map to 502."""
    mock_gateway.list_user_repositories.return_value = GatewayResult.failed("Bad credentials", status_code=401)

    response = client.get("/api/repositories", headers=auth_headers)

    assert response.status_code == 502
    assert response.json()["detail"] == "Bad credentials"


def test_health_check(client):
    """Test the health endpoint."""
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
