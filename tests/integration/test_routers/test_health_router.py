"""
Integration tests for the health and root endpoints.
"""

import pytest
from fastapi.testclient import TestClient

import unideploy


@pytest.mark.integration
def test_health_endpoint_returns_200(client: TestClient):
    """Health check endpoint should return 200 OK."""
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == unideploy.__version__


@pytest.mark.integration
def test_health_reports_detected_platform(client: TestClient, monkeypatch):
    """Health check should report what 'auto' resolves to."""
    assert client.get("/health").json()["platform"] == "local-docker"

    monkeypatch.setenv("DEPLOYMENT_PLATFORM", "k8s")
    from unideploy.config.settings import get_settings
    get_settings.cache_clear()

    assert client.get("/health").json()["platform"] == "k8s"


@pytest.mark.integration
def test_root_endpoint(client: TestClient):
    """Root endpoint should describe the service."""
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["status"] == "running"
