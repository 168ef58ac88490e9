"""
Pytest configuration and shared fixtures.

This file provides common test fixtures used across unit and integration tests:
- Isolated settings (no platform signals leak in from the host environment)
- In-memory drivers and a dispatcher wired to them
- Test clients for API testing
"""

from typing import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from fakes import FakeDockerDriver, FakeKubernetesDriver
from unideploy.config.settings import Settings, get_settings
from unideploy.models.container import Platform
from unideploy.services.container_dispatcher import ContainerDispatcher, get_container_dispatcher
from unideploy.services.driver_registry import DriverRegistry

PLATFORM_ENV_VARS = [
    "DEPLOYMENT_PLATFORM",
    "EKS_CLUSTER_NAME",
    "ECS_CLUSTER_NAME",
    "KUBECONFIG",
    "ECS_SUBNETS",
    "ECS_SECURITY_GROUPS",
    "ECS_EXECUTION_ROLE_ARN",
    "EC2_HOST",
    "EC2_USER",
    "SSH_KEY_PATH",
    "AWS_ACCESS_KEY_ID",
    "AWS_PROFILE",
]


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove platform signals of the machine running the tests."""
    for var in PLATFORM_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_settings():
    """Factory for Settings that ignore .env files."""
    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)
    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    """Settings with no platform configured (auto resolves to local-docker)."""
    return make_settings()


# =============================================================================
# Driver Fixtures
# =============================================================================

@pytest.fixture
def fake_docker() -> FakeDockerDriver:
    return FakeDockerDriver()


@pytest.fixture
def fake_k8s() -> FakeKubernetesDriver:
    return FakeKubernetesDriver()


@pytest.fixture
def mock_ecs():
    """ECS driver mock; no AWS access."""
    driver = MagicMock()
    driver.platform = Platform.ECS_FARGATE
    return driver


@pytest.fixture
def mock_ssh():
    """Remote host driver mock; no SSH access."""
    driver = MagicMock()
    driver.platform = Platform.EC2_DOCKER
    return driver


@pytest.fixture
def registry(settings, fake_docker, fake_k8s, mock_ecs, mock_ssh) -> DriverRegistry:
    return DriverRegistry(
        factories={
            Platform.LOCAL_DOCKER: lambda s: fake_docker,
            Platform.EC2_DOCKER: lambda s: mock_ssh,
            Platform.ECS_FARGATE: lambda s: mock_ecs,
            Platform.KUBERNETES: lambda s: fake_k8s,
        },
        settings=settings,
    )


@pytest.fixture
def dispatcher(registry, settings) -> ContainerDispatcher:
    return ContainerDispatcher(registry=registry, settings=settings)


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def app(dispatcher):
    """FastAPI application with the dispatcher wired to in-memory drivers."""
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_container_dispatcher] = lambda: dispatcher
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Synchronous test client for API testing."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def async_client_factory(app):
    """
    Asynchronous test client for API testing.

    Returned as a factory so tests stay usable under strict asyncio mode.
    """
    def _make() -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
    return _make


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Pytest configuration hook."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
