"""
Unit tests for the container dispatcher.

Uses in-memory Docker and Kubernetes drivers and mocked ECS/SSH drivers.
"""

from unittest.mock import MagicMock

import pytest

from unideploy.models.container import (
    DeleteRequest,
    DeploymentDescriptor,
    LogsRequest,
    Operation,
    Platform,
    RollbackRequest,
    ScaleRequest,
    StatusRequest,
)
from unideploy.services.container_dispatcher import ContainerDispatcher
from unideploy.services.driver_registry import DriverRegistry
from unideploy.services.errors import BackendFailure


@pytest.mark.unit
class TestDispatchRouting:
    """Tests for platform resolution and adapter lookup."""

    @pytest.mark.asyncio
    async def test_deploy_then_status_round_trip(self, dispatcher):
        """svc1 deployed locally reports running."""
        deployed = await dispatcher.deploy(DeploymentDescriptor(
            name="svc1", image="nginx:latest", platform="local-runtime", port=8080,
        ))
        assert deployed.success, deployed.error
        assert deployed.platform == "local-docker"

        status = await dispatcher.status(StatusRequest(name="svc1", platform="local-runtime"))

        assert status.success
        assert status.data["running"] is True
        assert "raw" in status.data

    @pytest.mark.asyncio
    async def test_auto_matches_explicit_platform(self, make_settings, fake_docker, fake_k8s):
        """auto and the detected identifier give identical results."""
        settings = make_settings(KUBECONFIG="/tmp/kubeconfig")
        registry = DriverRegistry(
            factories={Platform.KUBERNETES: lambda s: fake_k8s, Platform.LOCAL_DOCKER: lambda s: fake_docker},
            settings=settings,
        )
        dispatcher = ContainerDispatcher(registry=registry, settings=settings)
        await dispatcher.deploy(DeploymentDescriptor(name="api", image="myrepo/api:v2", platform="kubernetes"))

        via_auto = await dispatcher.status(StatusRequest(name="api", platform="auto"))
        via_name = await dispatcher.status(StatusRequest(name="api", platform="kubernetes"))

        assert via_auto.to_wire() == via_name.to_wire()
        assert via_auto.platform == "kubernetes"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("label", ["AUTO", " auto", "Auto "])
    async def test_auto_label_is_case_insensitive(self, dispatcher, label):
        await dispatcher.deploy(DeploymentDescriptor(name="svc1", image="nginx:latest", platform="docker"))

        result = await dispatcher.status(StatusRequest(name="svc1", platform=label))

        assert result.success, result.error
        assert result.platform == "local-docker"

    @pytest.mark.asyncio
    async def test_unknown_platform(self, dispatcher):
        result = await dispatcher.status(StatusRequest(name="api", platform="nomad"))

        assert result.success is False
        assert result.error_type == "PlatformUnsupported"
        assert result.platform == "nomad"

    @pytest.mark.asyncio
    async def test_invalid_override_surfaces_at_dispatch(self, make_settings, registry):
        """An unknown DEPLOYMENT_PLATFORM fails the operation, not detection."""
        settings = make_settings(DEPLOYMENT_PLATFORM="swarm")
        dispatcher = ContainerDispatcher(registry=registry, settings=settings)

        result = await dispatcher.status(StatusRequest(name="api"))

        assert result.success is False
        assert result.error_type == "PlatformUnsupported"
        assert result.platform == "swarm"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("platform", ["local-docker", "docker", "local-runtime"])
    async def test_scale_unsupported_on_local_docker(self, dispatcher, fake_docker, platform):
        result = await dispatcher.scale(ScaleRequest(name="svc1", replicas=3, platform=platform))

        assert result.success is False
        assert result.error_type == "OperationUnsupportedOnPlatform"
        assert "Scaling not supported" in result.error
        assert fake_docker.calls == []

    @pytest.mark.asyncio
    async def test_rollback_unsupported_on_local_docker(self, dispatcher, fake_docker):
        result = await dispatcher.rollback(RollbackRequest(
            name="svc1", targetImage="nginx:1.25", platform="local-docker",
        ))

        assert result.success is False
        assert result.error_type == "OperationUnsupportedOnPlatform"
        assert fake_docker.calls == []

    @pytest.mark.asyncio
    async def test_scale_unsupported_on_remote_host(self, dispatcher, mock_ssh):
        result = await dispatcher.scale(ScaleRequest(name="api", replicas=2, platform="remote-host"))

        assert result.success is False
        assert result.error_type == "OperationUnsupportedOnPlatform"
        assert mock_ssh.mock_calls == []

    @pytest.mark.asyncio
    async def test_unsupported_check_does_not_build_driver(self, settings):
        factory = MagicMock()
        registry = DriverRegistry(factories={Platform.LOCAL_DOCKER: factory}, settings=settings)
        dispatcher = ContainerDispatcher(registry=registry, settings=settings)

        await dispatcher.scale(ScaleRequest(name="svc1", replicas=2, platform="local-docker"))

        factory.assert_not_called()

    def test_supports_table(self, dispatcher):
        assert dispatcher.supports(Operation.SCALE, Platform.KUBERNETES)
        assert dispatcher.supports(Operation.ROLLBACK, Platform.EC2_DOCKER)
        assert not dispatcher.supports(Operation.SCALE, Platform.EC2_DOCKER)
        assert not dispatcher.supports(Operation.ROLLBACK, Platform.LOCAL_DOCKER)


@pytest.mark.unit
class TestDispatchScenarios:
    """End-to-end operation sequences against in-memory drivers."""

    @pytest.mark.asyncio
    async def test_cluster_deploy_scale_status(self, dispatcher):
        deployed = await dispatcher.deploy(DeploymentDescriptor(
            name="api", image="myrepo/api:v2", platform="cluster", replicas=3,
        ))
        assert deployed.success, deployed.error

        scaled = await dispatcher.scale(ScaleRequest(name="api", replicas=5, platform="cluster"))
        assert scaled.success, scaled.error

        status = await dispatcher.status(StatusRequest(name="api", platform="cluster"))
        assert status.success
        assert status.data["desiredReplicas"] == 5

    @pytest.mark.asyncio
    async def test_remote_rollback_without_target_image(self, dispatcher, mock_ssh):
        result = await dispatcher.rollback(RollbackRequest(name="api", platform="remote-host"))

        assert result.success is False
        assert "targetImage is required" in result.error
        assert mock_ssh.mock_calls == []

    @pytest.mark.asyncio
    async def test_managed_scheduler_without_cluster(self, dispatcher, mock_ecs):
        result = await dispatcher.deploy(DeploymentDescriptor(
            name="api", image="myrepo/api:v2", platform="managed-scheduler",
        ))

        assert result.success is False
        assert result.error_type == "ConfigurationMissing"
        assert "ECS_CLUSTER_NAME" in result.error
        assert mock_ecs.mock_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("platform", ["local-docker", "kubernetes"])
    async def test_delete_missing_unit(self, dispatcher, platform):
        result = await dispatcher.delete(DeleteRequest(name="ghost", platform=platform))

        assert result.success is False
        assert result.error_type == "NotFound"

    @pytest.mark.asyncio
    async def test_logs_of_missing_unit_is_failure(self, dispatcher):
        result = await dispatcher.logs(LogsRequest(name="ghost", platform="kubernetes"))

        assert result.success is False
        assert result.error_type == "NotFound"

    @pytest.mark.asyncio
    async def test_partial_delete_is_failure(self, dispatcher, fake_docker):
        """Stop succeeding while remove fails is one failed result."""
        await dispatcher.deploy(DeploymentDescriptor(name="svc1", image="nginx:latest", platform="docker"))
        fake_docker.fail_remove = True

        result = await dispatcher.delete(DeleteRequest(name="svc1", platform="docker"))

        assert result.success is False
        assert result.error_type == "BackendFailure"
        assert "device busy" in result.error
        assert fake_docker.calls[-2:] == ["stop", "remove"]


@pytest.mark.unit
class TestResultNormalization:
    """No exception crosses the dispatcher boundary."""

    @pytest.mark.asyncio
    async def test_taxonomy_error_keeps_message(self, settings, registry):
        def failing(driver, request, settings):
            raise BackendFailure("scheduler rejected the request", "kubernetes")

        dispatcher = ContainerDispatcher(
            registry=registry,
            settings=settings,
            adapters={(Operation.STATUS, Platform.KUBERNETES): failing},
        )

        result = await dispatcher.status(StatusRequest(name="api", platform="k8s"))

        assert result.to_wire() == {
            "success": False,
            "platform": "kubernetes",
            "error": "scheduler rejected the request",
        }

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, settings, registry):
        def broken(driver, request, settings):
            raise KeyError("containers")

        dispatcher = ContainerDispatcher(
            registry=registry,
            settings=settings,
            adapters={(Operation.LOGS, Platform.KUBERNETES): broken},
        )

        result = await dispatcher.logs(LogsRequest(name="api", platform="kubernetes"))

        assert result.success is False
        assert "containers" in result.error
        assert result.error_type == "BackendFailure"

    @pytest.mark.asyncio
    async def test_driver_construction_failure_is_wrapped(self, settings):
        def exploding_factory(s):
            raise RuntimeError("no docker socket")

        registry = DriverRegistry(factories={Platform.LOCAL_DOCKER: exploding_factory}, settings=settings)
        dispatcher = ContainerDispatcher(registry=registry, settings=settings)

        result = await dispatcher.status(StatusRequest(name="svc1", platform="docker"))

        assert result.success is False
        assert result.error == "no docker socket"

    @pytest.mark.asyncio
    async def test_blank_exception_message_is_replaced(self, settings, registry):
        def silent(driver, request, settings):
            raise RuntimeError("   ")

        dispatcher = ContainerDispatcher(
            registry=registry,
            settings=settings,
            adapters={(Operation.STATUS, Platform.KUBERNETES): silent},
        )

        result = await dispatcher.status(StatusRequest(name="api", platform="kubernetes"))

        assert result.success is False
        assert result.error == "Unknown error"

    @pytest.mark.asyncio
    async def test_non_dict_payload_rejected(self, settings, registry):
        dispatcher = ContainerDispatcher(
            registry=registry,
            settings=settings,
            adapters={(Operation.STATUS, Platform.KUBERNETES): lambda d, r, s: "running"},
        )

        result = await dispatcher.status(StatusRequest(name="api", platform="kubernetes"))

        assert result.success is False
        assert "expected dict" in result.error
