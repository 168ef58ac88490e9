"""
Unit tests for platform detection and identifier normalization.
"""

import pytest

from unideploy.models.container import Platform
from unideploy.services.errors import PlatformUnsupported
from unideploy.services.platform_detector import PLATFORM_ALIASES, canonical_platform, detect_platform


@pytest.mark.unit
class TestDetectPlatform:
    """Tests for detect_platform resolution order."""

    def test_defaults_to_local_docker(self, make_settings):
        """No signals should resolve to local-docker."""
        assert detect_platform(make_settings()) == "local-docker"

    def test_override_returned_verbatim(self, make_settings):
        """DEPLOYMENT_PLATFORM is returned as-is, even when unknown."""
        settings = make_settings(DEPLOYMENT_PLATFORM="nomad", EKS_CLUSTER_NAME="prod")
        assert detect_platform(settings) == "nomad"

    def test_override_beats_every_signal(self, make_settings):
        settings = make_settings(
            DEPLOYMENT_PLATFORM="ec2",
            EKS_CLUSTER_NAME="eks-prod",
            ECS_CLUSTER_NAME="ecs-prod",
            KUBECONFIG="/tmp/kubeconfig",
        )
        assert detect_platform(settings) == "ec2"

    def test_eks_cluster_beats_ecs_cluster(self, make_settings):
        """Cluster name is checked before the ECS cluster name."""
        settings = make_settings(
            EKS_CLUSTER_NAME="eks-prod",
            ECS_CLUSTER_NAME="ecs-prod",
            KUBECONFIG="/tmp/kubeconfig",
        )
        assert detect_platform(settings) == "kubernetes"

    def test_ecs_cluster_beats_kubeconfig(self, make_settings):
        settings = make_settings(ECS_CLUSTER_NAME="ecs-prod", KUBECONFIG="/tmp/kubeconfig")
        assert detect_platform(settings) == "ecs-fargate"

    def test_kubeconfig_alone(self, make_settings):
        assert detect_platform(make_settings(KUBECONFIG="/tmp/kubeconfig")) == "kubernetes"

    def test_priority_order_removing_one_signal_at_a_time(self, make_settings):
        """Peeling signals off from the top walks down the resolution order."""
        signals = {
            "DEPLOYMENT_PLATFORM": "ec2-docker",
            "EKS_CLUSTER_NAME": "eks-prod",
            "ECS_CLUSTER_NAME": "ecs-prod",
            "KUBECONFIG": "/tmp/kubeconfig",
        }
        expected = ["ec2-docker", "kubernetes", "ecs-fargate", "kubernetes", "local-docker"]

        observed = []
        for key in [None, *signals]:
            if key:
                signals.pop(key)
            observed.append(detect_platform(make_settings(**signals)))

        assert observed == expected

    def test_blank_values_are_ignored(self, make_settings):
        """Empty strings do not count as signals."""
        settings = make_settings(DEPLOYMENT_PLATFORM="", ECS_CLUSTER_NAME="  ")
        assert detect_platform(settings) == "local-docker"

    def test_reads_environment(self, monkeypatch):
        """Without explicit settings, detection uses the process environment."""
        from unideploy.config.settings import get_settings

        monkeypatch.setenv("ECS_CLUSTER_NAME", "from-env")
        get_settings.cache_clear()

        assert detect_platform() == "ecs-fargate"


@pytest.mark.unit
class TestCanonicalPlatform:
    """Tests for canonical_platform."""

    @pytest.mark.parametrize("identifier,expected", [
        ("docker", Platform.LOCAL_DOCKER),
        ("local-runtime", Platform.LOCAL_DOCKER),
        ("ec2", Platform.EC2_DOCKER),
        ("remote-host", Platform.EC2_DOCKER),
        ("ecs", Platform.ECS_FARGATE),
        ("managed-scheduler", Platform.ECS_FARGATE),
        ("k8s", Platform.KUBERNETES),
        ("eks", Platform.KUBERNETES),
        ("cluster", Platform.KUBERNETES),
        ("  Kubernetes ", Platform.KUBERNETES),
    ])
    def test_aliases(self, identifier, expected):
        assert canonical_platform(identifier) == expected

    def test_canonical_names_map_to_themselves(self):
        for platform in set(PLATFORM_ALIASES.values()):
            assert canonical_platform(platform.value) == platform

    def test_unknown_identifier(self):
        with pytest.raises(PlatformUnsupported) as exc_info:
            canonical_platform("nomad")

        assert "nomad" in str(exc_info.value)
        assert "local-docker" in str(exc_info.value)
        assert exc_info.value.code == "PlatformUnsupported"

    def test_auto_is_never_resolved(self):
        """'auto' must go through detection first."""
        with pytest.raises(PlatformUnsupported):
            canonical_platform("auto")
