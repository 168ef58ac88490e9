"""Platform detection and identifier normalization."""

from typing import Optional

from unideploy.config.settings import Settings, get_settings
from unideploy.models.container import Platform
from unideploy.services.errors import PlatformUnsupported

# Every accepted spelling of each platform, folded to its canonical value
PLATFORM_ALIASES = {
    "local-docker": Platform.LOCAL_DOCKER,
    "docker": Platform.LOCAL_DOCKER,
    "local-runtime": Platform.LOCAL_DOCKER,
    "ec2-docker": Platform.EC2_DOCKER,
    "ec2": Platform.EC2_DOCKER,
    "remote-host": Platform.EC2_DOCKER,
    "ecs-fargate": Platform.ECS_FARGATE,
    "ecs": Platform.ECS_FARGATE,
    "managed-scheduler": Platform.ECS_FARGATE,
    "kubernetes": Platform.KUBERNETES,
    "k8s": Platform.KUBERNETES,
    "eks": Platform.KUBERNETES,
    "cluster": Platform.KUBERNETES,
}


def detect_platform(settings: Optional[Settings] = None) -> str:
    """
    Detect the deployment target from process configuration.

    First match wins:
        1. DEPLOYMENT_PLATFORM, returned verbatim (not validated here)
        2. EKS_CLUSTER_NAME -> kubernetes
        3. ECS_CLUSTER_NAME -> ecs-fargate
        4. KUBECONFIG -> kubernetes
        5. local-docker

    TODO: revisit the EKS-before-ECS order for environments that set both
    cluster names; kept as-is for compatibility with existing deployments.
    """
    settings = settings or get_settings()

    if settings.DEPLOYMENT_PLATFORM:
        return settings.DEPLOYMENT_PLATFORM
    if settings.EKS_CLUSTER_NAME:
        return Platform.KUBERNETES.value
    if settings.ECS_CLUSTER_NAME:
        return Platform.ECS_FARGATE.value
    if settings.KUBECONFIG:
        return Platform.KUBERNETES.value
    return Platform.LOCAL_DOCKER.value


def canonical_platform(identifier: str) -> Platform:
    """
    Fold a platform identifier or alias to its canonical Platform.

    Raises:
        PlatformUnsupported: unknown identifier, or the unresolved 'auto'
    """
    key = (identifier or "").strip().lower()
    platform = PLATFORM_ALIASES.get(key)
    if platform is None:
        supported = ", ".join(sorted({p.value for p in PLATFORM_ALIASES.values()}))
        raise PlatformUnsupported(
            f"Unsupported platform: '{identifier}'. Supported platforms: {supported}",
            platform=identifier,
        )
    return platform
