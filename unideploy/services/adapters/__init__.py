"""
Per-(operation, platform) adapters.

An adapter is a plain function `(driver, request, settings) -> dict` that
validates the platform-specific parameters, calls driver primitives and
returns the payload of a successful OperationResult. Failures are raised
as ContainerPlatformError subclasses.
"""

from typing import Any, Callable, Dict, Tuple

from unideploy.models.container import Operation, Platform
from unideploy.services.adapters import ec2_docker, ecs_fargate, kubernetes_cluster, local_docker

AdapterFn = Callable[..., Dict[str, Any]]

_MODULES = {
    Platform.LOCAL_DOCKER: local_docker,
    Platform.EC2_DOCKER: ec2_docker,
    Platform.ECS_FARGATE: ecs_fargate,
    Platform.KUBERNETES: kubernetes_cluster,
}


def build_adapter_table() -> Dict[Tuple[Operation, Platform], AdapterFn]:
    return {
        (operation, platform): adapter
        for platform, module in _MODULES.items()
        for operation, adapter in module.ADAPTERS.items()
    }


def build_hint_table() -> Dict[Tuple[Operation, Platform], str]:
    """Explanations attached to unsupported (operation, platform) errors."""
    return {
        (operation, platform): hint
        for platform, module in _MODULES.items()
        for operation, hint in module.UNSUPPORTED_HINTS.items()
    }


__all__ = ["AdapterFn", "build_adapter_table", "build_hint_table"]
