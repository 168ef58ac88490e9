"""Backend drivers, one per deployment platform."""

from unideploy.services.drivers.base import ContainerDriver
from unideploy.services.drivers.docker_driver import DockerDriver
from unideploy.services.drivers.ecs_driver import EcsDriver
from unideploy.services.drivers.kubernetes_driver import KubernetesDriver
from unideploy.services.drivers.remote_host import CommandResult, RemoteHostDriver, SSHTarget

__all__ = [
    "ContainerDriver",
    "DockerDriver",
    "EcsDriver",
    "KubernetesDriver",
    "RemoteHostDriver",
    "CommandResult",
    "SSHTarget",
]
