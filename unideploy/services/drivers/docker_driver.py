"""Local Docker engine driver."""

from typing import Any, Dict, List, Optional

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound as DockerNotFound

from unideploy.models.container import Platform
from unideploy.services.drivers.base import ContainerDriver
from unideploy.services.errors import BackendFailure, NotFound
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="Docker")


def _container_summary(container) -> Dict[str, Any]:
    """Compact, JSON-safe view of a docker Container."""
    attrs = container.attrs or {}
    state = attrs.get("State", {})
    return {
        "id": container.id[:12] if container.id else None,
        "name": container.name,
        "image": attrs.get("Config", {}).get("Image"),
        "status": state.get("Status", container.status),
        "running": bool(state.get("Running", container.status == "running")),
        "health": (state.get("Health") or {}).get("Status"),
        "ports": attrs.get("NetworkSettings", {}).get("Ports") or {},
        "started_at": state.get("StartedAt"),
    }


class DockerDriver(ContainerDriver):
    """Docker engine reached through the docker SDK (DOCKER_HOST or the local socket)."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        self._client = client

    @property
    def platform(self) -> Platform:
        return Platform.LOCAL_DOCKER

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = docker.from_env()
            except DockerException as e:
                raise BackendFailure(f"Cannot connect to Docker: {e}", Platform.LOCAL_DOCKER.value)
        return self._client

    def version(self) -> Optional[str]:
        try:
            return self.client.version().get("Version")
        except DockerException as e:
            raise BackendFailure(f"Docker engine unreachable: {e}", Platform.LOCAL_DOCKER.value)

    def run(
        self,
        image: str,
        name: str,
        ports: Optional[Dict[str, int]] = None,
        environment: Optional[List[str]] = None,
        mem_limit: Optional[str] = None,
        nano_cpus: Optional[int] = None,
        restart_policy: str = "unless-stopped",
    ) -> Dict[str, Any]:
        """Start a detached container, replacing any existing container of the same name."""
        self._remove_existing(name)

        run_kwargs: Dict[str, Any] = {
            "image": image,
            "name": name,
            "ports": ports or {},
            "environment": environment or [],
            "restart_policy": {"Name": restart_policy},
            "labels": {"unideploy.managed": "true", "unideploy.name": name},
            "detach": True,
        }
        if mem_limit:
            run_kwargs["mem_limit"] = mem_limit
        if nano_cpus:
            run_kwargs["nano_cpus"] = nano_cpus

        logger.info(f"Creating container {name} from image {image}")
        try:
            container = self.client.containers.run(**run_kwargs)
            container.reload()
        except ImageNotFound:
            raise BackendFailure(f"Docker image not found: {image}", Platform.LOCAL_DOCKER.value)
        except APIError as e:
            raise BackendFailure(f"Docker run failed: {e.explanation or e}", Platform.LOCAL_DOCKER.value)
        except DockerException as e:
            raise BackendFailure(f"Docker run failed: {e}", Platform.LOCAL_DOCKER.value)

        logger.info(f"Container {name} created: {container.id[:12]}")
        return _container_summary(container)

    def _remove_existing(self, name: str) -> None:
        try:
            existing = self.client.containers.get(name)
        except DockerNotFound:
            return
        except DockerException as e:
            raise BackendFailure(f"Docker lookup failed for {name}: {e}", Platform.LOCAL_DOCKER.value)
        logger.info(f"Replacing existing container {name}")
        try:
            existing.remove(force=True)
        except DockerException as e:
            raise BackendFailure(f"Failed to replace container {name}: {e}", Platform.LOCAL_DOCKER.value)

    def get(self, name: str):
        """Return the container, raising NotFound when it does not exist."""
        try:
            return self.client.containers.get(name)
        except DockerNotFound:
            raise NotFound(f"Container '{name}' not found", Platform.LOCAL_DOCKER.value)
        except DockerException as e:
            raise BackendFailure(f"Docker lookup failed for {name}: {e}", Platform.LOCAL_DOCKER.value)

    def inspect(self, name: str) -> Dict[str, Any]:
        container = self.get(name)
        return {"summary": _container_summary(container), "attrs": container.attrs}

    def stop(self, name: str, timeout: int = 10) -> None:
        container = self.get(name)
        try:
            container.stop(timeout=timeout)
        except DockerException as e:
            raise BackendFailure(f"Failed to stop container {name}: {e}", Platform.LOCAL_DOCKER.value)

    def remove(self, name: str, force: bool = True) -> None:
        container = self.get(name)
        try:
            container.remove(force=force)
        except DockerException as e:
            raise BackendFailure(f"Failed to remove container {name}: {e}", Platform.LOCAL_DOCKER.value)

    def logs(self, name: str, tail: int = 100) -> str:
        container = self.get(name)
        try:
            output = container.logs(tail=tail, stdout=True, stderr=True, timestamps=False)
        except DockerException as e:
            raise BackendFailure(f"Failed to read logs for {name}: {e}", Platform.LOCAL_DOCKER.value)
        return output.decode("utf-8", errors="replace") if isinstance(output, bytes) else str(output)
