"""Adapters for containers on the local Docker engine."""

from typing import Any, Dict, Optional

from unideploy.config.settings import Settings
from unideploy.models.container import (
    DeleteRequest,
    DeploymentDescriptor,
    LogsRequest,
    Operation,
    Platform,
    StatusRequest,
)
from unideploy.services.adapters.options import LocalDockerOptions, parse_options
from unideploy.services.drivers.docker_driver import DockerDriver
from unideploy.services.errors import ConfigurationMissing
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="Docker")


def _nano_cpus(cpu: Optional[str]) -> Optional[int]:
    """Docker --cpus value ("0.5", "2") to nano CPUs."""
    if not cpu:
        return None
    try:
        return int(float(cpu) * 1_000_000_000)
    except ValueError:
        raise ConfigurationMissing(
            f"resources.cpu '{cpu}' is not a CPU count (local-docker expects e.g. '0.5')",
            Platform.LOCAL_DOCKER.value,
        )


def deploy(driver: DockerDriver, request: DeploymentDescriptor, settings: Settings) -> Dict[str, Any]:
    options = parse_options(LocalDockerOptions, request.platform_options)

    ports: Dict[str, int] = {}
    if request.port:
        ports[f"{request.port}/tcp"] = options.host_port or request.port

    resources = request.resources
    container = driver.run(
        image=request.image,
        name=request.name,
        ports=ports,
        environment=list(request.env),
        mem_limit=resources.memory if resources else None,
        nano_cpus=_nano_cpus(resources.cpu) if resources else None,
        restart_policy=options.restart_policy,
    )

    return {
        "name": request.name,
        "image": request.image,
        "containerId": container["id"],
        "ports": ports,
        "container": container,
    }


def status(driver: DockerDriver, request: StatusRequest, settings: Settings) -> Dict[str, Any]:
    inspected = driver.inspect(request.name)
    summary = inspected["summary"]
    state = (inspected["attrs"] or {}).get("State", {})

    running = summary["running"]
    health = summary["health"]
    return {
        "name": request.name,
        "running": running,
        "ready": running and health in (None, "healthy"),
        "status": summary["status"],
        "health": health,
        "raw": {"container": summary, "state": state},
    }


def logs(driver: DockerDriver, request: LogsRequest, settings: Settings) -> Dict[str, Any]:
    text = driver.logs(request.name, tail=request.tail)
    lines = text.splitlines()
    return {
        "name": request.name,
        "unit": request.name,
        "tail": request.tail,
        "lines": len(lines),
        "logs": text,
    }


def delete(driver: DockerDriver, request: DeleteRequest, settings: Settings) -> Dict[str, Any]:
    driver.stop(request.name)
    driver.remove(request.name, force=True)
    logger.info(f"Container {request.name} stopped and removed")
    return {"name": request.name, "deleted": [f"container/{request.name}"]}


ADAPTERS = {
    Operation.DEPLOY: deploy,
    Operation.STATUS: status,
    Operation.LOGS: logs,
    Operation.DELETE: delete,
}

UNSUPPORTED_HINTS = {
    Operation.SCALE: "Scaling not supported for single Docker containers. Use ECS or Kubernetes for scaling.",
    Operation.ROLLBACK: "Redeploy with the previous image instead.",
}
