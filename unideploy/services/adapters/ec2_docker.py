"""Adapters for Docker on a remote host reached over SSH."""

import json
import shlex
from typing import Any, Dict, List, Optional, Tuple

from unideploy.config.settings import Settings
from unideploy.models.container import (
    DeleteRequest,
    DeploymentDescriptor,
    LogsRequest,
    Operation,
    Platform,
    RollbackRequest,
    StatusRequest,
)
from unideploy.services.adapters.options import RemoteHostOptions, parse_options
from unideploy.services.drivers.remote_host import CommandResult, RemoteHostDriver, SSHTarget
from unideploy.services.errors import BackendFailure, ConfigurationMissing, NotFound
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="SSH")

PULL_TIMEOUT = 300


def _is_missing(result: CommandResult) -> bool:
    output = f"{result.stderr}\n{result.stdout}".lower()
    return "no such container" in output or "no such object" in output


def _raise_for(result: CommandResult, action: str, name: str, target: SSHTarget) -> None:
    if result.success:
        return
    if _is_missing(result):
        raise NotFound(f"Container '{name}' not found on {target.host}", Platform.EC2_DOCKER.value)
    detail = (result.stderr or result.stdout).strip() or f"exit code {result.exit_code}"
    raise BackendFailure(f"{action} failed on {target.host}: {detail}", Platform.EC2_DOCKER.value)


def _run_args(
    name: str,
    image: str,
    publish: List[str],
    env: List[str],
    memory: Optional[str] = None,
    cpus: Optional[str] = None,
    restart_policy: str = "unless-stopped",
) -> List[str]:
    args = ["run", "-d", "--name", name, "--restart", restart_policy]
    for mapping in publish:
        args += ["-p", mapping]
    for entry in env:
        args += ["-e", entry]
    if memory:
        args += ["--memory", memory]
    if cpus:
        args += ["--cpus", cpus]
    args.append(image)
    return args


def _pull(driver: RemoteHostDriver, target: SSHTarget, image: str) -> None:
    result = driver.docker(target, "pull", image, timeout=PULL_TIMEOUT)
    if not result.success:
        # The image may only exist on the host
        logger.warning(f"docker pull {image} failed on {target.host}: {result.stderr.strip()}")


def _inspect(driver: RemoteHostDriver, target: SSHTarget, name: str) -> Dict[str, Any]:
    result = driver.docker(target, "inspect", "--format", "{{json .}}", name)
    _raise_for(result, "docker inspect", name, target)
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError:
        raise BackendFailure(f"Unreadable docker inspect output from {target.host}", Platform.EC2_DOCKER.value)


def _image_env(driver: RemoteHostDriver, target: SSHTarget, image: Optional[str]) -> List[str]:
    """ENV entries baked into an image; empty when the image cannot be inspected."""
    if not image:
        return []
    result = driver.docker(target, "image", "inspect", "--format", "{{json .Config.Env}}", image)
    if not result.success:
        logger.warning(f"docker image inspect {image} failed on {target.host}: {result.stderr.strip()}")
        return []
    try:
        return json.loads(result.stdout) or []
    except json.JSONDecodeError:
        logger.warning(f"Unreadable image env for {image} on {target.host}")
        return []


def _resource_limits(host_config: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """--memory and --cpus values of a running container's HostConfig."""
    memory = host_config.get("Memory") or 0
    nano_cpus = host_config.get("NanoCpus") or 0
    return (
        str(memory) if memory > 0 else None,
        f"{nano_cpus / 1_000_000_000:g}" if nano_cpus > 0 else None,
    )


def deploy(driver: RemoteHostDriver, request: DeploymentDescriptor, settings: Settings) -> Dict[str, Any]:
    options = parse_options(RemoteHostOptions, request.platform_options)
    target = options.target(settings)
    name = shlex.quote(request.name)

    # Replacing a previous container is best effort: it may not exist
    driver.execute(target, f"docker stop {name} >/dev/null 2>&1; docker rm {name} >/dev/null 2>&1; true")
    _pull(driver, target, request.image)

    publish = []
    if request.port:
        publish.append(f"{options.host_port or request.port}:{request.port}")

    resources = request.resources
    result = driver.docker(
        target,
        *_run_args(
            request.name,
            request.image,
            publish,
            request.env,
            memory=resources.memory if resources else None,
            cpus=resources.cpu if resources else None,
        ),
    )
    _raise_for(result, "docker run", request.name, target)

    container_id = result.stdout.strip()[:12]
    logger.info(f"Container {request.name} started on {target.host}: {container_id}")
    return {
        "name": request.name,
        "image": request.image,
        "host": target.host,
        "containerId": container_id,
        "ports": publish,
    }


def rollback(driver: RemoteHostDriver, request: RollbackRequest, settings: Settings) -> Dict[str, Any]:
    if not request.target_image:
        raise ConfigurationMissing(
            "targetImage is required for rollback on ec2-docker",
            Platform.EC2_DOCKER.value,
        )
    options = parse_options(RemoteHostOptions, request.platform_options)
    target = options.target(settings)

    current = _inspect(driver, target, request.name)
    config = current.get("Config") or {}
    host_config = current.get("HostConfig") or {}

    publish = []
    for container_port, bindings in (host_config.get("PortBindings") or {}).items():
        for binding in bindings or []:
            host_port = binding.get("HostPort")
            if host_port:
                publish.append(f"{host_port}:{container_port.split('/')[0]}")
    # Only the operator-supplied env carries over; image ENV comes from the target image
    image_env = set(_image_env(driver, target, current.get("Image") or config.get("Image")))
    env = [
        entry for entry in config.get("Env") or []
        if entry not in image_env and not entry.startswith("PATH=")
    ]
    memory, cpus = _resource_limits(host_config)
    restart_policy = (host_config.get("RestartPolicy") or {}).get("Name") or "unless-stopped"

    _pull(driver, target, request.target_image)

    name = shlex.quote(request.name)
    removed = driver.execute(target, f"docker stop {name} && docker rm {name}")
    _raise_for(removed, "Removing the current container", request.name, target)

    result = driver.docker(
        target,
        *_run_args(
            request.name,
            request.target_image,
            publish,
            env,
            memory=memory,
            cpus=cpus,
            restart_policy=restart_policy,
        ),
    )
    if not result.success:
        raise BackendFailure(
            f"Rollback failed on {target.host}: previous container removed but "
            f"{request.target_image} did not start: {result.stderr.strip()}",
            Platform.EC2_DOCKER.value,
        )

    logger.info(f"Container {request.name} rolled back to {request.target_image} on {target.host}")
    return {
        "name": request.name,
        "host": target.host,
        "rolledBackTo": request.target_image,
        "previousImage": config.get("Image"),
        "containerId": result.stdout.strip()[:12],
    }


def status(driver: RemoteHostDriver, request: StatusRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(RemoteHostOptions, request.platform_options)
    target = options.target(settings)

    result = driver.docker(target, "inspect", "--format", "{{json .State}}", request.name)
    _raise_for(result, "docker inspect", request.name, target)
    try:
        state = json.loads(result.stdout)
    except json.JSONDecodeError:
        raise BackendFailure(f"Unreadable docker inspect output from {target.host}", Platform.EC2_DOCKER.value)

    running = bool(state.get("Running"))
    health = (state.get("Health") or {}).get("Status")
    return {
        "name": request.name,
        "host": target.host,
        "running": running,
        "ready": running and health in (None, "healthy"),
        "status": state.get("Status"),
        "health": health,
        "raw": state,
    }


def logs(driver: RemoteHostDriver, request: LogsRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(RemoteHostOptions, request.platform_options)
    target = options.target(settings)

    result = driver.execute(target, f"docker logs --tail {request.tail} {shlex.quote(request.name)} 2>&1")
    _raise_for(result, "docker logs", request.name, target)

    text = result.stdout
    return {
        "name": request.name,
        "unit": request.name,
        "tail": request.tail,
        "lines": len(text.splitlines()),
        "logs": text,
    }


def delete(driver: RemoteHostDriver, request: DeleteRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(RemoteHostOptions, request.platform_options)
    target = options.target(settings)
    name = shlex.quote(request.name)

    result = driver.execute(target, f"docker stop {name} && docker rm {name}")
    _raise_for(result, "Deleting the container", request.name, target)

    logger.info(f"Container {request.name} removed from {target.host}")
    return {"name": request.name, "host": target.host, "deleted": [f"container/{request.name}"]}


ADAPTERS = {
    Operation.DEPLOY: deploy,
    Operation.ROLLBACK: rollback,
    Operation.STATUS: status,
    Operation.LOGS: logs,
    Operation.DELETE: delete,
}

UNSUPPORTED_HINTS = {
    Operation.SCALE: "Scaling not supported for single Docker containers. Use ECS or Kubernetes for scaling.",
}
