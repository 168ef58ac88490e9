"""Adapters for AWS ECS services on Fargate."""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from unideploy.config.settings import Settings
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
from unideploy.services.adapters.options import EcsOptions, parse_options
from unideploy.services.drivers.ecs_driver import EcsDriver
from unideploy.services.errors import BackendFailure, ConfigurationMissing, NotFound
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="ECS")

DEFAULT_CPU = "256"
DEFAULT_MEMORY = "512"

# Keys of a described task definition that register_task_definition accepts back
_REGISTERABLE_KEYS = (
    "family", "taskRoleArn", "executionRoleArn", "networkMode", "containerDefinitions",
    "volumes", "placementConstraints", "requiresCompatibilities", "cpu", "memory",
    "runtimePlatform", "ephemeralStorage",
)


def task_family(name: str) -> str:
    return f"{name}-task"


def container_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]", "-", name)


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def _service_view(service: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe subset of a described ECS service."""
    return {
        "serviceName": service.get("serviceName"),
        "serviceArn": service.get("serviceArn"),
        "status": service.get("status"),
        "taskDefinition": service.get("taskDefinition"),
        "launchType": service.get("launchType"),
        "desiredCount": service.get("desiredCount", 0),
        "runningCount": service.get("runningCount", 0),
        "pendingCount": service.get("pendingCount", 0),
        "deployments": [
            {
                "id": d.get("id"),
                "status": d.get("status"),
                "taskDefinition": d.get("taskDefinition"),
                "desiredCount": d.get("desiredCount"),
                "runningCount": d.get("runningCount"),
                "rolloutState": d.get("rolloutState"),
                "updatedAt": _iso(d.get("updatedAt")),
            }
            for d in service.get("deployments", [])
        ],
        "events": [
            {"message": e.get("message"), "createdAt": _iso(e.get("createdAt"))}
            for e in service.get("events", [])[:5]
        ],
    }


def _require_service(driver: EcsDriver, cluster: str, name: str) -> Dict[str, Any]:
    service = driver.describe_service(cluster, name)
    if service is None:
        raise NotFound(f"Service '{name}' not found in cluster '{cluster}'", Platform.ECS_FARGATE.value)
    return service


def build_task_definition(
    request: DeploymentDescriptor,
    settings: Settings,
    execution_role_arn: Optional[str] = None,
) -> Dict[str, Any]:
    family = task_family(request.name)
    port = request.port or settings.DEFAULT_CONTAINER_PORT
    resources = request.resources

    container = {
        "name": container_name(request.name),
        "image": request.image,
        "essential": True,
        "portMappings": [{"containerPort": port, "hostPort": port, "protocol": "tcp"}],
        "environment": [{"name": key, "value": value} for key, value in request.env_pairs()],
        "logConfiguration": {
            "logDriver": "awslogs",
            "options": {
                "awslogs-group": f"/ecs/{family}",
                "awslogs-region": settings.AWS_REGION,
                "awslogs-stream-prefix": request.name,
                "awslogs-create-group": "true",
            },
        },
    }

    task_definition = {
        "family": family,
        "networkMode": "awsvpc",
        "requiresCompatibilities": ["FARGATE"],
        "cpu": (resources.cpu if resources and resources.cpu else DEFAULT_CPU),
        "memory": (resources.memory if resources and resources.memory else DEFAULT_MEMORY),
        "containerDefinitions": [container],
    }
    if execution_role_arn:
        task_definition["executionRoleArn"] = execution_role_arn
    return task_definition


def deploy(driver: EcsDriver, request: DeploymentDescriptor, settings: Settings) -> Dict[str, Any]:
    options = parse_options(EcsOptions, request.platform_options)
    # Resolve every identifier before the first AWS call
    cluster = options.cluster(settings)
    subnets = options.subnet_ids(settings)
    security_groups = options.security_group_ids(settings)
    assign_public_ip = request.expose if options.assign_public_ip is None else options.assign_public_ip

    registered = driver.register_task_definition(
        **build_task_definition(request, settings, options.role_arn(settings))
    )
    task_definition_arn = registered["taskDefinitionArn"]

    existing = driver.describe_service(cluster, request.name)
    if existing:
        service = driver.update_service(
            cluster,
            request.name,
            taskDefinition=task_definition_arn,
            desiredCount=request.replicas,
            forceNewDeployment=True,
        )
    else:
        service = driver.create_service(
            cluster=cluster,
            serviceName=request.name,
            taskDefinition=task_definition_arn,
            desiredCount=request.replicas,
            launchType="FARGATE",
            networkConfiguration={
                "awsvpcConfiguration": {
                    "subnets": subnets,
                    "securityGroups": security_groups,
                    "assignPublicIp": "ENABLED" if assign_public_ip else "DISABLED",
                }
            },
            deploymentConfiguration={
                "maximumPercent": 200,
                "minimumHealthyPercent": 100,
                "deploymentCircuitBreaker": {"enable": True, "rollback": True},
            },
        )

    data = {
        "name": request.name,
        "cluster": cluster,
        "image": request.image,
        "taskDefinition": f"{registered['family']}:{registered['revision']}",
        "desiredCount": request.replicas,
        "created": existing is None,
        "service": _service_view(service),
    }
    if options.wait_for_stable:
        data["stable"] = driver.wait_until_stable(cluster, request.name, timeout=options.stable_timeout)
    return data


def scale(driver: EcsDriver, request: ScaleRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(EcsOptions, request.platform_options)
    cluster = options.cluster(settings)

    _require_service(driver, cluster, request.name)
    service = driver.update_service(cluster, request.name, desiredCount=request.replicas)
    logger.info(f"Service {request.name} scaled to {request.replicas}")
    return {
        "name": request.name,
        "cluster": cluster,
        "desiredCount": request.replicas,
        "service": _service_view(service),
    }


def rollback(driver: EcsDriver, request: RollbackRequest, settings: Settings) -> Dict[str, Any]:
    if not request.target_image:
        raise ConfigurationMissing(
            "targetImage is required for rollback on ecs-fargate",
            Platform.ECS_FARGATE.value,
        )
    options = parse_options(EcsOptions, request.platform_options)
    cluster = options.cluster(settings)

    service = _require_service(driver, cluster, request.name)
    current = driver.describe_task_definition(service["taskDefinition"])

    containers: List[Dict[str, Any]] = [dict(c) for c in current.get("containerDefinitions", [])]
    if not containers:
        raise BackendFailure(
            f"Task definition {service['taskDefinition']} has no containers",
            Platform.ECS_FARGATE.value,
        )
    primary = next((c for c in containers if c.get("name") == container_name(request.name)), containers[0])
    previous_image = primary.get("image")
    primary["image"] = request.target_image

    revision = {key: current[key] for key in _REGISTERABLE_KEYS if current.get(key)}
    revision["containerDefinitions"] = containers
    registered = driver.register_task_definition(**revision)

    updated = driver.update_service(
        cluster,
        request.name,
        taskDefinition=registered["taskDefinitionArn"],
        forceNewDeployment=True,
    )
    logger.info(f"Service {request.name} rolled back to {request.target_image}")
    return {
        "name": request.name,
        "cluster": cluster,
        "rolledBackTo": request.target_image,
        "previousImage": previous_image,
        "taskDefinition": f"{registered['family']}:{registered['revision']}",
        "service": _service_view(updated),
    }


def status(driver: EcsDriver, request: StatusRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(EcsOptions, request.platform_options)
    cluster = options.cluster(settings)

    view = _service_view(_require_service(driver, cluster, request.name))
    desired = view["desiredCount"]
    running_count = view["runningCount"]
    return {
        "name": request.name,
        "cluster": cluster,
        "running": running_count > 0,
        "ready": desired > 0 and running_count >= desired,
        "desiredReplicas": desired,
        "readyReplicas": running_count,
        "raw": view,
    }


def logs(driver: EcsDriver, request: LogsRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(EcsOptions, request.platform_options)
    cluster = options.cluster(settings)

    _require_service(driver, cluster, request.name)
    tasks = driver.list_tasks(cluster, request.name)
    if not tasks:
        raise NotFound(f"No running tasks found for service '{request.name}'", Platform.ECS_FARGATE.value)

    task = tasks[0]
    task_id = task["taskArn"].split("/")[-1]
    task_definition = driver.describe_task_definition(task["taskDefinitionArn"])
    container = task_definition["containerDefinitions"][0]

    log_config = container.get("logConfiguration") or {}
    if log_config.get("logDriver") != "awslogs":
        raise BackendFailure(
            f"Container {container['name']} does not use the awslogs log driver",
            Platform.ECS_FARGATE.value,
        )
    log_options = log_config.get("options", {})
    group = log_options["awslogs-group"]
    stream = f"{log_options.get('awslogs-stream-prefix', request.name)}/{container['name']}/{task_id}"

    lines = driver.get_log_lines(group, stream, limit=request.tail)
    return {
        "name": request.name,
        "unit": task_id,
        "tail": request.tail,
        "lines": len(lines),
        "logs": "\n".join(lines),
    }


def delete(driver: EcsDriver, request: DeleteRequest, settings: Settings) -> Dict[str, Any]:
    options = parse_options(EcsOptions, request.platform_options)
    cluster = options.cluster(settings)

    _require_service(driver, cluster, request.name)
    driver.delete_service(cluster, request.name, force=True)
    return {"name": request.name, "cluster": cluster, "deleted": [f"service/{request.name}"]}


ADAPTERS = {
    Operation.DEPLOY: deploy,
    Operation.SCALE: scale,
    Operation.ROLLBACK: rollback,
    Operation.STATUS: status,
    Operation.LOGS: logs,
    Operation.DELETE: delete,
}

UNSUPPORTED_HINTS: Dict[Operation, str] = {}
