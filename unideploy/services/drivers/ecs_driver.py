"""AWS ECS (Fargate) driver."""

from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, WaiterError

from unideploy.models.container import Platform
from unideploy.services.drivers.base import ContainerDriver
from unideploy.services.errors import BackendFailure, NotFound
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="ECS")

_NOT_FOUND_CODES = {"ServiceNotFoundException", "ClusterNotFoundException", "ServiceNotActiveException"}


def _translate(e: Exception, action: str) -> Exception:
    """Map a botocore error to the dispatcher taxonomy."""
    if isinstance(e, ClientError):
        code = e.response.get("Error", {}).get("Code", "")
        message = e.response.get("Error", {}).get("Message", str(e))
        if code in _NOT_FOUND_CODES:
            return NotFound(f"{action}: {message}", Platform.ECS_FARGATE.value)
        return BackendFailure(f"{action} failed ({code}): {message}", Platform.ECS_FARGATE.value)
    return BackendFailure(f"{action} failed: {e}", Platform.ECS_FARGATE.value)


class EcsDriver(ContainerDriver):
    """ECS and CloudWatch Logs clients, created on first use."""

    def __init__(self, region: str = "us-east-1", session: Optional[boto3.session.Session] = None):
        self.region = region
        self._session = session
        self._ecs = None
        self._logs = None

    @property
    def platform(self) -> Platform:
        return Platform.ECS_FARGATE

    @property
    def session(self) -> boto3.session.Session:
        if self._session is None:
            self._session = boto3.session.Session(region_name=self.region)
        return self._session

    @property
    def ecs(self):
        if self._ecs is None:
            self._ecs = self.session.client(
                "ecs",
                config=Config(retries={"max_attempts": 3, "mode": "standard"}),
            )
        return self._ecs

    @property
    def logs_client(self):
        if self._logs is None:
            self._logs = self.session.client(
                "logs",
                config=Config(retries={"max_attempts": 3, "mode": "standard"}),
            )
        return self._logs

    def version(self) -> Optional[str]:
        return boto3.__version__

    def has_credentials(self) -> bool:
        """Whether botocore can resolve credentials (no network call)."""
        try:
            return self.session.get_credentials() is not None
        except BotoCoreError:
            return False

    # -------------------------------------------------------------------------
    # Task definitions
    # -------------------------------------------------------------------------

    def register_task_definition(self, **task_definition) -> Dict[str, Any]:
        try:
            response = self.ecs.register_task_definition(**task_definition)
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, "Register task definition")
        task_def = response["taskDefinition"]
        logger.info(f"Task definition registered: {task_def['family']}:{task_def['revision']}")
        return task_def

    def describe_task_definition(self, task_definition: str) -> Dict[str, Any]:
        try:
            return self.ecs.describe_task_definition(taskDefinition=task_definition)["taskDefinition"]
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, f"Describe task definition {task_definition}")

    # -------------------------------------------------------------------------
    # Services
    # -------------------------------------------------------------------------

    def describe_service(self, cluster: str, service: str) -> Optional[Dict[str, Any]]:
        """Return the ACTIVE/DRAINING service, or None when it does not exist."""
        try:
            response = self.ecs.describe_services(cluster=cluster, services=[service])
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, f"Describe service {service}")
        for svc in response.get("services", []):
            if svc.get("serviceName") == service and svc.get("status") != "INACTIVE":
                return svc
        return None

    def create_service(self, **kwargs) -> Dict[str, Any]:
        try:
            service = self.ecs.create_service(**kwargs)["service"]
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, f"Create service {kwargs.get('serviceName')}")
        logger.info(f"Service created: {service['serviceName']}")
        return service

    def update_service(self, cluster: str, service: str, **kwargs) -> Dict[str, Any]:
        try:
            updated = self.ecs.update_service(cluster=cluster, service=service, **kwargs)["service"]
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, f"Update service {service}")
        logger.info(f"Service updated: {service}")
        return updated

    def delete_service(self, cluster: str, service: str, force: bool = True) -> Dict[str, Any]:
        try:
            deleted = self.ecs.delete_service(cluster=cluster, service=service, force=force)["service"]
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, f"Delete service {service}")
        logger.info(f"Service deleted: {service}")
        return deleted

    def wait_until_stable(self, cluster: str, service: str, timeout: int = 300) -> bool:
        """Block until the service is stable; False when the waiter gives up."""
        waiter = self.ecs.get_waiter("services_stable")
        try:
            waiter.wait(
                cluster=cluster,
                services=[service],
                WaiterConfig={"Delay": 15, "MaxAttempts": max(1, timeout // 15)},
            )
        except WaiterError as e:
            logger.warning(f"Service {service} not stable: {e}")
            return False
        return True

    # -------------------------------------------------------------------------
    # Tasks and logs
    # -------------------------------------------------------------------------

    def list_tasks(self, cluster: str, service: str, desired_status: str = "RUNNING") -> List[Dict[str, Any]]:
        try:
            arns = self.ecs.list_tasks(
                cluster=cluster,
                serviceName=service,
                desiredStatus=desired_status,
            ).get("taskArns", [])
            if not arns:
                return []
            return self.ecs.describe_tasks(cluster=cluster, tasks=arns).get("tasks", [])
        except (ClientError, BotoCoreError) as e:
            raise _translate(e, f"List tasks for {service}")

    def get_log_lines(self, group: str, stream: str, limit: int = 100) -> List[str]:
        try:
            response = self.logs_client.get_log_events(
                logGroupName=group,
                logStreamName=stream,
                limit=limit,
                startFromHead=False,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                raise NotFound(f"Log stream {group}/{stream} not found", Platform.ECS_FARGATE.value)
            raise _translate(e, f"Read log stream {stream}")
        except BotoCoreError as e:
            raise _translate(e, f"Read log stream {stream}")
        return [event.get("message", "") for event in response.get("events", [])]
