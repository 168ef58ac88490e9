"""
Container tool definitions.

One ContainerTool per public operation. The MCP server and the REST tool
endpoints both read from TOOLS, so names, descriptions and input schemas
stay identical across transports.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from unideploy.models.container import (
    DeleteRequest,
    DeploymentDescriptor,
    LogsRequest,
    OperationResult,
    Platform,
    RollbackRequest,
    ScaleRequest,
    StatusRequest,
)
from unideploy.services.container_dispatcher import ContainerDispatcher, get_container_dispatcher
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="Dispatch")

Handler = Callable[[ContainerDispatcher, Optional[BaseModel]], Awaitable[OperationResult]]

PLATFORM_HELP = (
    "Target platform: auto, local-docker, ec2-docker, ecs-fargate or kubernetes "
    "(aliases: docker, ec2, ecs, k8s, eks)"
)


@dataclass(frozen=True)
class ContainerTool:
    name: str
    description: str
    handler: Handler
    request_model: Optional[Type[BaseModel]] = None

    @property
    def input_schema(self) -> Dict[str, Any]:
        if self.request_model is None:
            return {"type": "object", "properties": {}}
        return self.request_model.model_json_schema(by_alias=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


TOOLS: Dict[str, ContainerTool] = {
    tool.name: tool
    for tool in [
        ContainerTool(
            name="container_deploy",
            description=(
                "Deploy a container to any supported platform (local Docker, Docker on EC2, "
                "ECS Fargate, Kubernetes). Use platform 'auto' to deploy to the detected platform."
            ),
            handler=lambda d, req: d.deploy(req),
            request_model=DeploymentDescriptor,
        ),
        ContainerTool(
            name="container_scale",
            description="Scale a deployment to the given number of replicas (ECS and Kubernetes only).",
            handler=lambda d, req: d.scale(req),
            request_model=ScaleRequest,
        ),
        ContainerTool(
            name="container_rollback",
            description=(
                "Roll a deployment back to a previous image (targetImage) or, on Kubernetes, "
                "to a previous revision."
            ),
            handler=lambda d, req: d.rollback(req),
            request_model=RollbackRequest,
        ),
        ContainerTool(
            name="container_status",
            description="Get running/ready state and replica counts of a deployment.",
            handler=lambda d, req: d.status(req),
            request_model=StatusRequest,
        ),
        ContainerTool(
            name="container_logs",
            description="Get the most recent log lines of a deployment (first replica on multi-replica platforms).",
            handler=lambda d, req: d.logs(req),
            request_model=LogsRequest,
        ),
        ContainerTool(
            name="container_delete",
            description="Delete a deployment and the resources created for it.",
            handler=lambda d, req: d.delete(req),
            request_model=DeleteRequest,
        ),
        ContainerTool(
            name="list_platforms",
            description="List container platforms, whether each is reachable and configured, and the detected platform.",
            handler=lambda d, req: d.list_platforms(),
        ),
    ]
}


def list_tools() -> List[Dict[str, Any]]:
    return [tool.to_dict() for tool in TOOLS.values()]


def _platform_label(arguments: Dict[str, Any]) -> str:
    platform = arguments.get("platform")
    return str(platform) if platform else Platform.AUTO.value


def _validation_message(e: ValidationError) -> str:
    problems = []
    for err in e.errors():
        field = ".".join(str(loc) for loc in err["loc"]) or "arguments"
        problems.append(f"{field}: {err['msg']}")
    return "Invalid arguments: " + "; ".join(problems)


async def call_tool(
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
    dispatcher: Optional[ContainerDispatcher] = None,
) -> OperationResult:
    """Validate arguments and run a tool. Never raises."""
    arguments = arguments or {}
    tool = TOOLS.get(name)
    if tool is None:
        return OperationResult.fail(
            _platform_label(arguments),
            f"Unknown tool: {name}. Available tools: {', '.join(TOOLS)}",
        )

    request = None
    if tool.request_model is not None:
        try:
            request = tool.request_model.model_validate(arguments)
        except ValidationError as e:
            logger.warning(f"{name} rejected: {e.error_count()} invalid argument(s)")
            return OperationResult.fail(_platform_label(arguments), _validation_message(e), "ValidationError")

    return await tool.handler(dispatcher or get_container_dispatcher(), request)
