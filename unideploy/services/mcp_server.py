"""
MCP Server for unified container deployment.

Exposes the container tools over the Model Context Protocol so that LLM
agents can deploy, scale, roll back, inspect and delete containers on any
supported platform through one set of verbs.

Every tool returns the operation result as a JSON string:
    {"success": bool, "platform": str, "data"?: {...}, "error"?: str}
"""

import json
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.routing import APIRouter
from mcp.server.fastmcp import FastMCP
from mcp.server.sse import SseServerTransport

from unideploy.services.container_tools import TOOLS, call_tool
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="MCP")

SERVER_NAME = "unideploy"

# Initialize MCP
mcp = FastMCP(SERVER_NAME)

# Create a router for MCP endpoints
mcp_router = APIRouter(prefix="/mcp")

# Initialize SSE transport
sse = SseServerTransport("/mcp/messages/")


async def _run(tool: str, arguments: Dict[str, Any]) -> str:
    result = await call_tool(tool, arguments)
    return json.dumps(result.to_wire(), indent=2, default=str)


# =============================================================================
# MCP Tools - Container Operations
# =============================================================================

@mcp.tool(description=TOOLS["container_deploy"].description)
async def container_deploy(
    name: str,
    image: str,
    platform: str = "auto",
    port: Optional[int] = None,
    replicas: int = 1,
    env: Optional[List[Any]] = None,
    resources: Optional[Dict[str, Any]] = None,
    expose: bool = True,
    platformOptions: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Deploy a container.

    Args:
        name: Application/service name
        image: Container image (e.g., "nginx:latest")
        platform: auto, local-docker, ec2-docker, ecs-fargate or kubernetes
        port: Container port
        replicas: Number of instances (ECS and Kubernetes)
        env: Environment variables as KEY=VALUE strings
        resources: {"cpu": ..., "memory": ...} in platform-native units
        expose: Give the deployment externally reachable networking
        platformOptions: Platform-specific settings (clusterName, subnets, host, namespace, ...)

    Returns:
        JSON string with the operation result
    """
    return await _run("container_deploy", {
        "name": name,
        "image": image,
        "platform": platform,
        "port": port,
        "replicas": replicas,
        "env": env,
        "resources": resources,
        "expose": expose,
        "platformOptions": platformOptions,
    })


@mcp.tool(description=TOOLS["container_scale"].description)
async def container_scale(
    name: str,
    replicas: int,
    platform: str = "auto",
    platformOptions: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Scale a deployment.

    Args:
        name: Application/service name
        replicas: Desired number of replicas
        platform: Target platform or "auto"
        platformOptions: Platform-specific settings

    Returns:
        JSON string with the operation result
    """
    return await _run("container_scale", {
        "name": name,
        "replicas": replicas,
        "platform": platform,
        "platformOptions": platformOptions,
    })


@mcp.tool(description=TOOLS["container_rollback"].description)
async def container_rollback(
    name: str,
    platform: str = "auto",
    targetImage: Optional[str] = None,
    revision: Optional[int] = None,
    platformOptions: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Roll a deployment back.

    Args:
        name: Application/service name
        platform: Target platform or "auto"
        targetImage: Image to roll back to
        revision: Kubernetes revision to roll back to
        platformOptions: Platform-specific settings

    Returns:
        JSON string with the operation result
    """
    return await _run("container_rollback", {
        "name": name,
        "platform": platform,
        "targetImage": targetImage,
        "revision": revision,
        "platformOptions": platformOptions,
    })


@mcp.tool(description=TOOLS["container_status"].description)
async def container_status(
    name: str,
    platform: str = "auto",
    platformOptions: Optional[Dict[str, Any]] = None,
) -> str:
    """Get deployment status."""
    return await _run("container_status", {
        "name": name,
        "platform": platform,
        "platformOptions": platformOptions,
    })


@mcp.tool(description=TOOLS["container_logs"].description)
async def container_logs(
    name: str,
    platform: str = "auto",
    tail: int = 100,
    platformOptions: Optional[Dict[str, Any]] = None,
) -> str:
    """Get recent deployment logs (tail: 1-1000 lines)."""
    return await _run("container_logs", {
        "name": name,
        "platform": platform,
        "tail": tail,
        "platformOptions": platformOptions,
    })


@mcp.tool(description=TOOLS["container_delete"].description)
async def container_delete(
    name: str,
    platform: str = "auto",
    platformOptions: Optional[Dict[str, Any]] = None,
) -> str:
    """Delete a deployment."""
    return await _run("container_delete", {
        "name": name,
        "platform": platform,
        "platformOptions": platformOptions,
    })


@mcp.tool(description=TOOLS["list_platforms"].description)
async def list_platforms() -> str:
    """List platforms and the detected platform."""
    return await _run("list_platforms", {})


# =============================================================================
# SSE transport
# =============================================================================

@mcp_router.get("/sse")
async def handle_sse(request: Request):
    """Handle SSE connections for MCP."""
    logger.info("MCP SSE connection established")
    async with sse.connect_sse(
        request.scope,
        request.receive,
        request._send,
    ) as (read_stream, write_stream):
        await mcp._mcp_server.run(
            read_stream,
            write_stream,
            mcp._mcp_server.create_initialization_options(),
        )


@mcp_router.post("/messages/")
async def handle_post_message(request: Request):
    """Handle POST messages for SSE"""
    try:
        body = await request.body()

        async def receive():
            return {"type": "http.request", "body": body, "more_body": False}

        async def send(message):
            return {}

        await sse.handle_post_message(request.scope, receive, send)

        return {"status": "ok"}
    except Exception as e:
        logger.exception(f"Error handling MCP message: {e}")
        return {"status": "error", "message": str(e)}


def setup_mcp_server(app: FastAPI):
    """Setup MCP server with the FastAPI application."""
    app.include_router(mcp_router)
    logger.info(f"{SERVER_NAME} MCP server initialized with {len(TOOLS)} container tools")
