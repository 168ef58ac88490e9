"""
Container operation endpoints.

REST rendition of the container tools. Every endpoint answers 200 with the
operation result body; `success` tells whether the operation worked.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel, Field

from unideploy.services.container_dispatcher import ContainerDispatcher, get_container_dispatcher
from unideploy.services.container_tools import call_tool

router = APIRouter()


class ScaleBody(BaseModel):
    replicas: int
    platform: str = "auto"
    platformOptions: Dict[str, Any] = Field(default_factory=dict)


class RollbackBody(BaseModel):
    platform: str = "auto"
    targetImage: Optional[str] = None
    revision: Optional[int] = None
    platformOptions: Dict[str, Any] = Field(default_factory=dict)


class TargetBody(BaseModel):
    platform: str = "auto"
    platformOptions: Dict[str, Any] = Field(default_factory=dict)


async def _run(tool: str, arguments: Dict[str, Any], dispatcher: ContainerDispatcher) -> Dict[str, Any]:
    result = await call_tool(tool, arguments, dispatcher=dispatcher)
    return result.to_wire()


@router.post("/deploy")
async def deploy_container(
    body: Dict[str, Any] = Body(...),
    dispatcher: ContainerDispatcher = Depends(get_container_dispatcher),
):
    """Deploy a container. The body is a deployment descriptor."""
    return await _run("container_deploy", body, dispatcher)


@router.get("/platforms")
async def list_platforms(dispatcher: ContainerDispatcher = Depends(get_container_dispatcher)):
    """Reachable and configured platforms plus the detected one."""
    return await _run("list_platforms", {}, dispatcher)


@router.post("/{name}/scale")
async def scale_container(
    name: str,
    body: ScaleBody,
    dispatcher: ContainerDispatcher = Depends(get_container_dispatcher),
):
    return await _run("container_scale", {"name": name, **body.model_dump()}, dispatcher)


@router.post("/{name}/rollback")
async def rollback_container(
    name: str,
    body: RollbackBody,
    dispatcher: ContainerDispatcher = Depends(get_container_dispatcher),
):
    return await _run("container_rollback", {"name": name, **body.model_dump()}, dispatcher)


@router.get("/{name}/status")
async def container_status(
    name: str,
    platform: str = Query("auto"),
    namespace: Optional[str] = Query(None, description="Kubernetes namespace"),
    dispatcher: ContainerDispatcher = Depends(get_container_dispatcher),
):
    options = {"namespace": namespace} if namespace else {}
    return await _run("container_status", {"name": name, "platform": platform, "platformOptions": options}, dispatcher)


@router.get("/{name}/logs")
async def container_logs(
    name: str,
    platform: str = Query("auto"),
    tail: int = Query(100),
    namespace: Optional[str] = Query(None, description="Kubernetes namespace"),
    dispatcher: ContainerDispatcher = Depends(get_container_dispatcher),
):
    options = {"namespace": namespace} if namespace else {}
    return await _run(
        "container_logs",
        {"name": name, "platform": platform, "tail": tail, "platformOptions": options},
        dispatcher,
    )


@router.delete("/{name}")
async def delete_container(
    name: str,
    body: Optional[TargetBody] = None,
    platform: str = Query("auto"),
    dispatcher: ContainerDispatcher = Depends(get_container_dispatcher),
):
    """Delete a deployment. Platform options may be sent in the body."""
    target = body or TargetBody(platform=platform)
    return await _run("container_delete", {"name": name, **target.model_dump()}, dispatcher)
