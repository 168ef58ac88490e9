"""Tool discovery and execution endpoints."""

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from unideploy.services.container_dispatcher import ContainerDispatcher, get_container_dispatcher
from unideploy.services.container_tools import call_tool, list_tools

router = APIRouter()


class ToolExecuteRequest(BaseModel):
    tool: str = Field(..., min_length=1, description="Tool name, e.g. container_deploy")
    arguments: Dict[str, Any] = Field(default_factory=dict)


@router.get("")
async def get_tools() -> Dict[str, List[Dict[str, Any]]]:
    """List tools with their JSON input schemas."""
    return {"tools": list_tools()}


@router.post("/execute")
async def execute_tool(
    body: ToolExecuteRequest,
    dispatcher: ContainerDispatcher = Depends(get_container_dispatcher),
) -> Dict[str, Any]:
    """Run a tool. Tool failures are reported in the body, not as HTTP errors."""
    result = await call_tool(body.tool, body.arguments, dispatcher=dispatcher)
    return result.to_wire()
