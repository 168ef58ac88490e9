"""
Services Layer - Public API

Quick Reference:
    from unideploy.services import get_container_dispatcher, call_tool

    dispatcher = get_container_dispatcher()
    result = await dispatcher.deploy(DeploymentDescriptor(name="web", image="nginx:latest"))
"""

from unideploy.services.capability_prober import CapabilityProber
from unideploy.services.container_dispatcher import ContainerDispatcher, get_container_dispatcher
from unideploy.services.container_tools import TOOLS, ContainerTool, call_tool, list_tools
from unideploy.services.driver_registry import DriverRegistry, default_driver_factories
from unideploy.services.errors import (
    BackendFailure,
    ConfigurationMissing,
    ContainerPlatformError,
    NotFound,
    OperationUnsupportedOnPlatform,
    PlatformUnsupported,
)
from unideploy.services.platform_detector import PLATFORM_ALIASES, canonical_platform, detect_platform

__all__ = [
    "BackendFailure",
    "CapabilityProber",
    "ConfigurationMissing",
    "ContainerDispatcher",
    "ContainerPlatformError",
    "ContainerTool",
    "DriverRegistry",
    "NotFound",
    "OperationUnsupportedOnPlatform",
    "PLATFORM_ALIASES",
    "PlatformUnsupported",
    "TOOLS",
    "call_tool",
    "canonical_platform",
    "default_driver_factories",
    "detect_platform",
    "get_container_dispatcher",
    "list_tools",
]
