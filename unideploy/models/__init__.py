"""Data models"""

from .container import (
    ContainerRequest,
    DeleteRequest,
    DeploymentDescriptor,
    LogsRequest,
    Operation,
    OperationResult,
    Platform,
    PlatformInfo,
    ResourceRequest,
    RollbackRequest,
    ScaleRequest,
    StatusRequest,
)

__all__ = [
    "ContainerRequest",
    "DeleteRequest",
    "DeploymentDescriptor",
    "LogsRequest",
    "Operation",
    "OperationResult",
    "Platform",
    "PlatformInfo",
    "ResourceRequest",
    "RollbackRequest",
    "ScaleRequest",
    "StatusRequest",
]
