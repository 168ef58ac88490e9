"""
Container deployment models.

This module defines:
- Platform: the deployment targets the dispatcher can route to
- DeploymentDescriptor and the narrower per-operation requests
- OperationResult: the uniform response shape of every operation
- PlatformInfo: one entry of the capability listing
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class Platform(str, Enum):
    """Deployment platforms."""
    AUTO = "auto"                  # Resolved by the platform detector, never dispatched
    LOCAL_DOCKER = "local-docker"  # Docker engine on this machine
    EC2_DOCKER = "ec2-docker"      # Docker on a remote host reached over SSH
    ECS_FARGATE = "ecs-fargate"    # AWS ECS services on Fargate
    KUBERNETES = "kubernetes"      # Any Kubernetes-compatible cluster (EKS included)


class Operation(str, Enum):
    """Abstract operations offered on every platform that supports them."""
    DEPLOY = "deploy"
    SCALE = "scale"
    ROLLBACK = "rollback"
    STATUS = "status"
    LOGS = "logs"
    DELETE = "delete"


class _WireModel(BaseModel):
    """Base for request models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ResourceRequest(_WireModel):
    """CPU/memory request in platform-native units (e.g. "256", "0.5", "500m", "1Gi")."""
    cpu: Optional[str] = None
    memory: Optional[str] = None

    @field_validator("cpu", "memory", mode="before")
    @classmethod
    def stringify(cls, v):
        if v is None or isinstance(v, str):
            return v
        return str(v)


class ContainerRequest(_WireModel):
    """Fields shared by every operation request."""
    name: str = Field(..., min_length=1, description="Application/service name")
    platform: str = Field(default=Platform.AUTO.value, description="Target platform or 'auto'")
    platform_options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Platform-specific configuration, interpreted only by that platform's adapter"
    )

    @field_validator("platform", mode="before")
    @classmethod
    def default_platform(cls, v):
        if v is None or v == "":
            return Platform.AUTO.value
        if isinstance(v, Platform):
            return v.value
        return v

    @field_validator("platform_options", mode="before")
    @classmethod
    def default_options(cls, v):
        return {} if v is None else v


class DeploymentDescriptor(ContainerRequest):
    """Platform-neutral deploy request."""
    image: str = Field(..., min_length=1, description="Container image reference")
    port: Optional[int] = Field(default=None, ge=1, le=65535, description="Container port")
    replicas: int = Field(default=1, ge=1, description="Instances (ignored by single-container platforms)")
    env: List[str] = Field(default_factory=list, description="KEY=VALUE environment entries")
    resources: Optional[ResourceRequest] = None
    expose: bool = Field(default=True, description="Give the unit externally reachable networking")

    @field_validator("env", mode="before")
    @classmethod
    def default_env(cls, v):
        return [] if v is None else v

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: List[str]) -> List[str]:
        for entry in v:
            key, sep, _ = entry.partition("=")
            if not sep or not key.strip():
                raise ValueError(f"Environment entry '{entry}' must have the form KEY=VALUE")
        return v

    def env_pairs(self) -> List[Tuple[str, str]]:
        """Split env entries on the first '=' (values may contain '=')."""
        return [tuple(entry.split("=", 1)) for entry in self.env]


class ScaleRequest(ContainerRequest):
    replicas: int = Field(..., ge=0, description="Desired number of replicas")


class RollbackRequest(ContainerRequest):
    target_image: Optional[str] = Field(default=None, description="Image to roll back to (image-addressable platforms)")
    revision: Optional[int] = Field(default=None, ge=1, description="Revision to roll back to (Kubernetes)")


class StatusRequest(ContainerRequest):
    pass


class LogsRequest(ContainerRequest):
    tail: int = Field(default=100, description="Number of most recent lines (1-1000)")

    @field_validator("tail", mode="before")
    @classmethod
    def clamp_tail(cls, v):
        if v is None:
            return 100
        return min(max(1, int(v)), 1000)


class DeleteRequest(ContainerRequest):
    pass


class OperationResult(BaseModel):
    """
    Uniform response of every operation.

    success=False always carries a non-empty error; success=True never does.
    error_type holds the taxonomy code and is not part of the wire shape.
    """
    success: bool
    platform: str
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_type: Optional[str] = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def check_error_invariant(self):
        if self.success and self.error is not None:
            raise ValueError("successful result must not carry an error")
        if not self.success and not (self.error and self.error.strip()):
            raise ValueError("failed result must carry a non-empty error")
        return self

    @classmethod
    def ok(cls, platform: str, data: Optional[Dict[str, Any]] = None) -> "OperationResult":
        return cls(success=True, platform=platform, data=data)

    @classmethod
    def fail(cls, platform: str, error: str, error_type: Optional[str] = None) -> "OperationResult":
        return cls(
            success=False,
            platform=platform,
            error=(error or "").strip() or "Unknown error",
            error_type=error_type,
        )

    def to_wire(self) -> Dict[str, Any]:
        """Serialize to {success, platform, data?, error?}."""
        wire: Dict[str, Any] = {"success": self.success, "platform": self.platform}
        if self.data is not None:
            wire["data"] = self.data
        if self.error is not None:
            wire["error"] = self.error
        return wire


class PlatformInfo(BaseModel):
    """Capability report for one platform."""
    name: str
    available: bool
    configured: Optional[bool] = None
    version: Optional[str] = None
    description: str = ""
    error: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
