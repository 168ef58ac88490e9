"""
Per-platform interpretation of the open platformOptions bag.

Each adapter parses only the keys it understands; anything else is ignored.
Values absent from the request fall back to process settings, and a value
that is required but absent from both raises ConfigurationMissing.
"""

from typing import Any, ClassVar, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from unideploy.config.settings import Settings
from unideploy.models.container import Platform
from unideploy.services.drivers.remote_host import SSHTarget
from unideploy.services.errors import ConfigurationMissing

OptionsT = TypeVar("OptionsT", bound="PlatformOptions")


class PlatformOptions(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    platform: ClassVar[Platform] = Platform.AUTO


def parse_options(model: Type[OptionsT], options: Optional[Dict[str, Any]]) -> OptionsT:
    """Validate platformOptions against an adapter's option model."""
    try:
        return model.model_validate(options or {})
    except ValidationError as e:
        fields = ", ".join(
            ".".join(str(loc) for loc in err["loc"]) + f" ({err['msg']})" for err in e.errors()
        )
        raise ConfigurationMissing(
            f"Invalid platformOptions for {model.platform.value}: {fields}", model.platform.value
        )


class LocalDockerOptions(PlatformOptions):
    platform: ClassVar[Platform] = Platform.LOCAL_DOCKER

    host_port: Optional[int] = Field(default=None, ge=1, le=65535)
    restart_policy: str = "unless-stopped"


class RemoteHostOptions(PlatformOptions):
    platform: ClassVar[Platform] = Platform.EC2_DOCKER

    host: Optional[str] = None
    username: Optional[str] = None
    private_key_path: Optional[str] = None
    host_port: Optional[int] = Field(default=None, ge=1, le=65535)

    def target(self, settings: Settings) -> SSHTarget:
        host = self.host or settings.EC2_HOST
        if not host:
            raise ConfigurationMissing(
                "EC2 host not specified. Set EC2_HOST or platformOptions.host",
                Platform.EC2_DOCKER.value,
            )
        return SSHTarget(
            host=host,
            username=self.username or settings.EC2_USER,
            private_key_path=self.private_key_path or settings.SSH_KEY_PATH,
        )


class EcsOptions(PlatformOptions):
    platform: ClassVar[Platform] = Platform.ECS_FARGATE

    cluster_name: Optional[str] = None
    subnets: Union[str, List[str]] = Field(default_factory=list)
    security_groups: Union[str, List[str]] = Field(default_factory=list)
    assign_public_ip: Optional[bool] = None
    execution_role_arn: Optional[str] = None
    wait_for_stable: bool = False
    stable_timeout: int = Field(default=300, ge=15)

    @field_validator("subnets", "security_groups", mode="before")
    @classmethod
    def parse_id_list(cls, v):
        """Accept a list or a comma-separated string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    def cluster(self, settings: Settings) -> str:
        cluster = self.cluster_name or settings.ECS_CLUSTER_NAME
        if not cluster:
            raise ConfigurationMissing(
                "ECS cluster not specified. Set ECS_CLUSTER_NAME or platformOptions.clusterName",
                Platform.ECS_FARGATE.value,
            )
        return cluster

    def subnet_ids(self, settings: Settings) -> List[str]:
        subnets = self.subnets or settings.ECS_SUBNETS
        if not subnets:
            raise ConfigurationMissing(
                "ECS subnets not specified. Set ECS_SUBNETS or platformOptions.subnets",
                Platform.ECS_FARGATE.value,
            )
        return list(subnets)

    def security_group_ids(self, settings: Settings) -> List[str]:
        return list(self.security_groups or settings.ECS_SECURITY_GROUPS)

    def role_arn(self, settings: Settings) -> Optional[str]:
        return self.execution_role_arn or settings.ECS_EXECUTION_ROLE_ARN


class KubernetesOptions(PlatformOptions):
    platform: ClassVar[Platform] = Platform.KUBERNETES

    namespace: str = Field(default="default", min_length=1)
    context: Optional[str] = None
    ingress_host: Optional[str] = None
    service_type: Optional[str] = None

    @field_validator("service_type")
    @classmethod
    def validate_service_type(cls, v):
        allowed = ("ClusterIP", "NodePort", "LoadBalancer")
        if v is not None and v not in allowed:
            raise ValueError(f"must be one of {', '.join(allowed)}")
        return v
