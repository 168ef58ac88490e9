"""
unideploy Settings Configuration
Loads configuration from environment variables
"""

from functools import lru_cache
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8010
    LOG_LEVEL: str = "INFO"

    # Platform detection signals (first match wins, see platform_detector)
    DEPLOYMENT_PLATFORM: Optional[str] = None
    EKS_CLUSTER_NAME: Optional[str] = None
    ECS_CLUSTER_NAME: Optional[str] = None
    KUBECONFIG: Optional[str] = None

    # ECS / Fargate
    ECS_SUBNETS: Union[str, List[str]] = []
    ECS_SECURITY_GROUPS: Union[str, List[str]] = []
    ECS_EXECUTION_ROLE_ARN: Optional[str] = None
    AWS_REGION: str = "us-east-1"

    # Remote Docker host over SSH
    EC2_HOST: Optional[str] = None
    EC2_USER: str = "ubuntu"
    SSH_KEY_PATH: Optional[str] = None
    SSH_CONNECT_TIMEOUT: int = 10
    SSH_COMMAND_TIMEOUT: int = 120

    # Capability probing
    PROBE_TIMEOUT: float = 5.0

    # Port used by ECS and Kubernetes when a deploy request omits one
    DEFAULT_CONTAINER_PORT: int = 3000

    @field_validator('ECS_SUBNETS', 'ECS_SECURITY_GROUPS', mode='before')
    @classmethod
    def parse_id_list(cls, v):
        """Parse comma-separated id lists."""
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator(
        'DEPLOYMENT_PLATFORM', 'EKS_CLUSTER_NAME', 'ECS_CLUSTER_NAME', 'KUBECONFIG',
        'ECS_EXECUTION_ROLE_ARN', 'EC2_HOST', 'SSH_KEY_PATH',
        mode='before',
    )
    @classmethod
    def blank_as_unset(cls, v):
        """Treat empty strings as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
