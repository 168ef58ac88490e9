"""
Driver Registry - one lazily-built driver per platform.

Drivers wrap long-lived clients, so each is constructed on first use and
reused for the lifetime of the process. Construction performs no I/O; an
unreachable backend surfaces on the first real call.
"""

import threading
from typing import Callable, Dict, Mapping, Optional, Union

from unideploy.config.settings import Settings, get_settings
from unideploy.models.container import Platform
from unideploy.services.drivers import (
    ContainerDriver,
    DockerDriver,
    EcsDriver,
    KubernetesDriver,
    RemoteHostDriver,
)
from unideploy.services.errors import PlatformUnsupported
from unideploy.services.platform_detector import canonical_platform
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="Dispatch")

DriverFactory = Callable[[Settings], ContainerDriver]


def default_driver_factories() -> Dict[Platform, DriverFactory]:
    """Factories for the built-in drivers."""
    return {
        Platform.LOCAL_DOCKER: lambda settings: DockerDriver(),
        Platform.EC2_DOCKER: lambda settings: RemoteHostDriver(
            connect_timeout=settings.SSH_CONNECT_TIMEOUT,
            command_timeout=settings.SSH_COMMAND_TIMEOUT,
        ),
        Platform.ECS_FARGATE: lambda settings: EcsDriver(region=settings.AWS_REGION),
        Platform.KUBERNETES: lambda settings: KubernetesDriver(kubeconfig=settings.KUBECONFIG),
    }


class DriverRegistry:
    """Memoizes one driver per platform; safe for concurrent first access."""

    def __init__(
        self,
        factories: Optional[Mapping[Platform, DriverFactory]] = None,
        settings: Optional[Settings] = None,
    ):
        self._factories: Dict[Platform, DriverFactory] = dict(factories or default_driver_factories())
        self._settings = settings
        self._drivers: Dict[Platform, ContainerDriver] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def platforms(self):
        return list(self._factories)

    def get_driver(self, platform: Union[Platform, str]) -> ContainerDriver:
        """
        Return the driver for a platform, constructing it on first use.

        Raises:
            PlatformUnsupported: unknown identifier or no factory registered
        """
        resolved = platform if isinstance(platform, Platform) else canonical_platform(platform)

        driver = self._drivers.get(resolved)
        if driver is not None:
            return driver

        with self._lock:
            driver = self._drivers.get(resolved)
            if driver is None:
                factory = self._factories.get(resolved)
                if factory is None:
                    raise PlatformUnsupported(
                        f"No driver available for platform '{resolved.value}'",
                        platform=resolved.value,
                    )
                driver = factory(self.settings)
                self._drivers[resolved] = driver
                logger.info(f"Initialized {type(driver).__name__} for {resolved.value}")
        return driver

    def cached(self, platform: Platform) -> Optional[ContainerDriver]:
        return self._drivers.get(platform)
