"""
Capability Prober - which platforms can be used from this process.

Reachability ("available") and target configuration ("configured") are
reported separately: an SDK can be usable while no target is set, and a
target can be set while its backend is down. Probes run concurrently,
each bounded by PROBE_TIMEOUT, and a failing probe only affects its own
entry.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from unideploy.config.settings import Settings, get_settings
from unideploy.models.container import OperationResult, Platform, PlatformInfo
from unideploy.services.driver_registry import DriverRegistry
from unideploy.services.errors import PlatformUnsupported
from unideploy.services.platform_detector import canonical_platform, detect_platform
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="Probe")


def _check_version(driver) -> Tuple[bool, Optional[str]]:
    return True, driver.version()


def _check_aws(driver) -> Tuple[bool, Optional[str]]:
    return driver.has_credentials(), driver.version()


@dataclass(frozen=True)
class PlatformProbe:
    platform: Platform
    description: str
    check: Callable[..., Tuple[bool, Optional[str]]]
    configured: Optional[Callable[[Settings], bool]] = None


PROBES: List[PlatformProbe] = [
    PlatformProbe(
        Platform.LOCAL_DOCKER,
        "Docker on local machine",
        _check_version,
    ),
    PlatformProbe(
        Platform.EC2_DOCKER,
        "Docker on a remote host via SSH",
        _check_version,
        lambda s: bool(s.EC2_HOST),
    ),
    PlatformProbe(
        Platform.ECS_FARGATE,
        "AWS ECS with Fargate",
        _check_aws,
        lambda s: bool(s.ECS_CLUSTER_NAME),
    ),
    PlatformProbe(
        Platform.KUBERNETES,
        "Kubernetes cluster (EKS or any conformant cluster)",
        _check_version,
        lambda s: bool(s.KUBECONFIG or s.EKS_CLUSTER_NAME),
    ),
]


class CapabilityProber:
    """Runs the platform probes and reports them with the detected platform."""

    def __init__(
        self,
        registry: DriverRegistry,
        settings: Optional[Settings] = None,
        probes: Optional[List[PlatformProbe]] = None,
    ):
        self.registry = registry
        self._settings = settings
        self.probes = probes if probes is not None else PROBES

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def current_platform(self) -> str:
        """Detected platform, canonicalized when it is a known identifier."""
        detected = detect_platform(self.settings)
        try:
            return canonical_platform(detected).value
        except PlatformUnsupported:
            return detected

    async def probe(self, spec: PlatformProbe) -> PlatformInfo:
        settings = self.settings
        timeout = settings.PROBE_TIMEOUT
        configured = spec.configured(settings) if spec.configured else None

        try:
            driver = self.registry.get_driver(spec.platform)
            available, version = await asyncio.wait_for(
                asyncio.to_thread(spec.check, driver),
                timeout=timeout,
            )
            return PlatformInfo(
                name=spec.platform.value,
                available=bool(available),
                configured=configured,
                version=str(version) if version is not None else None,
                description=spec.description,
            )
        except asyncio.TimeoutError:
            logger.warning(f"{spec.platform.value} probe timed out after {timeout}s")
            return PlatformInfo(
                name=spec.platform.value,
                available=False,
                configured=configured,
                description=spec.description,
                error=f"Probe timed out after {timeout}s",
            )
        except Exception as e:
            logger.info(f"{spec.platform.value} unavailable: {e}")
            return PlatformInfo(
                name=spec.platform.value,
                available=False,
                configured=configured,
                description=spec.description,
                error=str(e) or type(e).__name__,
            )

    async def list_platforms(self) -> OperationResult:
        """Probe every platform; never raises."""
        try:
            current = self.current_platform()
        except Exception as e:
            logger.exception(f"Platform detection failed: {e}")
            current = Platform.LOCAL_DOCKER.value

        platforms = await asyncio.gather(*(self.probe(spec) for spec in self.probes))
        return OperationResult.ok(
            current,
            {
                "currentPlatform": current,
                "platforms": [info.to_wire() for info in platforms],
            },
        )
