"""
Container Dispatcher - single entry point for container operations.

Each public operation resolves the target platform (detecting it for
"auto"), looks up the adapter registered for (operation, platform), runs it
against the platform's driver and folds the outcome into an
OperationResult. No exception crosses this boundary.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional, Tuple

from unideploy.config.settings import Settings, get_settings
from unideploy.models.container import (
    ContainerRequest,
    DeleteRequest,
    DeploymentDescriptor,
    LogsRequest,
    Operation,
    OperationResult,
    Platform,
    RollbackRequest,
    ScaleRequest,
    StatusRequest,
)
from unideploy.services.adapters import AdapterFn, build_adapter_table, build_hint_table
from unideploy.services.capability_prober import CapabilityProber
from unideploy.services.driver_registry import DriverRegistry
from unideploy.services.errors import BackendFailure, ContainerPlatformError, OperationUnsupportedOnPlatform
from unideploy.services.platform_detector import canonical_platform, detect_platform
from unideploy.utils.logging import get_logger

logger = get_logger(__name__, prefix="Dispatch")


class ContainerDispatcher:
    """
    Routes platform-neutral container operations to platform adapters.

    The adapter table is fixed at construction. Adapters and drivers are
    blocking, so they run in a worker thread.
    """

    def __init__(
        self,
        registry: Optional[DriverRegistry] = None,
        settings: Optional[Settings] = None,
        adapters: Optional[Mapping[Tuple[Operation, Platform], AdapterFn]] = None,
        hints: Optional[Mapping[Tuple[Operation, Platform], str]] = None,
    ):
        self._settings = settings
        self.registry = registry or DriverRegistry(settings=settings)
        self._adapters: Dict[Tuple[Operation, Platform], AdapterFn] = dict(
            build_adapter_table() if adapters is None else adapters
        )
        self._hints: Dict[Tuple[Operation, Platform], str] = dict(
            build_hint_table() if hints is None else hints
        )
        self.prober = CapabilityProber(self.registry, settings=settings)

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    def supports(self, operation: Operation, platform: Platform) -> bool:
        return (operation, platform) in self._adapters

    # -------------------------------------------------------------------------
    # Public operations
    # -------------------------------------------------------------------------

    async def deploy(self, request: DeploymentDescriptor) -> OperationResult:
        return await self.execute(Operation.DEPLOY, request)

    async def scale(self, request: ScaleRequest) -> OperationResult:
        return await self.execute(Operation.SCALE, request)

    async def rollback(self, request: RollbackRequest) -> OperationResult:
        return await self.execute(Operation.ROLLBACK, request)

    async def status(self, request: StatusRequest) -> OperationResult:
        return await self.execute(Operation.STATUS, request)

    async def logs(self, request: LogsRequest) -> OperationResult:
        return await self.execute(Operation.LOGS, request)

    async def delete(self, request: DeleteRequest) -> OperationResult:
        return await self.execute(Operation.DELETE, request)

    async def list_platforms(self) -> OperationResult:
        return await self.prober.list_platforms()

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def execute(self, operation: Operation, request: ContainerRequest) -> OperationResult:
        """Run one operation and normalize its outcome."""
        label = request.platform
        try:
            settings = self.settings
            if (label or "").strip().lower() == Platform.AUTO.value:
                label = detect_platform(settings)
            platform = canonical_platform(label)
            label = platform.value

            adapter = self._adapters.get((operation, platform))
            if adapter is None:
                raise OperationUnsupportedOnPlatform(
                    operation.value, platform.value, self._hints.get((operation, platform))
                )

            logger.info(f"{operation.value} '{request.name}' on {platform.value}")
            driver = self.registry.get_driver(platform)
            data = await asyncio.to_thread(adapter, driver, request, settings)
            return self._normalize(platform, data)

        except ContainerPlatformError as e:
            logger.warning(f"{operation.value} '{request.name}' failed on {label}: [{e.code}] {e.message}")
            return OperationResult.fail(label, e.message, e.code)
        except Exception as e:
            logger.exception(f"Unexpected error during {operation.value} '{request.name}' on {label}: {e}")
            return OperationResult.fail(label, str(e) or type(e).__name__, BackendFailure.code)

    @staticmethod
    def _normalize(platform: Platform, data: Any) -> OperationResult:
        if data is not None and not isinstance(data, dict):
            raise TypeError(f"Adapter for {platform.value} returned {type(data).__name__}, expected dict")
        return OperationResult.ok(platform.value, data)


_dispatcher: Optional[ContainerDispatcher] = None


def get_container_dispatcher() -> ContainerDispatcher:
    """Get the global ContainerDispatcher instance."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = ContainerDispatcher()
    return _dispatcher
