"""Abstract base class for backend drivers."""

from abc import ABC, abstractmethod
from typing import Optional

from unideploy.models.container import Platform


class ContainerDriver(ABC):
    """
    Backend-specific client for exactly one deployment platform.

    Each implementation handles:
    - Connecting to its backend lazily (construction performs no I/O)
    - The primitive operations its adapters compose (run, stop, describe, scale, logs)
    - Translating library exceptions into NotFound / BackendFailure

    Drivers are created once per process by the DriverRegistry and reused.
    """

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Return the platform this driver serves."""
        pass

    @abstractmethod
    def version(self) -> Optional[str]:
        """
        Report the backend/tooling version.

        Used by the capability prober; raises BackendFailure when the backend
        or its tooling cannot be reached.
        """
        pass
