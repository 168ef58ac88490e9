"""Error taxonomy for container platform operations.

Every error raised by an adapter or driver is one of these. The dispatcher
turns them into failed OperationResults; none of them escapes a public
operation.
"""

from typing import Optional


class ContainerPlatformError(Exception):
    """Base class for dispatcher errors."""

    code = "ContainerPlatformError"

    def __init__(self, message: str, platform: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.platform = platform

    def __str__(self) -> str:
        return self.message


class PlatformUnsupported(ContainerPlatformError):
    """The platform identifier is not one this layer knows."""

    code = "PlatformUnsupported"


class OperationUnsupportedOnPlatform(ContainerPlatformError):
    """The platform is known but has no adapter for the requested operation."""

    code = "OperationUnsupportedOnPlatform"

    def __init__(self, operation: str, platform: str, hint: Optional[str] = None):
        message = f"{operation} is not supported on platform '{platform}'"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message, platform)
        self.operation = operation


class ConfigurationMissing(ContainerPlatformError):
    """A required identifier was not supplied by the request, platformOptions or settings."""

    code = "ConfigurationMissing"


class BackendFailure(ContainerPlatformError):
    """The underlying driver call failed."""

    code = "BackendFailure"


class NotFound(ContainerPlatformError):
    """The named unit does not exist on the target platform."""

    code = "NotFound"
