"""
Print server exceptions
"""

from typing import Optional


class PrintServerError(RuntimeError):
    """Base error for the print server."""


class ResolutionError(PrintServerError):
    """Raised when a job's content cannot be turned into document bytes."""

    def __init__(self, url: Optional[str], message: str):
        self.url = url
        super().__init__(f"{url}: {message}" if url else message)


class ArtifactError(PrintServerError):
    """Raised when a temporary PDF cannot be written."""


class ExecutionError(PrintServerError):
    """Raised when the print command fails to spawn or exits nonzero."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        self.returncode = returncode
        super().__init__(message)


class UnsupportedPlatformError(PrintServerError):
    """Raised when no command translator exists for the host platform."""


class ServerLifecycleError(PrintServerError):
    """Base error for listener start/stop transitions."""


class ServerStartError(ServerLifecycleError):
    """Raised when the listener cannot be bound."""


class ServerAlreadyRunningError(ServerLifecycleError):
    """Raised when start is requested while the listener is running."""


class RenderError(PrintServerError):
    """Raised by the page renderer when a URL cannot be turned into a PDF."""
