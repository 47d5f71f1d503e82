"""
Error taxonomy for the repository synchronization pipeline.

Every stage error is fatal to its enclosing operation. Errors carry enough
context (path, stage, cause) to be serialized back to an HTTP client.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union


class MirrorError(Exception):
    """Base exception for mirror pipeline failures."""

    def __init__(
        self,
        message: str,
        path: Optional[Union[str, Path]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.path = str(path) if path is not None else None
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error into a JSON-safe dict."""
        result: Dict[str, Any] = {
            "error": type(self).__name__,
            "message": self.message,
        }
        if self.path is not None:
            result["path"] = self.path
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result


class ProvisioningError(MirrorError):
    """Raised when a mirror directory cannot be created."""

    pass


class SyncError(MirrorError):
    """Raised when clone, fetch, reference resolution or checkout fails."""

    def __init__(
        self,
        message: str,
        stage: str,
        path: Optional[Union[str, Path]] = None,
        cause: Optional[BaseException] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message, path=path, cause=cause)
        self.stage = stage
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["stage"] = self.stage
        if self.details:
            result["details"] = self.details
        return result


class ExtractionError(MirrorError):
    """Raised when a fixture file cannot be read, decoded or published."""

    pass


class NotFoundError(MirrorError):
    """Raised for untracked repositories and snapshots never produced."""

    pass
