"""Typed exception hierarchy for CLI-related errors.

All exceptions inherit from CLIError for easy catching and include
descriptive messages with context to help with debugging.
"""

from typing import Optional

from webflow_sync.webflow_client.errors import SyncError


class CLIError(SyncError):
    """Base exception for all CLI-related errors."""
    pass


class ResolutionError(CLIError):
    """Raised when the set of documents to sync cannot be determined."""

    def __init__(self, content_root: str, reason: Optional[str] = None):
        message = f"Cannot resolve documents under '{content_root}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.content_root = content_root
        self.reason = reason
