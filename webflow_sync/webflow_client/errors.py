"""Typed exception hierarchy for Webflow-related errors.

This module defines all custom exceptions used by the Webflow client library.
Every store error carries a classification that the reconciliation engine
trusts when deciding whether to retry: subclasses of TransientStoreError are
retried with backoff, everything else surfaces immediately.
"""

from typing import Optional


class SyncError(Exception):
    """Base exception for all webflow-sync errors.

    Use this to catch any application-level error from the sync tool.
    """
    pass


class WebflowError(SyncError):
    """Base exception for all Webflow-related errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class InvalidCredentialsError(WebflowError):
    """Raised when the API token is rejected (HTTP 401/403).

    A bad credential fails every subsequent request identically, so the
    sync run treats this error as fatal.
    """

    def __init__(self, endpoint: str, status_code: Optional[int] = None):
        super().__init__(
            f"API token is invalid or lacks access (endpoint: {endpoint})",
            status_code=status_code,
        )
        self.endpoint = endpoint


class MissingCredentialsError(InvalidCredentialsError):
    """Raised when required credential environment variables are not set."""

    def __init__(self, missing: list):
        WebflowError.__init__(
            self,
            f"Missing required environment variable(s): {', '.join(missing)}"
        )
        self.endpoint = "unknown"
        self.missing = missing


class RecordNotFoundError(WebflowError):
    """Raised when a requested collection item does not exist (HTTP 404)."""

    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} not found", status_code=404)
        self.item_id = item_id


class RemoteValidationError(WebflowError):
    """Raised when Webflow rejects the payload (HTTP 400/409/422)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)


class TransientStoreError(WebflowError):
    """Base class for errors that are worth retrying."""
    pass


class RateLimitedError(TransientStoreError):
    """Raised when Webflow responds with HTTP 429."""

    def __init__(self, retry_after: Optional[float] = None):
        message = "Rate limit exceeded"
        if retry_after is not None:
            message += f" (retry after {retry_after:g}s)"
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class ServerError(TransientStoreError):
    """Raised when Webflow responds with a 5xx status."""

    def __init__(self, status_code: int, message: str = ""):
        text = f"Webflow server error ({status_code})"
        if message:
            text += f": {message}"
        super().__init__(text, status_code=status_code)


class APIUnreachableError(TransientStoreError):
    """Raised when the Webflow API cannot be reached (timeout, DNS, refused)."""

    def __init__(self, endpoint: str):
        super().__init__(f"API is not available at {endpoint}")
        self.endpoint = endpoint


class ConversionError(SyncError):
    """Raised when markdown to HTML conversion fails."""

    def __init__(self, message: str):
        super().__init__(message)
