"""Webflow client library for content sync.

This package provides Python abstractions over the Webflow Data API v2,
covering the collection item operations the sync needs, plus the rate
limiter and retry policy shared with the reconciliation engine.
"""

from .errors import (
    SyncError,
    WebflowError,
    InvalidCredentialsError,
    MissingCredentialsError,
    RecordNotFoundError,
    RemoteValidationError,
    TransientStoreError,
    RateLimitedError,
    ServerError,
    APIUnreachableError,
    ConversionError,
)

__all__ = [
    "SyncError",
    "WebflowError",
    "InvalidCredentialsError",
    "MissingCredentialsError",
    "RecordNotFoundError",
    "RemoteValidationError",
    "TransientStoreError",
    "RateLimitedError",
    "ServerError",
    "APIUnreachableError",
    "ConversionError",
]
