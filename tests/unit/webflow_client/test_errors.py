"""Unit tests for webflow_client.errors module."""

import pytest

from webflow_sync.webflow_client.errors import (
    APIUnreachableError,
    ConversionError,
    InvalidCredentialsError,
    MissingCredentialsError,
    RateLimitedError,
    RecordNotFoundError,
    RemoteValidationError,
    ServerError,
    SyncError,
    TransientStoreError,
    WebflowError,
)


class TestErrorHierarchy:
    """Test cases for the exception hierarchy."""

    @pytest.mark.parametrize("error", [
        InvalidCredentialsError("https://api.webflow.com/v2", 401),
        MissingCredentialsError(["WEBFLOW_TOKEN"]),
        RecordNotFoundError("65f0a1b2c3d4e5f6a7b8c9d0"),
        RemoteValidationError("bad field", 422),
        RateLimitedError(),
        ServerError(503),
        APIUnreachableError("https://api.webflow.com/v2"),
    ])
    def test_store_errors_are_webflow_errors(self, error):
        """Every store error can be caught as WebflowError and SyncError."""
        assert isinstance(error, WebflowError)
        assert isinstance(error, SyncError)

    @pytest.mark.parametrize("error", [
        RateLimitedError(2),
        ServerError(500),
        APIUnreachableError("https://api.webflow.com/v2"),
    ])
    def test_transient_errors(self, error):
        """Rate limiting, 5xx and unreachable API are transient."""
        assert isinstance(error, TransientStoreError)

    @pytest.mark.parametrize("error", [
        RecordNotFoundError("65f0a1b2c3d4e5f6a7b8c9d0"),
        RemoteValidationError("bad field", 400),
        InvalidCredentialsError("https://api.webflow.com/v2", 403),
    ])
    def test_permanent_errors_are_not_transient(self, error):
        """Errors that retrying cannot fix are not transient."""
        assert not isinstance(error, TransientStoreError)

    def test_conversion_error_is_not_a_store_error(self):
        """ConversionError is a SyncError but not a WebflowError."""
        error = ConversionError("pandoc failed")
        assert isinstance(error, SyncError)
        assert not isinstance(error, WebflowError)


class TestErrorAttributes:
    """Test cases for exception attributes and messages."""

    def test_missing_credentials_lists_variables(self):
        """MissingCredentialsError names every missing variable."""
        error = MissingCredentialsError(["WEBFLOW_TOKEN", "WEBFLOW_COLLECTION_ID"])

        assert isinstance(error, InvalidCredentialsError)
        assert error.missing == ["WEBFLOW_TOKEN", "WEBFLOW_COLLECTION_ID"]
        assert "WEBFLOW_TOKEN, WEBFLOW_COLLECTION_ID" in str(error)

    def test_record_not_found_carries_item_id(self):
        """RecordNotFoundError keeps the item id and a 404 status."""
        error = RecordNotFoundError("65f0a1b2c3d4e5f6a7b8c9d0")

        assert error.item_id == "65f0a1b2c3d4e5f6a7b8c9d0"
        assert error.status_code == 404
        assert "65f0a1b2c3d4e5f6a7b8c9d0" in str(error)

    def test_rate_limited_with_retry_after(self):
        """RateLimitedError mentions the Retry-After delay when known."""
        error = RateLimitedError(retry_after=2.5)

        assert error.retry_after == 2.5
        assert error.status_code == 429
        assert "2.5s" in str(error)

    def test_rate_limited_without_retry_after(self):
        """RateLimitedError works without a Retry-After delay."""
        error = RateLimitedError()

        assert error.retry_after is None
        assert str(error) == "Rate limit exceeded"

    def test_server_error_message(self):
        """ServerError includes status and body."""
        error = ServerError(502, "bad gateway")

        assert error.status_code == 502
        assert "502" in str(error)
        assert "bad gateway" in str(error)
