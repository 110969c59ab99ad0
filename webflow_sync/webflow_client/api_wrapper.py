"""API wrapper for the Webflow Data API v2 (CMS collection items).

This module wraps a requests Session and provides error translation from
HTTP responses to our typed exception hierarchy. Writes are not retried here:
the reconciliation engine owns the retry policy and relies on the
classification performed by this module. Every request first takes a permit
from the shared RateLimiter.
"""

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests
from requests.exceptions import ConnectionError, Timeout

from .auth import Authenticator, Credentials
from .errors import (
    APIUnreachableError,
    InvalidCredentialsError,
    RateLimitedError,
    RecordNotFoundError,
    RemoteValidationError,
    ServerError,
    WebflowError,
)
from .rate_limiter import RateLimiter
from .retry_logic import as_decorator

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


class WebflowClient:
    """Thin binding to the Webflow collection items API.

    This class:
    1. Handles authentication using the Authenticator
    2. Translates HTTP errors to typed, classified exceptions
    3. Throttles every request through an injected RateLimiter
    4. Provides create/update/get operations on collection items

    Example:
        >>> client = WebflowClient(Authenticator(), RateLimiter())
        >>> item = client.create_record({"name": "Hello", "slug": "hello"}, is_draft=True)
        >>> item["id"]
    """

    def __init__(
        self,
        authenticator: Authenticator,
        rate_limiter: Optional[RateLimiter] = None,
        session: Optional[requests.Session] = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        """Initialize the client.

        Args:
            authenticator: Authenticator instance for loading credentials
            rate_limiter: Limiter shared by every caller of this client
            session: Optional pre-built requests Session (tests inject one)
            timeout: Per-request timeout in seconds
        """
        self._authenticator = authenticator
        self._rate_limiter = rate_limiter or RateLimiter()
        self._session = session
        self._credentials: Optional[Credentials] = None
        self.timeout = timeout

    def _get_credentials(self) -> Credentials:
        if self._credentials is None:
            self._credentials = self._authenticator.get_credentials()
        return self._credentials

    def _get_session(self) -> requests.Session:
        """Get or lazily create the authenticated requests Session."""
        if self._session is None:
            self._session = requests.Session()
        creds = self._get_credentials()
        self._session.headers.update({
            "Authorization": f"Bearer {creds.token}",
            "Content-Type": "application/json",
            "accept": "application/json",
        })
        return self._session

    def _validate_item_id(self, item_id: str) -> None:
        """Reject an empty item ID, which would address the collection itself.

        Raises:
            ValueError: If item_id is empty
        """
        if not item_id or not str(item_id).strip():
            raise ValueError("item_id cannot be empty")

    def _sanitize(self, text: str) -> str:
        """Mask bearer tokens and the configured API token in error text."""
        if not text:
            return text
        sanitized = re.sub(
            r'Bearer\s+[^\s\n\r"\']+',
            'Bearer ***REDACTED***',
            text,
            flags=re.IGNORECASE
        )
        if self._credentials and self._credentials.token:
            sanitized = sanitized.replace(self._credentials.token, '***REDACTED***')
        return sanitized

    def _items_url(self, item_id: Optional[str] = None) -> str:
        creds = self._get_credentials()
        url = f"{creds.api_url}/collections/{creds.collection_id}/items"
        if item_id:
            # One encoded path segment whatever the ID looks like; unknown IDs 404
            url += f"/{quote(str(item_id).strip(), safe='')}"
        return url

    @staticmethod
    def _parse_retry_after(response: requests.Response) -> Optional[float]:
        value = response.headers.get("Retry-After")
        if value is None:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    def _translate_response(
        self,
        response: requests.Response,
        operation: str,
        item_id: Optional[str] = None,
    ) -> WebflowError:
        """Translate a non-2xx response to a typed Webflow exception.

        Args:
            response: The failed HTTP response
            operation: Description of the operation that failed (for logging)
            item_id: Item the request targeted, if any

        Returns:
            WebflowError: One of the classified exceptions
        """
        status = response.status_code
        body = self._sanitize(response.text or "")[:500]

        if status in (401, 403):
            return InvalidCredentialsError(
                endpoint=self._get_credentials().api_url,
                status_code=status,
            )
        if status == 404:
            return RecordNotFoundError(item_id or "unknown")
        if status == 429:
            return RateLimitedError(retry_after=self._parse_retry_after(response))
        if status >= 500:
            return ServerError(status, body)
        if status in (400, 409, 422):
            return RemoteValidationError(
                f"Webflow rejected {operation} ({status}): {body}",
                status_code=status,
            )

        logger.error(f"API operation failed: {operation} - {status} {body}")
        return WebflowError(f"Webflow API failure during {operation} ({status})", status_code=status)

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        item_id: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Perform one throttled HTTP request and return the decoded JSON body."""
        session = self._get_session()
        self._rate_limiter.acquire()
        logger.debug(f"{method} {url}")

        try:
            response = session.request(
                method, url, json=json, params=params, timeout=self.timeout
            )
        except (Timeout, ConnectionError) as e:
            logger.debug(f"{operation} failed to connect: {self._sanitize(str(e))}")
            raise APIUnreachableError(endpoint=self._get_credentials().api_url) from e

        if not response.ok:
            raise self._translate_response(response, operation, item_id)

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _item_body(payload: Dict[str, Any], is_draft: bool) -> Dict[str, Any]:
        return {
            "isArchived": False,
            "isDraft": is_draft,
            "fieldData": payload,
        }

    def create_record(self, payload: Dict[str, Any], is_draft: bool = True) -> Dict[str, Any]:
        """Create a new collection item.

        Args:
            payload: Field data keyed by Webflow field slug
            is_draft: Whether the item is created as a draft

        Returns:
            Dict with the new item's ``id``, ``createdOn`` and ``lastUpdated``

        Raises:
            InvalidCredentialsError: If the token is rejected
            RemoteValidationError: If Webflow rejects the field data
            RateLimitedError, ServerError, APIUnreachableError: Transient failures
        """
        data = self._request(
            "POST",
            self._items_url(),
            "create_record",
            json=self._item_body(payload, is_draft),
        )
        # Some API versions nest the item under "item"
        item = data.get("item", data) if isinstance(data, dict) else {}
        return {
            "id": item.get("id"),
            "createdOn": item.get("createdOn"),
            "lastUpdated": item.get("lastUpdated"),
        }

    def update_record(
        self,
        item_id: str,
        payload: Dict[str, Any],
        is_draft: bool = True,
    ) -> Dict[str, Any]:
        """Update an existing collection item in place.

        PATCHing the same field data twice leaves the item in the same state.

        Args:
            item_id: Webflow item ID
            payload: Field data keyed by Webflow field slug
            is_draft: Whether the item stays a draft

        Returns:
            Dict with the item's ``id`` and ``lastUpdated``

        Raises:
            RecordNotFoundError: If the item no longer exists
            InvalidCredentialsError: If the token is rejected
            RemoteValidationError: If Webflow rejects the field data
            RateLimitedError, ServerError, APIUnreachableError: Transient failures
        """
        self._validate_item_id(item_id)
        data = self._request(
            "PATCH",
            self._items_url(item_id),
            f"update_record({item_id})",
            item_id=item_id,
            json=self._item_body(payload, is_draft),
        )
        return {
            "id": data.get("id", item_id),
            "lastUpdated": data.get("lastUpdated"),
        }

    @as_decorator()
    def get_record(self, item_id: str) -> Dict[str, Any]:
        """Fetch a collection item by ID.

        Reads are idempotent, so transient failures are retried here.

        Raises:
            RecordNotFoundError: If the item does not exist
        """
        self._validate_item_id(item_id)
        return self._request(
            "GET",
            self._items_url(item_id),
            f"get_record({item_id})",
            item_id=item_id,
        )

    @as_decorator()
    def get_collection(self) -> Dict[str, Any]:
        """Fetch the collection definition, including its field slugs and types."""
        creds = self._get_credentials()
        return self._request(
            "GET",
            f"{creds.api_url}/collections/{creds.collection_id}",
            "get_collection",
        )

    @as_decorator()
    def list_records(self, limit: int = 5, offset: int = 0) -> Dict[str, Any]:
        """List collection items, newest first as Webflow returns them.

        Args:
            limit: Maximum number of items to return (Webflow caps this at 100)
            offset: Number of items to skip

        Returns:
            Dict with ``items`` and ``pagination`` as returned by Webflow
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        return self._request(
            "GET",
            self._items_url(),
            "list_records",
            params={"limit": min(limit, 100), "offset": offset},
        )

    def create_field(self, definition: Dict[str, Any]) -> Dict[str, Any]:
        """Add a field to the collection.

        Like the other writes, this is not retried here.

        Args:
            definition: Field body (``displayName``, ``slug``, ``type``,
                        ``isRequired``, optional ``helpText``)

        Returns:
            The created field as returned by Webflow

        Raises:
            RemoteValidationError: If Webflow rejects the definition
        """
        creds = self._get_credentials()
        return self._request(
            "POST",
            f"{creds.api_url}/collections/{creds.collection_id}/fields",
            f"create_field({definition.get('slug')})",
            json=definition,
        )
