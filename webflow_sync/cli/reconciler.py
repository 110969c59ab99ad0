"""Reconciliation of mapped records against the Webflow collection.

The engine decides between create, update and skip for one record, using
only the identifier carried by the record itself:

- sync disabled      -> skipped, no store call
- no external id     -> create (never a lookup by slug)
- external id        -> update that item; a missing item is reported as a
                        stale identifier and is never turned into a create

Transient store errors are retried with exponential backoff; everything
else becomes a failed outcome, except authentication errors, which are
re-raised because every later document would fail the same way.
"""

import logging
from typing import Any, Callable, Dict, Optional

from webflow_sync.cli.models import ErrorKind, SkipReason, SyncOperation, SyncOutcome
from webflow_sync.file_mapper.models import ExternalRecord
from webflow_sync.webflow_client.errors import (
    APIUnreachableError,
    InvalidCredentialsError,
    RateLimitedError,
    RecordNotFoundError,
    RemoteValidationError,
    ServerError,
    WebflowError,
)
from webflow_sync.webflow_client.retry_logic import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_RETRIES,
    retry_on_transient,
)

logger = logging.getLogger(__name__)


def classify_store_error(error: Exception) -> ErrorKind:
    """Map a store exception onto the ErrorKind reported for the document."""
    if isinstance(error, RecordNotFoundError):
        return ErrorKind.STALE_IDENTIFIER
    if isinstance(error, RateLimitedError):
        return ErrorKind.RATE_LIMITED
    if isinstance(error, ServerError):
        return ErrorKind.SERVER_ERROR
    if isinstance(error, APIUnreachableError):
        return ErrorKind.NETWORK
    if isinstance(error, RemoteValidationError):
        return ErrorKind.REMOTE_VALIDATION
    if isinstance(error, InvalidCredentialsError):
        return ErrorKind.AUTH
    return ErrorKind.UNEXPECTED


class ReconciliationEngine:
    """Creates or updates one Webflow item per mapped record.

    The store is anything with ``create_record(payload, is_draft)`` and
    ``update_record(item_id, payload, is_draft)``, normally a WebflowClient.

    Example:
        >>> engine = ReconciliationEngine(WebflowClient(Authenticator()))
        >>> outcome = engine.reconcile(record)
        >>> outcome.operation
        <SyncOperation.CREATED: 'created'>
    """

    def __init__(
        self,
        store: Any,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY,
        sleep: Optional[Callable[[float], None]] = None,
        dry_run: bool = False,
    ):
        """Initialize the engine.

        Args:
            store: Record store client (create_record/update_record)
            max_retries: Retries for transient errors, per store call
            base_delay: First backoff delay in seconds
            sleep: Sleep function used between retries (defaults to time.sleep)
            dry_run: Plan operations without calling the store
        """
        self.store = store
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.sleep = sleep
        self.dry_run = dry_run

    def _call(self, func: Callable[..., Dict[str, Any]], *args, **kwargs) -> Dict[str, Any]:
        return retry_on_transient(
            func,
            *args,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
            sleep=self.sleep,
            **kwargs,
        )

    def reconcile(self, record: ExternalRecord) -> SyncOutcome:
        """Bring the remote item in line with one mapped record.

        Args:
            record: Validated record produced by FieldMapper

        Returns:
            SyncOutcome describing what happened (or would happen in dry-run)

        Raises:
            InvalidCredentialsError: If the store rejects the API token
        """
        if not record.sync_enabled:
            logger.info(f"Skipping {record.locator}: push_to_webflow is false")
            return SyncOutcome(
                locator=record.locator,
                operation=SyncOperation.SKIPPED,
                external_id=record.external_id,
                skip_reason=SkipReason.SYNC_DISABLED,
            )

        if record.external_id:
            return self._update(record)
        return self._create(record)

    def _create(self, record: ExternalRecord) -> SyncOutcome:
        if self.dry_run:
            logger.info(f"[dry-run] Would create item for {record.locator}")
            return SyncOutcome(record.locator, SyncOperation.CREATED, dry_run=True)

        try:
            result = self._call(
                self.store.create_record, record.payload, is_draft=record.draft_state
            )
        except InvalidCredentialsError:
            raise
        except WebflowError as e:
            logger.error(f"Create failed for {record.locator}: {e}")
            return SyncOutcome.failure(record.locator, e, classify_store_error(e))

        logger.info(f"Created item {result.get('id')} for {record.locator}")
        return SyncOutcome(
            locator=record.locator,
            operation=SyncOperation.CREATED,
            external_id=result.get("id"),
            created_on=result.get("createdOn"),
            last_updated=result.get("lastUpdated"),
        )

    def _update(self, record: ExternalRecord) -> SyncOutcome:
        item_id = record.external_id
        if self.dry_run:
            logger.info(f"[dry-run] Would update item {item_id} for {record.locator}")
            return SyncOutcome(
                record.locator, SyncOperation.UPDATED, external_id=item_id, dry_run=True
            )

        try:
            result = self._call(
                self.store.update_record, item_id, record.payload, is_draft=record.draft_state
            )
        except InvalidCredentialsError:
            raise
        except RecordNotFoundError as e:
            logger.error(
                f"Item {item_id} referenced by {record.locator} no longer exists; "
                f"clear post_id to create a new item"
            )
            return SyncOutcome.failure(
                record.locator, e, ErrorKind.STALE_IDENTIFIER, external_id=item_id
            )
        except WebflowError as e:
            logger.error(f"Update failed for {record.locator}: {e}")
            return SyncOutcome.failure(
                record.locator, e, classify_store_error(e), external_id=item_id
            )

        logger.info(f"Updated item {item_id} for {record.locator}")
        return SyncOutcome(
            locator=record.locator,
            operation=SyncOperation.UPDATED,
            external_id=result.get("id", item_id),
            last_updated=result.get("lastUpdated"),
        )
