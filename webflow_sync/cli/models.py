"""Data models for CLI operations.

This module defines the data models used by the CLI module: exit codes,
run modes, per-document sync outcomes and the run summary. All models use
dataclasses, following the patterns in webflow_sync/file_mapper/models.py.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Every document was created, updated or skipped
    - GENERAL_ERROR (1): Config problems, failed documents, write-back failures
    - AUTH_ERROR (3): Authentication or authorization failure
    - NETWORK_ERROR (4): Webflow API unreachable
    - VALIDATION_ERROR (5): Frontmatter lint errors (--validate)

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 3
    NETWORK_ERROR = 4
    VALIDATION_ERROR = 5


class SyncMode(str, Enum):
    """How the set of documents to sync is chosen."""
    ALL = "all"
    DELTA = "delta"


class SyncOperation(str, Enum):
    """What happened (or, in dry-run, would happen) to one document."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


class ErrorKind(str, Enum):
    """Classification of a failed outcome."""
    MALFORMED_HEADER = "malformed_header"
    VALIDATION = "validation"
    STALE_IDENTIFIER = "stale_identifier"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    REMOTE_VALIDATION = "remote_validation"
    AUTH = "auth"
    CONVERSION = "conversion"
    FILESYSTEM = "filesystem"
    UNEXPECTED = "unexpected"


class SkipReason(str, Enum):
    """Why a document was skipped."""
    SYNC_DISABLED = "sync_disabled"
    NOT_ATTEMPTED = "not_attempted"


@dataclass
class SyncOutcome:
    """Result of reconciling one document.

    Attributes:
        locator: Repository-relative path of the source document
        operation: created, updated, skipped or failed
        external_id: Webflow item id (known after create, or from post_id)
        error: Error message, present if and only if operation is FAILED
        error_kind: Classification of the error
        skip_reason: Why the document was skipped
        created_on: Remote creation timestamp (created only)
        last_updated: Remote last-updated timestamp
        dry_run: True when the operation was only planned, not performed

    Raises:
        ValueError: If error presence does not match the operation

    Example:
        >>> SyncOutcome("posts/a.md", SyncOperation.CREATED, external_id="65f0...")
        >>> SyncOutcome("posts/b.md", SyncOperation.FAILED,
        ...             error="Item not found", error_kind=ErrorKind.STALE_IDENTIFIER)
    """
    locator: str
    operation: SyncOperation
    external_id: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    skip_reason: Optional[SkipReason] = None
    created_on: Optional[str] = None
    last_updated: Optional[str] = None
    dry_run: bool = False

    def __post_init__(self):
        failed = self.operation == SyncOperation.FAILED
        if failed and not self.error:
            raise ValueError(f"Failed outcome for {self.locator} requires an error message")
        if not failed and self.error is not None:
            raise ValueError(
                f"Outcome '{self.operation.value}' for {self.locator} cannot carry an error"
            )

    @classmethod
    def failure(cls, locator: str, error: Exception, kind: ErrorKind,
                external_id: Optional[str] = None) -> "SyncOutcome":
        return cls(
            locator=locator,
            operation=SyncOperation.FAILED,
            external_id=external_id,
            error=str(error) or type(error).__name__,
            error_kind=kind,
        )

    @classmethod
    def not_attempted(cls, locator: str) -> "SyncOutcome":
        return cls(
            locator=locator,
            operation=SyncOperation.SKIPPED,
            skip_reason=SkipReason.NOT_ATTEMPTED,
        )


@dataclass
class ChangeSetContext:
    """Inputs for delta change-set resolution.

    Attributes:
        explicit_locators: Caller-supplied paths that override git detection
        base_revision: Revision to diff from (e.g. HEAD~1 or a PR base sha)
        head_revision: Revision to diff to
    """
    explicit_locators: Optional[List[str]] = None
    base_revision: Optional[str] = None
    head_revision: str = "HEAD"


@dataclass
class RunSummary:
    """Aggregate of one sync run, used for display and the exit code.

    Attributes:
        outcomes: One outcome per resolved document, in resolution order
        aborted_reason: Set when the run stopped early (auth failure, cancel)
        write_back_failures: Locators whose post_id could not be written back
    """
    outcomes: List[SyncOutcome] = field(default_factory=list)
    aborted_reason: Optional[str] = None
    write_back_failures: List[str] = field(default_factory=list)

    def count(self, operation: SyncOperation) -> int:
        return sum(1 for o in self.outcomes if o.operation == operation)

    @property
    def created_count(self) -> int:
        return self.count(SyncOperation.CREATED)

    @property
    def updated_count(self) -> int:
        return self.count(SyncOperation.UPDATED)

    @property
    def skipped_count(self) -> int:
        return self.count(SyncOperation.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self.count(SyncOperation.FAILED)

    @property
    def failures(self) -> List[SyncOutcome]:
        return [o for o in self.outcomes if o.operation == SyncOperation.FAILED]

    @property
    def has_failures(self) -> bool:
        return self.failed_count > 0 or bool(self.write_back_failures)

    def by_locator(self) -> Dict[str, SyncOutcome]:
        return {o.locator: o for o in self.outcomes}
