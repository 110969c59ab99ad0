"""Typed exception hierarchy for file mapper errors.

This module defines all custom exceptions used by the file mapper library.
All exceptions inherit from FileMapperError base class for easy catching and
include descriptive messages with context to help with debugging.
"""

from typing import List, Optional

from webflow_sync.webflow_client.errors import SyncError


class FileMapperError(SyncError):
    """Base exception for all file mapper errors."""
    pass


class FilesystemError(FileMapperError):
    """Raised when filesystem operations fail (read, write, permissions, etc)."""

    def __init__(self, file_path: str, operation: str, reason: Optional[str] = None):
        message = f"Filesystem operation '{operation}' failed for {file_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.file_path = file_path
        self.operation = operation
        self.reason = reason


class ConfigError(FileMapperError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, config_field: Optional[str] = None):
        if config_field:
            full_message = f"Configuration error in field '{config_field}': {message}"
        else:
            full_message = f"Configuration error: {message}"
        super().__init__(full_message)
        self.config_field = config_field
        self.original_message = message


class MalformedHeaderError(FileMapperError):
    """Raised when a frontmatter block is present but cannot be parsed."""

    def __init__(self, locator: str, message: str):
        super().__init__(
            f"Malformed frontmatter in {locator}: {message}"
        )
        self.locator = locator
        self.message = message


class ValidationError(FileMapperError):
    """Raised when a document cannot be mapped onto the collection schema.

    Carries every problem found in one pass, so a single round of edits can
    fix the document.

    Attributes:
        locator: Document the problems were found in
        missing_fields: Required frontmatter keys that are absent
        problems: Human readable description of every problem, including
                  the missing fields
    """

    def __init__(
        self,
        locator: str,
        problems: List[str],
        missing_fields: Optional[List[str]] = None,
    ):
        super().__init__(
            f"Validation failed for {locator}: {'; '.join(problems)}"
        )
        self.locator = locator
        self.problems = problems
        self.missing_fields = missing_fields or []
