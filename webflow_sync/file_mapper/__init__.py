"""File mapper library for markdown posts.

This package turns markdown files with YAML frontmatter into Webflow
collection items: frontmatter parsing and write-back, the destination
schema, field mapping and validation, and the sync configuration file.
"""

from .config_loader import ConfigLoader
from .errors import (
    FileMapperError,
    FilesystemError,
    ConfigError,
    MalformedHeaderError,
    ValidationError,
)
from .field_mapper import FieldMapper, build_excerpt, coerce_bool, slugify
from .frontmatter_handler import FrontmatterHandler
from .frontmatter_validator import FrontmatterValidator, ValidationIssue
from .models import (
    CollectionSchema,
    ExternalRecord,
    FieldSpec,
    FrontmatterDocument,
    SyncConfig,
    default_schema,
)

__all__ = [
    'ConfigLoader',
    'FileMapperError',
    'FilesystemError',
    'ConfigError',
    'MalformedHeaderError',
    'ValidationError',
    'FieldMapper',
    'build_excerpt',
    'coerce_bool',
    'slugify',
    'FrontmatterHandler',
    'FrontmatterValidator',
    'ValidationIssue',
    'CollectionSchema',
    'ExternalRecord',
    'FieldSpec',
    'FrontmatterDocument',
    'SyncConfig',
    'default_schema',
]
