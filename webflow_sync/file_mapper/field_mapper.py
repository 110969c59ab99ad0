"""Mapping of parsed frontmatter onto the Webflow collection schema.

FieldMapper is the single place where the untyped frontmatter bag becomes a
typed, validated ExternalRecord. It never touches the network or the disk;
the rendered HTML body and the run timestamp are passed in.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from webflow_sync.content_converter.asset_urls import resolve_asset_url

from .errors import ValidationError
from .models import (
    BOOLEAN,
    DATETIME,
    IMAGE,
    LINK,
    LIST,
    LIST_FORMAT_DELIMITED,
    RICHTEXT,
    SLUG,
    CollectionSchema,
    ExternalRecord,
    FieldSpec,
    FrontmatterDocument,
    default_schema,
)

logger = logging.getLogger(__name__)

EXTERNAL_ID_KEY = "post_id"
PUBLISHED_KEY = "published"
SYNC_FLAG_KEY = "push_to_webflow"

EXCERPT_MAX_LENGTH = 160
TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 120

TRUTHY_STRINGS = {"true", "yes", "1"}

# YYYY-MM-DD, optionally followed by a time, fractional seconds and offset
ISO_DATE_PATTERN = re.compile(
    r'^\d{4}-\d{2}-\d{2}([T ]\d{2}:\d{2}(:\d{2})?(\.\d+)?(Z|[+-]\d{2}:\d{2})?)?$'
)

_SLUG_STRIP = re.compile(r'[\'".,!?()\[\]]+')
_SLUG_SEPARATORS = re.compile(r'[^a-z0-9]+')
_WHITESPACE = re.compile(r'\s+')


def slugify(title: Any) -> str:
    """Derive a URL slug from a title.

    Lowercases and trims, drops quote and punctuation characters, collapses
    every run of other non-alphanumeric characters into one hyphen and trims
    hyphens from both ends.

    >>> slugify("Modern Web Performance!")
    'modern-web-performance'
    >>> slugify("  Multi   Space -- Title  ")
    'multi-space-title'
    """
    text = str(title or "").strip().lower()
    text = _SLUG_STRIP.sub("", text)
    text = _SLUG_SEPARATORS.sub("-", text)
    return text.strip("-")


def build_excerpt(rendered_html: str, max_length: int = EXCERPT_MAX_LENGTH) -> str:
    """Plain-text excerpt of rendered HTML.

    Truncation is a hard cut at ``max_length`` characters and may split a
    word; callers who want a cleaner excerpt set ``excerpt`` in frontmatter.
    """
    soup = BeautifulSoup(rendered_html or "", "html.parser")
    for element in soup.find_all(["script", "style"]):
        element.decompose()
    text = _WHITESPACE.sub(" ", soup.get_text(" ")).strip()
    return text[:max_length]


def coerce_bool(value: Any) -> bool:
    """Coerce a frontmatter value for a boolean-typed destination field.

    Booleans pass through. The strings "true", "yes" and "1" (any case)
    are True. Everything else, including None, numbers and other strings,
    is False.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_STRINGS
    return False


def format_datetime(value: Any) -> str:
    """Normalize a date or date-time to Webflow's ISO format (UTC, milliseconds).

    Accepts ``date``/``datetime`` objects (YAML parses unquoted dates) and
    ISO 8601 strings. Naive values are taken as UTC.

    Raises:
        ValueError: If the value is not an ISO 8601 date or date-time
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and ISO_DATE_PATTERN.match(value.strip()):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"must be an ISO 8601 date or date-time, got {value!r}")
    else:
        raise ValueError(f"must be an ISO 8601 date or date-time, got {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def normalize_list(value: Any, spec: FieldSpec) -> Any:
    """Shape a list or single scalar the way the destination field expects."""
    if value is None:
        return None
    items = value if isinstance(value, (list, tuple)) else [value]
    items = [str(item).strip() for item in items if item is not None and str(item).strip()]
    if spec.list_format == LIST_FORMAT_DELIMITED:
        return spec.delimiter.join(items)
    return items


def lookup(fields: Dict[str, Any], source: str) -> Any:
    """Read a possibly dotted key ("seo.title") from the frontmatter bag."""
    current: Any = fields
    for part in source.split("."):
        if not isinstance(current, dict) or part not in current:
            return None
        current = current[part]
    return current


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class FieldMapper:
    """Turns a FrontmatterDocument into an ExternalRecord.

    Every problem is collected before raising, so a document missing both
    ``title`` and ``date`` reports both at once.

    Example:
        >>> mapper = FieldMapper()
        >>> record = mapper.map(doc, "<p>Hello</p>")
        >>> record.payload["slug"]
        'hello'
    """

    def __init__(
        self,
        schema: Optional[CollectionSchema] = None,
        asset_base_url: Optional[str] = None,
        synced_at: Optional[datetime] = None,
    ):
        """Initialize the mapper.

        Args:
            schema: Destination schema (defaults to the posts collection)
            asset_base_url: Base URL for relative image paths, usually the
                            commit-pinned raw GitHub URL of the repository
            synced_at: Run timestamp used when ``last_update`` is absent
        """
        self.schema = schema or default_schema()
        self.asset_base_url = asset_base_url
        self.synced_at = synced_at or datetime.now(timezone.utc)

    def _check_required(self, fields: Dict[str, Any]) -> Tuple[List[str], List[str]]:
        missing = [
            source for source in self.schema.required_sources
            if _is_missing(lookup(fields, source))
        ]
        problems = [f"missing required field '{source}'" for source in missing]
        return problems, missing

    def _check_title(self, fields: Dict[str, Any]) -> List[str]:
        title = fields.get("title")
        if _is_missing(title):
            return []
        if not isinstance(title, str):
            return [f"title must be a string, got {type(title).__name__}"]
        length = len(title.strip())
        if not TITLE_MIN_LENGTH <= length <= TITLE_MAX_LENGTH:
            return [
                f"title must be {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH} characters, "
                f"got {length}"
            ]
        return []

    def _derived_value(self, spec: FieldSpec, fields: Dict[str, Any], rendered_body: str) -> Any:
        if spec.field_type == RICHTEXT:
            return rendered_body
        if spec.field_type == SLUG:
            explicit = fields.get(spec.source)
            if not _is_missing(explicit):
                return str(explicit)
            title = fields.get("title")
            if _is_missing(title):
                return None
            derived = slugify(title)
            if not derived:
                raise ValueError("could not be derived from title")
            return derived
        if spec.source == "excerpt":
            explicit = fields.get("excerpt")
            if not _is_missing(explicit):
                return str(explicit)
            return build_excerpt(rendered_body) or None
        if spec.source == "last_update" and _is_missing(fields.get("last_update")):
            return self.synced_at
        return lookup(fields, spec.source)

    def _convert(self, spec: FieldSpec, value: Any) -> Any:
        if spec.field_type == BOOLEAN:
            return coerce_bool(value)
        if _is_missing(value):
            return None
        if spec.field_type == DATETIME:
            return format_datetime(value)
        if spec.field_type == LIST:
            return normalize_list(value, spec)
        if spec.field_type == IMAGE:
            return resolve_asset_url(str(value).strip(), self.asset_base_url)
        if spec.field_type == RICHTEXT:
            return value
        if spec.field_type == LINK:
            return str(value).strip()
        return str(value)

    def map(self, doc: FrontmatterDocument, rendered_body: str) -> ExternalRecord:
        """Map a document and its rendered body onto the collection schema.

        Args:
            doc: Parsed document
            rendered_body: HTML rendered from ``doc.body``

        Returns:
            ExternalRecord ready for reconciliation

        Raises:
            ValidationError: Listing every problem found in the document
        """
        fields = doc.fields
        problems, missing = self._check_required(fields)
        problems.extend(self._check_title(fields))

        payload: Dict[str, Any] = {}
        for spec in self.schema.fields:
            try:
                value = self._convert(spec, self._derived_value(spec, fields, rendered_body))
            except ValueError as e:
                problems.append(f"{spec.source} {e}")
                continue
            if value is None:
                continue
            payload[spec.target] = value

        if problems:
            raise ValidationError(doc.locator, problems, missing_fields=missing)

        external_id = fields.get(EXTERNAL_ID_KEY)
        external_id = None if _is_missing(external_id) else str(external_id).strip()

        record = ExternalRecord(
            locator=doc.locator,
            external_id=external_id,
            payload=payload,
            draft_state=not coerce_bool(fields.get(PUBLISHED_KEY)),
            sync_enabled=coerce_bool(fields.get(SYNC_FLAG_KEY)),
        )
        logger.debug(
            f"Mapped {doc.locator}: {len(payload)} field(s), "
            f"external_id={record.external_id or '-'}, draft={record.draft_state}"
        )
        return record
