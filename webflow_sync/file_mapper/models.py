"""Data models for file mapper.

This module defines all data models used by the file mapper library.
All models use dataclasses for clean, type-safe data structures.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


# Destination field types understood by FieldMapper
STRING = "string"
SLUG = "slug"
RICHTEXT = "richtext"
DATETIME = "datetime"
BOOLEAN = "boolean"
LIST = "list"
LINK = "link"
IMAGE = "image"

FIELD_TYPES = {STRING, SLUG, RICHTEXT, DATETIME, BOOLEAN, LIST, LINK, IMAGE}

# How list-typed fields are shaped for the destination
LIST_FORMAT_LIST = "list"
LIST_FORMAT_DELIMITED = "delimited"


@dataclass
class FrontmatterDocument:
    """A markdown document split into its YAML header and body.

    Transient read model rebuilt from the file on every sync pass.

    Attributes:
        locator: Identifier of the source document (repository-relative path)
        fields: Parsed frontmatter key-value data (empty if no header)
        body: Markdown content after the header
    """
    locator: str
    fields: Dict[str, Any] = field(default_factory=dict)
    body: str = ""


@dataclass
class ExternalRecord:
    """The shape of one Webflow collection item, ready to send.

    Only FieldMapper builds these, after validation, so ``payload`` always
    holds every required destination field.

    Attributes:
        locator: Source document this record was mapped from
        external_id: Webflow item ID (None until the item has been created)
        payload: Field data keyed by Webflow field slug
        draft_state: True when the item should be a draft
        sync_enabled: False when the document opted out of syncing
    """
    locator: str
    external_id: Optional[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    draft_state: bool = True
    sync_enabled: bool = True


@dataclass(frozen=True)
class FieldSpec:
    """Mapping of one frontmatter key onto one destination field.

    Attributes:
        source: Frontmatter key; dotted for nested keys (e.g. "seo.title")
        target: Webflow field slug
        field_type: One of FIELD_TYPES
        required: Whether the source key must be present
        list_format: For list fields, "list" or "delimited"
        delimiter: Separator used when list_format is "delimited"
    """
    source: str
    target: str
    field_type: str = STRING
    required: bool = False
    list_format: str = LIST_FORMAT_LIST
    delimiter: str = ", "


@dataclass
class CollectionSchema:
    """Destination schema: the ordered list of field specs."""
    fields: List[FieldSpec] = field(default_factory=list)

    def get(self, source: str) -> Optional[FieldSpec]:
        for spec in self.fields:
            if spec.source == source:
                return spec
        return None

    def target(self, source: str) -> str:
        spec = self.get(source)
        if spec is None:
            raise KeyError(f"No destination field for '{source}'")
        return spec.target

    @property
    def required_sources(self) -> List[str]:
        return [spec.source for spec in self.fields if spec.required]

    @property
    def boolean_fields(self) -> List[FieldSpec]:
        return [spec for spec in self.fields if spec.field_type == BOOLEAN]

    def with_overrides(
        self,
        field_ids: Optional[Dict[str, str]] = None,
        list_format: Optional[str] = None,
        delimiter: Optional[str] = None,
    ) -> "CollectionSchema":
        """Return a copy with target slugs and list shaping overridden."""
        field_ids = field_ids or {}
        updated = []
        for spec in self.fields:
            changes: Dict[str, Any] = {}
            if spec.source in field_ids:
                changes['target'] = field_ids[spec.source]
            if spec.field_type == LIST:
                if list_format:
                    changes['list_format'] = list_format
                if delimiter is not None:
                    changes['delimiter'] = delimiter
            updated.append(replace(spec, **changes) if changes else spec)
        return CollectionSchema(fields=updated)


def default_schema() -> CollectionSchema:
    """Schema of the blog posts collection the sync was built for."""
    return CollectionSchema(fields=[
        FieldSpec("title", "name", STRING, required=True),
        FieldSpec("slug", "slug", SLUG),
        FieldSpec("body", "body_rich", RICHTEXT),
        FieldSpec("image", "main_image", IMAGE),
        FieldSpec("date", "publish_date", DATETIME, required=True),
        FieldSpec("author", "author_text", STRING),
        FieldSpec("link", "external_link", LINK),
        FieldSpec("published", "is_published", BOOLEAN),
        FieldSpec("push_to_webflow", "push_to_webflow", BOOLEAN, required=True),
        FieldSpec("post_id", "post_id", STRING),
        FieldSpec("last_update", "last_update", DATETIME),
        FieldSpec("tags", "tags_multi", LIST),
        FieldSpec("excerpt", "excerpt", STRING),
        FieldSpec("seo.title", "seo_title", STRING),
        FieldSpec("seo.description", "seo_description", STRING),
    ])


@dataclass
class SyncConfig:
    """Overall sync configuration loaded from .webflow-sync/config.yaml.

    Attributes:
        posts_dir: Directory holding the markdown corpus
        images_dir: Shared image directory used to resolve bare image names
        field_ids: Overrides of destination field slugs keyed by source key
        list_format: Shape of list fields ("list" or "delimited")
        list_delimiter: Separator for delimited list fields
        rate_limit_per_minute: Request budget shared by all store calls
        max_workers: Documents reconciled concurrently (1 = sequential)
        max_retries: Retries for transient store errors
        write_back: Whether new item IDs are written into source frontmatter
    """
    posts_dir: str = "posts"
    images_dir: str = "images"
    field_ids: Dict[str, str] = field(default_factory=dict)
    list_format: str = LIST_FORMAT_LIST
    list_delimiter: str = ", "
    rate_limit_per_minute: int = 60
    max_workers: int = 1
    max_retries: int = 3
    write_back: bool = True

    def build_schema(self) -> CollectionSchema:
        return default_schema().with_overrides(
            field_ids=self.field_ids,
            list_format=self.list_format,
            delimiter=self.list_delimiter,
        )
