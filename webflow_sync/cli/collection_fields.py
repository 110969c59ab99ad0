"""Create the collection fields the sync maps to.

The field mapping (``SyncConfig.build_schema()``) names a Webflow field slug
for every frontmatter key. A fresh collection only has the built-in ``name``
and ``slug`` fields, so ``--create-fields`` adds whatever else is missing.
Existing fields are never modified.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from webflow_sync.file_mapper.models import (
    BOOLEAN,
    DATETIME,
    IMAGE,
    LINK,
    LIST,
    RICHTEXT,
    SLUG,
    STRING,
    CollectionSchema,
    FieldSpec,
)
from webflow_sync.webflow_client.errors import InvalidCredentialsError, WebflowError

logger = logging.getLogger(__name__)

# Webflow v2 field type for each mapper field type
WEBFLOW_FIELD_TYPES = {
    STRING: "PlainText",
    RICHTEXT: "RichText",
    DATETIME: "DateTime",
    BOOLEAN: "Switch",
    LIST: "PlainText",
    LINK: "Link",
    IMAGE: "Image",
}

# Every collection has these; they cannot be created
BUILTIN_SLUGS = {"name", "slug"}


@dataclass
class FieldCreationResult:
    """Outcome of one --create-fields run.

    Attributes:
        planned: Definitions of the fields that were missing
        created: Fields Webflow created (empty in dry-run)
        failed: Error message per field slug that could not be created
    """
    planned: List[Dict[str, Any]] = field(default_factory=list)
    created: List[Dict[str, Any]] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


def display_name(slug: str) -> str:
    """'seo_title' -> 'Seo Title'."""
    return " ".join(part.capitalize() for part in slug.replace("-", "_").split("_") if part)


def field_definition(spec: FieldSpec) -> Dict[str, Any]:
    """Webflow field body for one mapped field.

    Fields are created optional: a required field cannot be added to a
    collection that already has items.
    """
    return {
        "displayName": display_name(spec.target),
        "slug": spec.target,
        "type": WEBFLOW_FIELD_TYPES[spec.field_type],
        "isRequired": False,
        "helpText": f"Synced from frontmatter '{spec.source}'",
    }


def missing_field_definitions(
    collection: Dict[str, Any],
    schema: CollectionSchema,
) -> List[Dict[str, Any]]:
    """Definitions for mapped fields that the collection does not have yet."""
    existing = {str(f.get("slug")) for f in collection.get("fields", [])}
    return [
        field_definition(spec)
        for spec in schema.fields
        if spec.field_type != SLUG
        and spec.target not in BUILTIN_SLUGS
        and spec.target not in existing
    ]


def create_missing_fields(client: Any, schema: CollectionSchema,
                          dry_run: bool = False) -> FieldCreationResult:
    """Compare the collection with the mapping and create what is missing.

    A field Webflow rejects is recorded and the remaining fields are still
    attempted.

    Args:
        client: WebflowClient (get_collection/create_field)
        schema: Field mapping in effect
        dry_run: Only report the fields that would be created

    Returns:
        FieldCreationResult

    Raises:
        InvalidCredentialsError: If the token is rejected
        WebflowError: If the collection cannot be fetched
    """
    collection = client.get_collection()
    result = FieldCreationResult(planned=missing_field_definitions(collection, schema))

    if not result.planned:
        logger.info("All mapped fields already exist in the collection")
        return result
    if dry_run:
        logger.info(f"[dry-run] Would create {len(result.planned)} field(s)")
        return result

    for definition in result.planned:
        slug = definition["slug"]
        try:
            created = client.create_field(definition)
        except InvalidCredentialsError:
            raise
        except WebflowError as e:
            logger.warning(f"Failed to create field {slug}: {e}")
            result.failed[slug] = str(e)
            continue
        logger.info(f"Created field {slug} ({definition['type']})")
        result.created.append(created or definition)

    return result
