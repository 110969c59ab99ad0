"""Frontmatter linting for pull-request checks.

Stricter than FieldMapper: besides the fields the mapping needs, it flags
unknown keys (usually typos), wrong value types and image paths that do not
resolve. Problems that would not break a sync are reported as warnings.
"""

import os
from dataclasses import dataclass
from datetime import date
from typing import List

from webflow_sync.content_converter.asset_urls import ABSOLUTE_URL_PATTERN

from .field_mapper import ISO_DATE_PATTERN, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH
from .models import FrontmatterDocument

ERROR = "error"
WARNING = "warning"

REQUIRED_FIELDS = ["title", "date", "push_to_webflow"]
OPTIONAL_FIELDS = [
    "slug",
    "image",
    "author",
    "link",
    "published",
    "post_id",
    "last_update",
    "tags",
    "excerpt",
    "seo",
]
ALLOWED_FIELDS = set(REQUIRED_FIELDS) | set(OPTIONAL_FIELDS)
ALLOWED_SEO_FIELDS = {"title", "description"}


@dataclass
class ValidationIssue:
    """One lint finding for a document."""
    locator: str
    severity: str
    message: str

    def __str__(self) -> str:
        return f"{self.locator}: {self.message}"


class FrontmatterValidator:
    """Lints parsed frontmatter against the posts collection conventions.

    Example:
        >>> issues = FrontmatterValidator().validate(doc)
        >>> [i.message for i in issues if i.severity == ERROR]
        ["Missing required field 'date'"]
    """

    def __init__(self, repo_root: str = "."):
        self.repo_root = repo_root

    def validate(self, doc: FrontmatterDocument) -> List[ValidationIssue]:
        issues: List[ValidationIssue] = []
        data = doc.fields

        def error(message: str) -> None:
            issues.append(ValidationIssue(doc.locator, ERROR, message))

        def warn(message: str) -> None:
            issues.append(ValidationIssue(doc.locator, WARNING, message))

        for key in REQUIRED_FIELDS:
            if key not in data:
                error(f"Missing required field '{key}'")

        for key in data:
            if key not in ALLOWED_FIELDS:
                error(f"Unknown field '{key}' (typo?)")

        title = data.get("title")
        if title is not None:
            if not isinstance(title, str):
                error("title must be a string")
            elif not TITLE_MIN_LENGTH <= len(title.strip()) <= TITLE_MAX_LENGTH:
                error(f"title must be {TITLE_MIN_LENGTH}-{TITLE_MAX_LENGTH} characters")

        if "date" in data and not self._is_iso(data["date"]):
            error(f"date must be ISO format (YYYY-MM-DD or full timestamp), got: {data['date']}")

        for key in ("published", "push_to_webflow"):
            if key in data and not isinstance(data[key], bool):
                error(f"{key} must be boolean (true/false)")

        link = data.get("link")
        if isinstance(link, str) and not ABSOLUTE_URL_PATTERN.match(link):
            warn("link does not look like a valid URL")

        image = data.get("image")
        if isinstance(image, str):
            image_path = image.strip()
            if not ABSOLUTE_URL_PATTERN.match(image_path) and not os.path.exists(
                os.path.join(self.repo_root, image_path)
            ):
                warn("image path not found on disk (relative paths must resolve)")

        tags = data.get("tags")
        if tags is not None:
            if not isinstance(tags, list):
                warn("tags should be a list (a single value is treated as one tag)")
            else:
                for i, tag in enumerate(tags):
                    if not isinstance(tag, str):
                        error(f"tags[{i}] must be a string")

        seo = data.get("seo")
        if seo is not None:
            if not isinstance(seo, dict):
                error("seo must be an object")
            else:
                for key in seo:
                    if key not in ALLOWED_SEO_FIELDS:
                        error(f"seo.{key} is not allowed")
                for key in ALLOWED_SEO_FIELDS:
                    if seo.get(key) is not None and not isinstance(seo[key], str):
                        error(f"seo.{key} must be a string")

        post_id = data.get("post_id")
        if post_id is not None and not isinstance(post_id, str):
            error("post_id must be a string")

        if "last_update" in data and not self._is_iso(data["last_update"]):
            error("last_update must be an ISO date string")

        return issues

    @staticmethod
    def _is_iso(value: object) -> bool:
        # YAML turns unquoted dates into date/datetime objects
        if isinstance(value, date):
            return True
        return isinstance(value, str) and bool(ISO_DATE_PATTERN.match(value.strip()))


def has_errors(issues: List[ValidationIssue]) -> bool:
    return any(issue.severity == ERROR for issue in issues)
