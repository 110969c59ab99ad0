"""YAML frontmatter parsing and rewriting for markdown posts.

This module splits a markdown file into its YAML header and body, and
writes fields (the Webflow ``post_id`` after an item is created) back into
the header without disturbing the rest of the file.

A file without a header is valid: it simply has no fields. A header that is
present but is not a YAML mapping is a MalformedHeaderError.
"""

import re
from typing import Any, Dict, Tuple

import yaml

from .errors import MalformedHeaderError
from .models import FrontmatterDocument


class FrontmatterHandler:
    """Handles YAML frontmatter operations for markdown files.

    Frontmatter format:
        ---
        title: Modern Web Performance
        date: 2025-01-01
        push_to_webflow: true
        post_id: 66f1c0ffee0ddba11c0ffee0   # written back after creation
        ---
        Markdown body...
    """

    # Regex pattern to match YAML frontmatter (between --- delimiters)
    FRONTMATTER_PATTERN = re.compile(
        r'^---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|$)',
        re.DOTALL
    )

    # Empty header ("---\n---\n") has no inner line to match above
    EMPTY_FRONTMATTER_PATTERN = re.compile(r'^---[ \t]*\r?\n---[ \t]*(?:\r?\n|$)')

    # Maximum allowed depth for YAML structures to prevent DoS attacks
    MAX_YAML_DEPTH = 10

    @classmethod
    def _validate_yaml_depth(cls, obj, locator: str, current_depth: int = 0) -> None:
        """Reject YAML structures nested deeper than MAX_YAML_DEPTH.

        Raises:
            MalformedHeaderError: If depth exceeds maximum
        """
        if current_depth > cls.MAX_YAML_DEPTH:
            raise MalformedHeaderError(
                locator,
                f"YAML structure exceeds maximum depth of {cls.MAX_YAML_DEPTH}"
            )

        if isinstance(obj, dict):
            for value in obj.values():
                cls._validate_yaml_depth(value, locator, current_depth + 1)
        elif isinstance(obj, list):
            for item in obj:
                cls._validate_yaml_depth(item, locator, current_depth + 1)

    @classmethod
    def split(cls, content: str) -> Tuple[Any, str, bool]:
        """Split raw text into (header text, body, has_header)."""
        match = cls.FRONTMATTER_PATTERN.match(content)
        if match:
            return match.group(1), content[match.end():], True
        match = cls.EMPTY_FRONTMATTER_PATTERN.match(content)
        if match:
            return "", content[match.end():], True
        return None, content, False

    @classmethod
    def _load_header(cls, header: str, locator: str) -> Dict[str, Any]:
        try:
            fields = yaml.safe_load(header) if header.strip() else {}
        except yaml.YAMLError as e:
            raise MalformedHeaderError(locator, f"Invalid YAML syntax: {str(e)}")
        except ValueError as e:
            # Well-formed YAML with impossible values, e.g. date: 2025-13-45
            raise MalformedHeaderError(locator, f"Invalid value: {str(e)}")

        if fields is None:
            fields = {}
        if not isinstance(fields, dict):
            raise MalformedHeaderError(
                locator,
                f"Frontmatter must be a YAML dictionary, got {type(fields).__name__}"
            )

        cls._validate_yaml_depth(fields, locator)
        return fields

    @classmethod
    def parse(cls, content: str, locator: str = "<string>") -> FrontmatterDocument:
        """Parse YAML frontmatter from markdown content.

        Args:
            content: Full markdown content including frontmatter
            locator: Identifier of the document (for error messages)

        Returns:
            FrontmatterDocument with the parsed fields and the body

        Raises:
            MalformedHeaderError: If the header is present but not a valid YAML mapping
        """
        header, body, has_header = cls.split(content)
        if not has_header:
            return FrontmatterDocument(locator=locator, fields={}, body=content)

        return FrontmatterDocument(
            locator=locator,
            fields=cls._load_header(header, locator),
            body=body,
        )

    @classmethod
    def set_field(cls, content: str, key: str, value: Any, locator: str = "<string>") -> str:
        """Set one frontmatter field, preserving every other field and the body.

        Used for identifier write-back: after an item is created the new
        Webflow ID is stored under ``post_id`` so later runs update it.
        Existing keys keep their position; a new key is appended. A header is
        created when the file has none.

        Args:
            content: Full markdown content
            key: Frontmatter key to set
            value: Value to store
            locator: Identifier of the document (for error messages)

        Returns:
            The full markdown content with the updated header

        Raises:
            MalformedHeaderError: If the existing header cannot be parsed
        """
        header, body, has_header = cls.split(content)
        fields = cls._load_header(header, locator) if has_header else {}
        fields[key] = value

        yaml_str = yaml.safe_dump(
            fields,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False
        )
        return f"---\n{yaml_str}---\n{body}"
