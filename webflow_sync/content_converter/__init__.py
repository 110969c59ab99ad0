"""Content conversion module for markdown -> HTML conversion.

This module provides the MarkdownConverter (Pandoc plus an allowlist
sanitizer) and helpers that rewrite repository-relative image paths to
public URLs.
"""

from .markdown_converter import MarkdownConverter, sanitize_html
from .asset_urls import build_asset_base_url, resolve_asset_url, rewrite_image_links

__all__ = [
    'MarkdownConverter',
    'sanitize_html',
    'build_asset_base_url',
    'resolve_asset_url',
    'rewrite_image_links',
]
