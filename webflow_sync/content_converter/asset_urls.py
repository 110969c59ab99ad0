"""Resolution of repository-relative image paths to public URLs.

Webflow cannot read files from the repository, so relative image paths in
frontmatter and in markdown bodies are rewritten to raw.githubusercontent.com
URLs pinned to the commit being synced. Pinning to the commit keeps the URL
immutable even if the image is later changed or removed.
"""

import os
import posixpath
import re
from typing import Optional

ABSOLUTE_URL_PATTERN = re.compile(r'^https?://', re.IGNORECASE)

# ![alt](url "optional title")
IMAGE_LINK_PATTERN = re.compile(r'!\[([^\]]*)\]\(([^)]+)\)')

RAW_BASE = "https://raw.githubusercontent.com"


def build_asset_base_url(repository: Optional[str], commit: Optional[str]) -> Optional[str]:
    """Base URL for repository files at a commit, or None outside CI.

    Args:
        repository: "owner/repo" (GITHUB_REPOSITORY)
        commit: Commit SHA or branch name (GITHUB_SHA)
    """
    if not repository:
        return None
    return f"{RAW_BASE}/{repository.strip('/')}/{commit or 'main'}/"


def resolve_asset_url(path_or_url: str, base_url: Optional[str]) -> str:
    """Turn a repository-relative path into a public URL.

    Absolute http(s) URLs are returned unchanged, as are relative paths when
    no base URL is known.
    """
    if not path_or_url or ABSOLUTE_URL_PATTERN.match(path_or_url):
        return path_or_url
    if not base_url:
        return path_or_url
    relative = re.sub(r'^\.?/', '', path_or_url)
    return f"{base_url.rstrip('/')}/{relative}"


def rewrite_image_links(
    markdown: str,
    file_dir: str,
    base_url: Optional[str],
    images_dir: str = "images",
    repo_root: str = ".",
) -> str:
    """Rewrite relative markdown image links to commit-pinned raw URLs.

    Paths are resolved relative to the markdown file's directory. When that
    file does not exist but a file with the same name exists in the shared
    ``images_dir``, the shared copy is used. Absolute URLs are untouched and
    image titles are preserved.

    Args:
        markdown: Markdown body
        file_dir: Repository-relative directory of the markdown file
        base_url: Result of build_asset_base_url (None leaves links as they are)
        images_dir: Shared image directory
        repo_root: Directory the repository-relative paths are checked against

    Returns:
        Markdown with rewritten image links
    """
    if not base_url:
        return markdown

    def _replace(match: re.Match) -> str:
        alt, url = match.group(1), match.group(2)
        parts = url.strip().split(None, 1)
        clean = parts[0].strip('<>') if parts else ""
        if not clean or ABSOLUTE_URL_PATTERN.match(clean):
            return match.group(0)

        repo_relative = posixpath.normpath(posixpath.join(file_dir.replace(os.sep, '/'), clean))
        repo_relative = re.sub(r'^(\.\./)+', '', repo_relative)
        if not os.path.exists(os.path.join(repo_root, repo_relative)):
            candidate = posixpath.join(images_dir, posixpath.basename(clean))
            if os.path.exists(os.path.join(repo_root, candidate)):
                repo_relative = candidate

        rest = f" {parts[1]}" if len(parts) > 1 else ""
        return f"![{alt}]({resolve_asset_url(repo_relative, base_url)}{rest})"

    return IMAGE_LINK_PATTERN.sub(_replace, markdown)
