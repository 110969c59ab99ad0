"""Markdown to HTML conversion using Pandoc and BeautifulSoup.

Pandoc renders GitHub-flavoured markdown to HTML; the result is then run
through an allowlist sanitizer built on BeautifulSoup so that only markup
Webflow's rich text field can hold (and nothing executable) is sent.
"""

import logging
import re
import subprocess

from bs4 import BeautifulSoup, Comment

from ..webflow_client.errors import ConversionError

logger = logging.getLogger(__name__)

PANDOC_TIMEOUT = 10

ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "code", "del", "em", "figcaption", "figure",
    "h1", "h2", "h3", "h4", "h5", "h6", "hr", "i", "img", "input", "li", "ol",
    "p", "pre", "s", "strong", "sub", "sup", "table", "tbody", "td", "th",
    "thead", "tr", "ul",
}

# Removed together with their content; other disallowed tags are unwrapped
DROPPED_TAGS = {"script", "style", "iframe", "object", "embed", "noscript", "template"}

ALLOWED_ATTRIBUTES = {
    "a": {"href", "title", "target", "rel"},
    "img": {"src", "alt", "title", "width", "height", "loading"},
    "code": {"class"},
    "input": {"type", "checked", "disabled"},
    "td": {"align"},
    "th": {"align"},
}

SAFE_URL_PATTERN = re.compile(r'^(https?:|mailto:|#|/|\.{0,2}/|[^:]*$)', re.IGNORECASE)
URL_ATTRIBUTES = {"href", "src"}


def sanitize_html(html: str) -> str:
    """Strip disallowed tags, attributes and unsafe URLs from HTML.

    Args:
        html: HTML produced by Pandoc

    Returns:
        Sanitized HTML
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")

    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()

    dropped = soup.find(list(DROPPED_TAGS))
    while dropped is not None:
        dropped.decompose()
        dropped = soup.find(list(DROPPED_TAGS))

    for tag in soup.find_all(True):
        if tag.name not in ALLOWED_TAGS:
            tag.unwrap()
            continue

        allowed = ALLOWED_ATTRIBUTES.get(tag.name, set())
        for attr in list(tag.attrs):
            if attr not in allowed:
                del tag[attr]
            elif attr in URL_ATTRIBUTES and not SAFE_URL_PATTERN.match(str(tag[attr]).strip()):
                logger.debug(f"Dropping unsafe {attr} on <{tag.name}>: {tag[attr]}")
                del tag[attr]

    return str(soup).strip()


class MarkdownConverter:
    """Converts post markdown to sanitized HTML.

    Uses Pandoc (gfm reader) for rendering. Raw HTML embedded in markdown is
    not trusted: anything outside the allowlist is removed.
    """

    def __init__(self):
        """Initialize MarkdownConverter and verify Pandoc is available.

        Raises:
            ConversionError: If Pandoc is not found on system PATH
        """
        if not self._pandoc_installed():
            raise ConversionError(
                "Pandoc not found. Install: brew install pandoc (macOS) or "
                "apt-get install pandoc (Linux) or download from "
                "https://pandoc.org/installing.html"
            )

    def markdown_to_html(self, markdown: str) -> str:
        """Convert markdown to sanitized HTML using Pandoc.

        Args:
            markdown: Markdown string (without frontmatter)

        Returns:
            HTML string for the rich text field

        Raises:
            ConversionError: If conversion fails or times out
        """
        if not markdown or not markdown.strip():
            return ""

        try:
            result = subprocess.run(
                ["pandoc", "-f", "gfm", "-t", "html", "--wrap=none"],
                input=markdown,
                text=True,
                capture_output=True,
                check=True,
                timeout=PANDOC_TIMEOUT
            )
        except subprocess.CalledProcessError as e:
            raise ConversionError(f"Pandoc conversion failed: {e.stderr}")
        except subprocess.TimeoutExpired:
            raise ConversionError(f"Pandoc conversion timed out (>{PANDOC_TIMEOUT}s)")

        return sanitize_html(result.stdout)

    def _pandoc_installed(self) -> bool:
        """Check if Pandoc is installed on system PATH."""
        try:
            result = subprocess.run(
                ["which", "pandoc"],
                capture_output=True,
                timeout=5
            )
            return result.returncode == 0
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return False
