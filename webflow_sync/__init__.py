"""One-way sync of markdown posts with YAML frontmatter to a Webflow CMS collection."""

__version__ = "0.1.0"
