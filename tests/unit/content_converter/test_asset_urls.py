"""Unit tests for content_converter.asset_urls module."""

import pytest

from webflow_sync.content_converter.asset_urls import (
    build_asset_base_url,
    resolve_asset_url,
    rewrite_image_links,
)

BASE = "https://raw.githubusercontent.com/acme/blog/abc123/"


class TestBuildAssetBaseUrl:
    """Test cases for build_asset_base_url function."""

    def test_with_commit(self):
        """The URL is pinned to the commit."""
        assert build_asset_base_url("acme/blog", "abc123") == BASE

    def test_without_commit_uses_main(self):
        """Without a commit the main branch is used."""
        assert build_asset_base_url("acme/blog", None) == (
            "https://raw.githubusercontent.com/acme/blog/main/"
        )

    def test_without_repository(self):
        """Outside CI there is no base URL."""
        assert build_asset_base_url(None, "abc123") is None


class TestResolveAssetUrl:
    """Test cases for resolve_asset_url function."""

    @pytest.mark.parametrize("path,expected", [
        ("images/a.png", BASE + "images/a.png"),
        ("./images/a.png", BASE + "images/a.png"),
        ("/images/a.png", BASE + "images/a.png"),
        ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        ("", ""),
    ])
    def test_resolution(self, path, expected):
        """Relative paths are joined to the base; absolute URLs are kept."""
        assert resolve_asset_url(path, BASE) == expected

    def test_no_base_keeps_path(self):
        """Without a base URL relative paths are left alone."""
        assert resolve_asset_url("images/a.png", None) == "images/a.png"


class TestRewriteImageLinks:
    """Test cases for rewrite_image_links function."""

    def test_rewrites_relative_to_file_dir(self, tmp_path):
        """Links resolve relative to the markdown file's directory."""
        (tmp_path / "posts" / "2025").mkdir(parents=True)
        (tmp_path / "posts" / "2025" / "fig.png").write_bytes(b"png")

        result = rewrite_image_links(
            "See ![fig](fig.png \"Figure\")", "posts/2025", BASE, repo_root=str(tmp_path)
        )

        assert result == f'See ![fig]({BASE}posts/2025/fig.png "Figure")'

    def test_falls_back_to_shared_images_dir(self, tmp_path):
        """A missing local file falls back to the shared images directory."""
        (tmp_path / "images").mkdir()
        (tmp_path / "images" / "cover.png").write_bytes(b"png")

        result = rewrite_image_links(
            "![c](cover.png)", "posts", BASE, images_dir="images", repo_root=str(tmp_path)
        )

        assert result == f"![c]({BASE}images/cover.png)"

    def test_parent_directory_links(self, tmp_path):
        """../ links are normalised against the file directory."""
        result = rewrite_image_links(
            "![x](../images/x.png)", "posts", BASE, repo_root=str(tmp_path)
        )

        assert result == f"![x]({BASE}images/x.png)"

    def test_absolute_links_untouched(self):
        """Absolute URLs are not rewritten."""
        markdown = "![x](https://cdn.example.com/x.png)"

        assert rewrite_image_links(markdown, "posts", BASE) == markdown

    def test_no_base_url_is_noop(self):
        """Without a base URL the markdown is returned unchanged."""
        assert rewrite_image_links("![x](x.png)", "posts", None) == "![x](x.png)"

    def test_plain_links_untouched(self):
        """Non-image links are left alone."""
        assert rewrite_image_links("[x](x.png)", "posts", BASE) == "[x](x.png)"
