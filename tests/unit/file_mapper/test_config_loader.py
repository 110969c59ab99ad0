"""Unit tests for file_mapper.config_loader module."""

import pytest

from webflow_sync.file_mapper.config_loader import ConfigLoader
from webflow_sync.file_mapper.errors import ConfigError, FilesystemError
from webflow_sync.file_mapper.models import SyncConfig


class TestConfigLoader:
    """Test cases for ConfigLoader.load."""

    def write(self, tmp_path, text):
        path = tmp_path / "config.yaml"
        path.write_text(text, encoding="utf-8")
        return str(path)

    def test_missing_file_gives_defaults(self, tmp_path):
        """A missing config file means default settings."""
        assert ConfigLoader.load(str(tmp_path / "absent.yaml")) == SyncConfig()

    def test_empty_file_gives_defaults(self, tmp_path):
        """An empty config file means default settings."""
        assert ConfigLoader.load(self.write(tmp_path, "")) == SyncConfig()

    def test_full_config(self, tmp_path):
        """Every supported key is read."""
        path = self.write(tmp_path, """
posts_dir: content/posts
images_dir: static/img
field_ids:
  title: post_title
list_format: delimited
list_delimiter: "|"
rate_limit_per_minute: 120
max_workers: 4
max_retries: 0
write_back: false
""")

        config = ConfigLoader.load(path)

        assert config == SyncConfig(
            posts_dir="content/posts",
            images_dir="static/img",
            field_ids={"title": "post_title"},
            list_format="delimited",
            list_delimiter="|",
            rate_limit_per_minute=120,
            max_workers=4,
            max_retries=0,
            write_back=False,
        )

    def test_unknown_keys_are_ignored(self, tmp_path, caplog):
        """Unknown keys log a warning but do not fail."""
        config = ConfigLoader.load(self.write(tmp_path, "colour: blue\n"))

        assert config == SyncConfig()
        assert "colour" in caplog.text

    @pytest.mark.parametrize("text,field", [
        ("list_format: csv\n", "list_format"),
        ("rate_limit_per_minute: 0\n", "rate_limit_per_minute"),
        ("max_workers: many\n", "max_workers"),
        ("max_workers: true\n", "max_workers"),
        ("max_retries: -1\n", "max_retries"),
        ("field_ids: [a, b]\n", "field_ids"),
        ("write_back: maybe\n", "write_back"),
        ("posts_dir: ''\n", "posts_dir"),
    ])
    def test_invalid_values_name_the_field(self, tmp_path, text, field):
        """Invalid values raise ConfigError naming the field."""
        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader.load(self.write(tmp_path, text))

        assert exc_info.value.config_field == field
        assert field in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        """Broken YAML raises ConfigError."""
        with pytest.raises(ConfigError, match="Invalid YAML"):
            ConfigLoader.load(self.write(tmp_path, "posts_dir: [unclosed\n"))

    def test_non_mapping(self, tmp_path):
        """A YAML list is not a valid config."""
        with pytest.raises(ConfigError, match="dictionary"):
            ConfigLoader.load(self.write(tmp_path, "- a\n- b\n"))

    def test_directory_path_raises_filesystem_error(self, tmp_path):
        """An unreadable path raises FilesystemError."""
        with pytest.raises(FilesystemError):
            ConfigLoader.load(str(tmp_path))
