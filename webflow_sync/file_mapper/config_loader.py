"""YAML configuration loading and validation.

This module loads the optional sync configuration file. Credentials never
live here (they come from the environment, see webflow_client.auth); the
file only tunes where posts live and how fields are mapped and throttled.
A missing file means "use the defaults".
"""

import logging
from typing import Any, Dict

import yaml

from .errors import ConfigError, FilesystemError
from .models import LIST_FORMAT_DELIMITED, LIST_FORMAT_LIST, SyncConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = ".webflow-sync/config.yaml"


class ConfigLoader:
    """Handles configuration file loading and validation.

    Configuration file structure (every key optional):
        posts_dir: posts
        images_dir: images
        field_ids:
          title: name
          tags: tags_multi
        list_format: list          # or "delimited"
        list_delimiter: ", "
        rate_limit_per_minute: 60
        max_workers: 1
        max_retries: 3
        write_back: true
    """

    KNOWN_FIELDS = {
        'posts_dir', 'images_dir', 'field_ids', 'list_format', 'list_delimiter',
        'rate_limit_per_minute', 'max_workers', 'max_retries', 'write_back',
    }

    @classmethod
    def load(cls, config_path: str = DEFAULT_CONFIG_PATH) -> SyncConfig:
        """Load and parse configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            SyncConfig object (defaults when the file does not exist)

        Raises:
            FilesystemError: If the file exists but cannot be read
            ConfigError: If configuration is invalid or malformed
        """
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            logger.debug(f"No config file at {config_path}, using defaults")
            return SyncConfig()
        except PermissionError:
            raise FilesystemError(
                config_path,
                'read',
                'Permission denied'
            )
        except OSError as e:
            raise FilesystemError(
                config_path,
                'read',
                str(e)
            )

        try:
            config_dict = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(
                f"Invalid YAML syntax: {str(e)}"
            )

        if config_dict is None:
            return SyncConfig()

        if not isinstance(config_dict, dict):
            raise ConfigError(
                f"Configuration must be a YAML dictionary, got {type(config_dict).__name__}"
            )

        return cls._parse_config(config_dict)

    @staticmethod
    def _positive_int(config_dict: Dict[str, Any], key: str, default: int, minimum: int = 1) -> int:
        value = config_dict.get(key, default)
        if isinstance(value, bool):
            raise ConfigError(f"Field '{key}' must be an integer", key)
        try:
            value = int(value)
        except (ValueError, TypeError):
            raise ConfigError(f"Field '{key}' must be an integer, got {value!r}", key)
        if value < minimum:
            raise ConfigError(f"Field '{key}' must be at least {minimum}, got {value}", key)
        return value

    @classmethod
    def _parse_config(cls, config_dict: Dict[str, Any]) -> SyncConfig:
        """Parse and validate configuration dictionary.

        Raises:
            ConfigError: If configuration is invalid
        """
        unknown = set(config_dict) - cls.KNOWN_FIELDS
        if unknown:
            logger.warning(f"Ignoring unknown config field(s): {', '.join(sorted(unknown))}")

        defaults = SyncConfig()

        posts_dir = str(config_dict.get('posts_dir', defaults.posts_dir) or '').strip()
        if not posts_dir:
            raise ConfigError("Field 'posts_dir' cannot be empty", 'posts_dir')

        images_dir = str(config_dict.get('images_dir', defaults.images_dir) or '').strip()

        field_ids = config_dict.get('field_ids') or {}
        if not isinstance(field_ids, dict):
            raise ConfigError("Field 'field_ids' must be a dictionary", 'field_ids')
        field_ids = {str(k): str(v) for k, v in field_ids.items()}

        list_format = str(config_dict.get('list_format', defaults.list_format))
        if list_format not in (LIST_FORMAT_LIST, LIST_FORMAT_DELIMITED):
            raise ConfigError(
                f"Field 'list_format' must be '{LIST_FORMAT_LIST}' or "
                f"'{LIST_FORMAT_DELIMITED}', got '{list_format}'",
                'list_format'
            )

        list_delimiter = str(config_dict.get('list_delimiter', defaults.list_delimiter))

        write_back = config_dict.get('write_back', defaults.write_back)
        if not isinstance(write_back, bool):
            raise ConfigError("Field 'write_back' must be true or false", 'write_back')

        return SyncConfig(
            posts_dir=posts_dir,
            images_dir=images_dir,
            field_ids=field_ids,
            list_format=list_format,
            list_delimiter=list_delimiter,
            rate_limit_per_minute=cls._positive_int(
                config_dict, 'rate_limit_per_minute', defaults.rate_limit_per_minute
            ),
            max_workers=cls._positive_int(config_dict, 'max_workers', defaults.max_workers),
            max_retries=cls._positive_int(
                config_dict, 'max_retries', defaults.max_retries, minimum=0
            ),
            write_back=write_back,
        )
