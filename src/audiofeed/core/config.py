"""Configuration resolver with 4-level priority.

Priority (highest to lowest):
1. CLI arguments
2. Environment variables (AUDIOFEED_*)
3. Config files (user > system)
4. Defaults
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from audiofeed.core.errors import ConfigError

DEFAULT_LOGGING_LEVEL = "normal"

DEFAULT_DESCRIPTION_TEMPLATE = (
    "Description\n"
    "\n"
    "This release is published by {RELEASE_BY}.\n"
    "\n"
    "Stream & Download\n"
    "{RELEASE_LINK}\n"
    "\n"
    "About release\n"
    "\n"
    "- Title: {TITLE}\n"
    "- Author: {AUTHOR}\n"
    "- Album: {ALBUM}\n"
    "- Genre: {GENRE}\n"
    "- Original Artists: {ORIGINAL_ARTISTS}\n"
    "- Release date: {DATE}\n"
    "- DJ: {DJ}\n"
    "- Label: {LABEL}\n"
    "\n"
    "Social\n"
    "\n"
    "{SOCIAL_LINKS}"
)

DEFAULT_CREDITS_TEMPLATE = "\n\nCredits\n{CREDITS}"


@dataclass
class ConfigSource:
    """Represents where a config value came from."""

    value: Any
    source: str  # 'cli' | 'env' | 'user_config' | 'system_config' | 'default'


def _flatten_keys(data: dict[str, Any], prefix: str = "") -> set[str]:
    """Flatten nested dicts to dot-notation leaf keys."""
    keys: set[str] = set()
    for key, value in data.items():
        key_path = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, dict) and value:
            keys.update(_flatten_keys(value, key_path))
        else:
            keys.add(key_path)
    return keys


class ConfigResolver:
    """Resolve configuration with strict 4-level priority.

    Example:
        resolver = ConfigResolver(
            cli_args={'cache': {'ttl_seconds': 60}},
            user_config_path=Path('~/.config/audiofeed/config.yaml')
        )

        ttl, source = resolver.resolve('cache.ttl_seconds')
        # ttl = 60, source = 'cli'
    """

    def __init__(
        self,
        cli_args: dict[str, Any] | None = None,
        user_config_path: Path | None = None,
        system_config_path: Path | None = None,
        defaults: dict[str, Any] | None = None,
    ) -> None:
        """Initialize config resolver.

        Args:
            cli_args: Arguments from CLI (highest priority), nested or dotted keys
            user_config_path: Path to user config file
            system_config_path: Path to system config file
            defaults: Default values (lowest priority)
        """
        self.cli_args = cli_args or {}
        self.user_config_path = user_config_path or Path.home() / ".config/audiofeed/config.yaml"
        self.system_config_path = system_config_path or Path("/etc/audiofeed/config.yaml")
        self.defaults = defaults if defaults is not None else self._default_config()

        self._user_config: dict[str, Any] | None = None
        self._system_config: dict[str, Any] | None = None

    def resolve(self, key: str) -> tuple[Any, str]:
        """Resolve config value with priority.

        Args:
            key: Config key (supports dot notation: 'cache.ttl_seconds')

        Returns:
            (value, source) tuple

        Raises:
            ConfigError: If key not found in any source
        """
        value = self._from_cli(key)
        if value is not None:
            return value, "cli"

        value = self._from_env(key)
        if value is not None:
            return value, "env"

        value = self._get_nested(self._get_user_config(), key)
        if value is not None:
            return value, "user_config"

        value = self._get_nested(self._get_system_config(), key)
        if value is not None:
            return value, "system_config"

        value = self._get_nested(self.defaults, key)
        if value is not None:
            return value, "default"

        raise ConfigError(f"Config key '{key}' not found in any source")

    def resolve_or(self, key: str, fallback: Any) -> Any:
        """Resolve a key, returning ``fallback`` when no source provides it."""
        try:
            value, _source = self.resolve(key)
        except ConfigError:
            return fallback
        return value

    def resolve_logging_level(self) -> str:
        """Resolve logging.level, honoring the legacy logging.verbose toggle.

        An explicit logging.level from any non-default source wins. Otherwise a
        truthy logging.verbose selects 'verbose'.
        """
        level, source = self.resolve("logging.level")
        if source != "default":
            return str(level).strip().lower()

        verbose = self.resolve_or("logging.verbose", False)
        if isinstance(verbose, str):
            verbose = verbose.strip().lower() in {"1", "true", "yes", "on"}
        if verbose:
            return "verbose"
        return str(level).strip().lower() or DEFAULT_LOGGING_LEVEL

    def resolve_all(self) -> dict[str, ConfigSource]:
        """Resolve every key known to any source.

        Returns:
            Dict of key -> ConfigSource
        """
        all_keys: set[str] = set()
        all_keys.update(_flatten_keys(self.defaults))
        all_keys.update(_flatten_keys(self._get_user_config()))
        all_keys.update(_flatten_keys(self._get_system_config()))
        all_keys.update(_flatten_keys(self.cli_args))

        result: dict[str, ConfigSource] = {}
        for key in sorted(all_keys):
            try:
                value, source = self.resolve(key)
            except ConfigError:
                continue
            result[key] = ConfigSource(value=value, source=source)
        return result

    def _from_cli(self, key: str) -> Any | None:
        if key in self.cli_args:
            return self.cli_args[key]
        return self._get_nested(self.cli_args, key)

    def _from_env(self, key: str) -> Any | None:
        """Get value from environment variables.

        Environment variable format: AUDIOFEED_KEY_NAME
        Example: AUDIOFEED_CACHE_TTL_SECONDS, AUDIOFEED_PATHS_TRACKS_DIR
        """
        env_key = f"AUDIOFEED_{key.upper().replace('.', '_')}"
        return os.environ.get(env_key)

    def _get_user_config(self) -> dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml(self.user_config_path)
        return self._user_config

    def _get_system_config(self) -> dict[str, Any]:
        if self._system_config is None:
            self._system_config = self._load_yaml(self.system_config_path)
        return self._system_config

    def _load_yaml(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _get_nested(self, data: dict[str, Any], key: str) -> Any | None:
        """Get nested value using dot notation.

        Example:
            data = {'cache': {'ttl_seconds': 300}}
            _get_nested(data, 'cache.ttl_seconds') -> 300
        """
        current: Any = data
        for part in key.split("."):
            if not isinstance(current, dict):
                return None
            current = current.get(part)
            if current is None:
                return None
        return current

    @staticmethod
    def _default_config() -> dict[str, Any]:
        """Default configuration."""
        return {
            "server": {
                "host": "0.0.0.0",
                "port": 3000,
                "base_url": "",
            },
            "paths": {
                "tracks_dir": "./tracks",
                "covers_cache_dir": "./covers_cache",
            },
            "feed": {
                "title": "My Music Feed",
                "link": "https://example.com",
                "description": "Tracks published from a local library",
                "language": "en",
                "copyright": "",
                "author": "Unknown Artist",
                "email": "owner@example.com",
                "explicit": False,
                "category": "Music",
                "channel_image": "",
                "max_items": 100,
            },
            "covers": {
                "generate_square": True,
                "size": 3000,
                "mode": "crop",
                "jpeg_quality": 90,
                "fetch_timeout": 10,
            },
            "cache": {
                "ttl_seconds": 300,
            },
            "parsing": {
                "separator": " - ",
            },
            "description": {
                "enabled": False,
                "template": DEFAULT_DESCRIPTION_TEMPLATE,
                "credits_template": DEFAULT_CREDITS_TEMPLATE,
            },
            "social": {
                "links": [],
            },
            "logging": {
                "level": DEFAULT_LOGGING_LEVEL,
                "verbose": False,
                "color": True,
            },
        }
