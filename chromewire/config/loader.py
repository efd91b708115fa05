"""
Configuration file loader for chromewire.

Loads configuration from JSON, YAML, or TOML files, overlays environment
variables and programmatic overrides, and validates the result.
"""

import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from chromewire.errors import ChromewireError

from .defaults import (
    DEFAULT_CONFIG_EXTENSIONS,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_CONFIG_SEARCH_PATHS,
)
from .env import load_env_config
from .options import ChromewireConfig

logger = logging.getLogger(__name__)


class ConfigurationError(ChromewireError):
    """Configuration loading or parsing error."""


def _load_json(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _load_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


_LOADERS = {
    ".json": _load_json,
    ".yaml": _load_yaml,
    ".yml": _load_yaml,
    ".toml": _load_toml,
}


def load_file(path: Union[str, Path]) -> dict[str, Any]:
    """Load configuration from file based on extension.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If the file is missing, unreadable, or of an
            unsupported format
    """
    path = Path(path)

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    loader = _LOADERS.get(path.suffix.lower())
    if loader is None:
        raise ConfigurationError(f"Unsupported configuration format: {path.suffix}")

    try:
        data = loader(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read configuration file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return data


def find_config_file(
    filename: str = DEFAULT_CONFIG_FILENAME,
    search_paths: Optional[list[str]] = None,
    extensions: Optional[list[str]] = None,
) -> Optional[Path]:
    """Find configuration file in search paths.

    Args:
        filename: Base filename without extension
        search_paths: Directories to search
        extensions: File extensions to try

    Returns:
        Path to config file or None if not found
    """
    for search_path in search_paths or DEFAULT_CONFIG_SEARCH_PATHS:
        search_dir = Path(search_path).expanduser()
        for ext in extensions or DEFAULT_CONFIG_EXTENSIONS:
            config_path = search_dir / f"{filename}{ext}"
            if config_path.exists():
                return config_path

    return None


def merge_configs(*configs: dict[str, Any]) -> dict[str, Any]:
    """Deep merge configuration dictionaries, later ones take precedence."""
    result: dict[str, Any] = {}

    for config in configs:
        _deep_merge(result, config)

    return result


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


class ConfigLoader:
    """Configuration loader with support for multiple sources.

    Priority (highest to lowest):
    1. Programmatic overrides
    2. Environment variables
    3. Configuration file
    4. Default values
    """

    def __init__(
        self,
        config_file: Optional[Union[str, Path]] = None,
        search_paths: Optional[list[str]] = None,
        load_env: bool = True,
        auto_find: bool = True,
    ):
        """Initialize configuration loader.

        Args:
            config_file: Explicit path to configuration file
            search_paths: Directories to search for config files
            load_env: Whether to load environment variables
            auto_find: Whether to auto-find config files
        """
        self.config_file = Path(config_file) if config_file else None
        self.search_paths = search_paths or DEFAULT_CONFIG_SEARCH_PATHS
        self.load_env = load_env
        self.auto_find = auto_find

    def load(self, overrides: Optional[dict[str, Any]] = None) -> ChromewireConfig:
        """Load and validate configuration from all sources."""
        configs = [self._load_file_config()]

        if self.load_env:
            configs.append(load_env_config())

        if overrides:
            configs.append(overrides)

        return ChromewireConfig.from_dict(merge_configs(*configs))

    def _load_file_config(self) -> dict[str, Any]:
        if self.config_file is not None:
            return load_file(self.config_file)

        if not self.auto_find:
            return {}

        found = find_config_file(search_paths=self.search_paths)
        if found is None:
            return {}

        try:
            return load_file(found)
        except ConfigurationError as e:
            logger.warning(f"Ignoring unreadable configuration file: {e}")
            return {}


def load_config(
    config_file: Optional[Union[str, Path]] = None,
    overrides: Optional[dict[str, Any]] = None,
    load_env: bool = True,
) -> ChromewireConfig:
    """Convenience function to load configuration.

    Args:
        config_file: Path to configuration file
        overrides: Programmatic overrides
        load_env: Whether to load environment variables

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader(config_file=config_file, load_env=load_env)
    return loader.load(overrides=overrides)


def configure_logging(level: Union[str, int]) -> None:
    """Set the level of the ``chromewire`` logger hierarchy."""
    logging.getLogger("chromewire").setLevel(level)
