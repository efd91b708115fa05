"""
Environment variable support for chromewire configuration.

Options map to variables named ``CHROMEWIRE_<SECTION>_<OPTION>``, for
example ``CHROMEWIRE_PROTOCOL_COMMAND_TIMEOUT=5``.
"""

import os
from typing import Any, Optional, TypeVar, Union, get_args, get_origin

from .defaults import ENV_PREFIX

T = TypeVar("T")

_NONE_VALUES = ("none", "null", "")


def get_env_key(key: str, prefix: str = ENV_PREFIX) -> str:
    """Convert a configuration key to environment variable name.

    Args:
        key: Configuration key (e.g., "protocol.command_timeout")
        prefix: Environment variable prefix

    Returns:
        Environment variable name (e.g., "CHROMEWIRE_PROTOCOL_COMMAND_TIMEOUT")
    """
    return f"{prefix}{key.upper().replace('.', '_').replace('-', '_')}"


def parse_bool(value: str) -> bool:
    """Parse string to boolean."""
    return value.lower() in ("true", "1", "yes", "on", "enabled")


def parse_value(value: str, target_type: Any) -> Any:
    """Parse string value to target type.

    ``Optional[X]`` accepts "none"/"null"/"" as None and otherwise parses X.

    Args:
        value: String value
        target_type: Target type

    Returns:
        Parsed value
    """
    if get_origin(target_type) is Union:
        args = get_args(target_type)
        if type(None) in args and value.strip().lower() in _NONE_VALUES:
            return None
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            return parse_value(value, non_none_types[0])
        return value

    if target_type is bool:
        return parse_bool(value)

    if target_type is int:
        return int(value)

    if target_type is float:
        return float(value)

    return value


def get_env(
    key: str,
    default: Optional[T] = None,
    target_type: Optional[Any] = None,
    prefix: str = ENV_PREFIX,
) -> Optional[Union[T, str]]:
    """Get configuration value from environment variable.

    Args:
        key: Configuration key (e.g., "protocol.log_level")
        default: Default value if not set
        target_type: Target type for parsing
        prefix: Environment variable prefix

    Returns:
        Parsed value or default
    """
    value = os.environ.get(get_env_key(key, prefix))

    if value is None:
        return default

    if target_type is not None:
        return parse_value(value, target_type)

    if default is not None:
        return parse_value(value, type(default))

    return value


def get_env_bool(key: str, default: bool = False, prefix: str = ENV_PREFIX) -> bool:
    """Get boolean value from environment variable."""
    result = get_env(key, default, bool, prefix)
    return result if isinstance(result, bool) else default


def get_env_int(key: str, default: int = 0, prefix: str = ENV_PREFIX) -> int:
    """Get integer value from environment variable."""
    result = get_env(key, default, int, prefix)
    return result if isinstance(result, int) else default


def get_env_float(key: str, default: float = 0.0, prefix: str = ENV_PREFIX) -> float:
    """Get float value from environment variable."""
    result = get_env(key, default, float, prefix)
    return result if isinstance(result, (int, float)) else default


class EnvConfigLoader:
    """Load whole configuration sections from prefixed environment variables."""

    def __init__(self, prefix: str = ENV_PREFIX):
        self.prefix = prefix

    def load_section(self, section: str) -> dict[str, str]:
        """Load all raw environment values for a section.

        Args:
            section: Configuration section (e.g., "protocol")

        Returns:
            Option name to unparsed string value
        """
        section_prefix = f"{self.prefix}{section.upper()}_"
        return {
            key[len(section_prefix):].lower(): value
            for key, value in os.environ.items()
            if key.startswith(section_prefix)
        }


# Known options and the type their value is parsed to
ENV_MAPPINGS: dict[str, tuple[str, Any]] = {
    "protocol.command_timeout": ("CHROMEWIRE_PROTOCOL_COMMAND_TIMEOUT", Optional[float]),
    "protocol.wait_timeout": ("CHROMEWIRE_PROTOCOL_WAIT_TIMEOUT", Optional[int]),
    "protocol.max_message_size": ("CHROMEWIRE_PROTOCOL_MAX_MESSAGE_SIZE", int),
    "protocol.ping_interval": ("CHROMEWIRE_PROTOCOL_PING_INTERVAL", Optional[float]),
    "protocol.ping_timeout": ("CHROMEWIRE_PROTOCOL_PING_TIMEOUT", Optional[float]),
    "protocol.open_timeout": ("CHROMEWIRE_PROTOCOL_OPEN_TIMEOUT", float),
    "protocol.log_level": ("CHROMEWIRE_PROTOCOL_LOG_LEVEL", str),
}


def load_env_config() -> dict[str, Any]:
    """Load configuration from the known environment variables.

    Returns:
        Nested dictionary containing only the options that are set
    """
    result: dict[str, Any] = {}

    for key, (env_var, target_type) in ENV_MAPPINGS.items():
        value = os.environ.get(env_var)
        if value is not None:
            section, option = key.split(".", 1)
            result.setdefault(section, {})[option] = parse_value(value, target_type)

    return result
