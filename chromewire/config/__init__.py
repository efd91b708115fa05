"""
Configuration module for chromewire.

- ProtocolOptions / ChromewireConfig: validated option models (Pydantic)
- Configuration files (JSON, YAML, TOML)
- Environment variables (CHROMEWIRE_PROTOCOL_*)

Example usage:
    from chromewire.config import load_config

    config = load_config(overrides={"protocol": {"command_timeout": 5}})
    connection = await CDPConnection.connect(ws_url, config.protocol)

Environment variables:
    CHROMEWIRE_PROTOCOL_COMMAND_TIMEOUT=5
    CHROMEWIRE_PROTOCOL_WAIT_TIMEOUT=10000
    CHROMEWIRE_PROTOCOL_LOG_LEVEL=debug
"""

from .defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_WAIT_TIMEOUT,
    ENV_PREFIX,
    get_default_protocol_config,
)
from .env import (
    ENV_MAPPINGS,
    EnvConfigLoader,
    get_env,
    get_env_bool,
    get_env_float,
    get_env_int,
    get_env_key,
    load_env_config,
)
from .loader import (
    ConfigLoader,
    ConfigurationError,
    configure_logging,
    find_config_file,
    load_config,
    load_file,
    merge_configs,
)
from .options import ChromewireConfig, ProtocolOptions

__all__ = [
    "DEFAULT_COMMAND_TIMEOUT",
    "DEFAULT_CONFIG_FILENAME",
    "DEFAULT_WAIT_TIMEOUT",
    "ENV_PREFIX",
    "get_default_protocol_config",
    "ENV_MAPPINGS",
    "EnvConfigLoader",
    "get_env",
    "get_env_bool",
    "get_env_float",
    "get_env_int",
    "get_env_key",
    "load_env_config",
    "ConfigLoader",
    "ConfigurationError",
    "configure_logging",
    "find_config_file",
    "load_config",
    "load_file",
    "merge_configs",
    "ChromewireConfig",
    "ProtocolOptions",
]
