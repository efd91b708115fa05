"""
Default configuration values for chromewire.
"""

from typing import Any

# Protocol defaults
DEFAULT_COMMAND_TIMEOUT = 30.0
DEFAULT_WAIT_TIMEOUT = 30000
DEFAULT_MAX_MESSAGE_SIZE = 100 * 1024 * 1024
DEFAULT_PING_INTERVAL = 30.0
DEFAULT_PING_TIMEOUT = 10.0
DEFAULT_OPEN_TIMEOUT = 10.0
DEFAULT_LOG_LEVEL = "WARNING"

# File config defaults
DEFAULT_CONFIG_FILENAME = "chromewire.config"
DEFAULT_CONFIG_EXTENSIONS = [".json", ".yaml", ".yml", ".toml"]
DEFAULT_CONFIG_SEARCH_PATHS = [
    ".",
    "~/.config/chromewire",
]

# Environment variable prefix
ENV_PREFIX = "CHROMEWIRE_"


def get_default_protocol_config() -> dict[str, Any]:
    """Get default protocol configuration as a dictionary."""
    return {
        "command_timeout": DEFAULT_COMMAND_TIMEOUT,
        "wait_timeout": DEFAULT_WAIT_TIMEOUT,
        "max_message_size": DEFAULT_MAX_MESSAGE_SIZE,
        "ping_interval": DEFAULT_PING_INTERVAL,
        "ping_timeout": DEFAULT_PING_TIMEOUT,
        "open_timeout": DEFAULT_OPEN_TIMEOUT,
        "log_level": DEFAULT_LOG_LEVEL,
    }
