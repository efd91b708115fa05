"""
Configuration option classes for chromewire.

Strongly-typed, validated options for the protocol client and waiters.
"""

import logging
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from .defaults import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_OPEN_TIMEOUT,
    DEFAULT_PING_INTERVAL,
    DEFAULT_PING_TIMEOUT,
    DEFAULT_WAIT_TIMEOUT,
)


class ProtocolOptions(BaseModel):
    """Options for protocol connections, sessions and waits."""

    command_timeout: Optional[float] = Field(
        DEFAULT_COMMAND_TIMEOUT,
        gt=0,
        description="Seconds to wait for a command response (None waits forever)",
    )
    wait_timeout: Optional[int] = Field(
        DEFAULT_WAIT_TIMEOUT,
        ge=0,
        description="Default deadline in milliseconds for event waits",
    )
    max_message_size: int = Field(
        DEFAULT_MAX_MESSAGE_SIZE, gt=0, description="Maximum inbound frame size in bytes"
    )
    ping_interval: Optional[float] = Field(
        DEFAULT_PING_INTERVAL, gt=0, description="WebSocket keepalive interval in seconds"
    )
    ping_timeout: Optional[float] = Field(
        DEFAULT_PING_TIMEOUT, gt=0, description="WebSocket keepalive timeout in seconds"
    )
    open_timeout: float = Field(
        DEFAULT_OPEN_TIMEOUT, gt=0, description="Seconds allowed to open the connection"
    )
    log_level: str = Field(DEFAULT_LOG_LEVEL, description="Level for the chromewire loggers")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Accept level names in any case, or numeric levels."""
        if isinstance(v, int):
            return logging.getLevelName(v)
        level = str(v).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    def merge(self, other: "ProtocolOptions") -> "ProtocolOptions":
        """Merge with another ProtocolOptions, other's explicitly set fields win."""
        data = self.model_dump()
        data.update(other.model_dump(exclude_unset=True))
        return ProtocolOptions(**data)


class ChromewireConfig(BaseModel):
    """Main configuration class."""

    protocol: ProtocolOptions = Field(
        default_factory=ProtocolOptions, description="Protocol options"
    )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChromewireConfig":
        """Create configuration from dictionary."""
        return cls(**data)

    def merge(self, other: "ChromewireConfig") -> "ChromewireConfig":
        """Merge with another ChromewireConfig, other takes precedence."""
        return ChromewireConfig(protocol=self.protocol.merge(other.protocol))

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump(exclude_none=True)
