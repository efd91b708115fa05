"""
Error types for chromewire.

Every error raised by the library derives from ChromewireError. Waits that
fail attach their diagnostic log lines to the error, and those lines are
rendered as a delimited block at the end of the message.
"""

from __future__ import annotations

from typing import Any, Optional

SESSION_CLOSED_MESSAGE = "Target page, context or browser has been closed"

_LOGS_HEADER = " logs "
_LOGS_WIDTH = 60


def format_log_recording(logs: list[str]) -> str:
    """Render wait log lines as a delimited block.

    Args:
        logs: Lines collected by a waiter.

    Returns:
        The formatted block, or an empty string if there are no lines.
    """
    if not logs:
        return ""

    left = (_LOGS_WIDTH - len(_LOGS_HEADER)) // 2
    right = _LOGS_WIDTH - len(_LOGS_HEADER) - left
    body = "\n".join(logs)
    return f"\n{'=' * left}{_LOGS_HEADER}{'=' * right}\n{body}\n{'=' * _LOGS_WIDTH}"


class ChromewireError(Exception):
    """Base class for chromewire errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        self.logs: list[str] = []
        super().__init__(message)

    def attach_logs(self, logs: list[str]) -> "ChromewireError":
        """Attach wait log lines to be rendered with the message."""
        self.logs = list(logs)
        return self

    def __str__(self) -> str:
        return self.message + format_log_recording(self.logs)


class ProtocolError(ChromewireError):
    """The peer rejected a command."""

    def __init__(
        self,
        method: str,
        message: str,
        code: int = -1,
        data: Optional[Any] = None,
    ) -> None:
        self.method = method
        self.code = code
        self.data = data
        self.peer_message = message
        super().__init__(f"Protocol error ({method}): {message}")


class SessionClosedError(ChromewireError):
    """A command or wait ran into a detached session or closed connection."""

    def __init__(self, reason: Optional[str] = None) -> None:
        message = SESSION_CLOSED_MESSAGE
        if reason:
            message = f"{reason}: {SESSION_CLOSED_MESSAGE}"
        super().__init__(message)


class WaitTimeoutError(ChromewireError, TimeoutError):
    """A deadline elapsed before the awaited outcome settled."""


class CommandTimeoutError(WaitTimeoutError):
    """No response arrived for a command within its timeout."""

    def __init__(self, method: str, timeout: float) -> None:
        self.method = method
        self.timeout = timeout
        super().__init__(f"Timeout {timeout}s exceeded waiting for response to {method}")


class RaceFailureError(ChromewireError):
    """A registered failure condition settled before the awaited outcome."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


class TransportError(ChromewireError):
    """The transport failed to deliver an outbound message."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        super().__init__(message)


__all__ = [
    "SESSION_CLOSED_MESSAGE",
    "format_log_recording",
    "ChromewireError",
    "ProtocolError",
    "SessionClosedError",
    "WaitTimeoutError",
    "CommandTimeoutError",
    "RaceFailureError",
    "TransportError",
]
