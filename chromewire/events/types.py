"""
Typed events for chromewire.

Lifecycle event kinds emitted by sessions and connections, and the payload
delivered to catch-all protocol listeners.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class SessionEvent(str, Enum):
    """Lifecycle events emitted by a CDPSession."""

    # Every protocol event, delivered as a CDPEvent.
    MESSAGE = "session.message"
    # Payload is the SessionClosedError pending commands were rejected with.
    DETACHED = "session.detached"


class ConnectionEvent(str, Enum):
    """Lifecycle events emitted by a CDPConnection."""

    SESSION_ATTACHED = "connection.session_attached"
    DISCONNECTED = "connection.disconnected"


@dataclass
class CDPEvent:
    """An unsolicited protocol event received on a session."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
    session_id: Optional[str] = None


__all__ = [
    "SessionEvent",
    "ConnectionEvent",
    "CDPEvent",
]
