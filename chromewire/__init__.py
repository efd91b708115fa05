"""
chromewire: asynchronous Chrome DevTools Protocol session client.

Sends correlated commands and receives responses and events for many
sessions over one connection, and races every wait against the failures
that should abort it.

Basic usage:
    from chromewire import CDPConnection, SessionClosedError, SessionEvent, Waiter

    async with await CDPConnection.connect(ws_url) as connection:
        session = await connection.attach(target_id)
        await session.send("Network.enable")

        async with Waiter() as waiter:
            waiter.fail_on_timeout(10_000, "Timeout 10000ms exceeded.")
            waiter.fail_on_event(
                session, SessionEvent.DETACHED, lambda _: SessionClosedError("waiting for request")
            )
            request = await waiter.wait_for_event(
                session, "Network.requestWillBeSent"
            )
"""

__version__ = "0.1.0"
__license__ = "MIT"

from chromewire.errors import (
    SESSION_CLOSED_MESSAGE,
    ChromewireError,
    CommandTimeoutError,
    ProtocolError,
    RaceFailureError,
    SessionClosedError,
    TransportError,
    WaitTimeoutError,
)

from chromewire.events import (
    CDPEvent,
    ConnectionEvent,
    EventEmitter,
    SessionEvent,
    Subscription,
    subscribe,
)

from chromewire.waiters import (
    WaitResult,
    Waiter,
    new_waiter,
)

from chromewire.cdp import (
    CDPConnection,
    CDPSession,
    SessionState,
    Transport,
    WebSocketTransport,
)

from chromewire.config import (
    ChromewireConfig,
    ProtocolOptions,
    load_config,
)

__all__ = [
    "__version__",
    # Errors
    "SESSION_CLOSED_MESSAGE",
    "ChromewireError",
    "CommandTimeoutError",
    "ProtocolError",
    "RaceFailureError",
    "SessionClosedError",
    "TransportError",
    "WaitTimeoutError",
    # Events
    "CDPEvent",
    "ConnectionEvent",
    "EventEmitter",
    "SessionEvent",
    "Subscription",
    "subscribe",
    # Waiters
    "WaitResult",
    "Waiter",
    "new_waiter",
    # CDP
    "CDPConnection",
    "CDPSession",
    "SessionState",
    "Transport",
    "WebSocketTransport",
    # Config
    "ChromewireConfig",
    "ProtocolOptions",
    "load_config",
]
