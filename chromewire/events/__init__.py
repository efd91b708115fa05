"""
Event system for chromewire.

- EventEmitter: base class for sessions and connections
- subscribe: one-shot future subscription used by waiters
- Typed lifecycle events

Example:
    ```python
    from chromewire.events import subscribe

    future, unsubscribe = subscribe(
        session,
        "Network.requestWillBeSent",
        lambda params: params["request"]["url"].endswith(".js"),
    )
    try:
        params = await future
    finally:
        unsubscribe()
    ```
"""

from .bus import (
    EventEmitter,
    EventHandler,
    EventKind,
    EventPredicate,
    HandlerEntry,
    Subscription,
    event_key,
    subscribe,
)
from .types import (
    CDPEvent,
    ConnectionEvent,
    SessionEvent,
)

__all__ = [
    "EventEmitter",
    "EventHandler",
    "EventKind",
    "EventPredicate",
    "HandlerEntry",
    "Subscription",
    "event_key",
    "subscribe",
    "CDPEvent",
    "ConnectionEvent",
    "SessionEvent",
]
