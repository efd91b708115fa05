"""
Event registry for chromewire.

Event sources derive from EventEmitter and register handlers explicitly by
event kind. ``subscribe`` builds one-shot future subscriptions on top of it,
which is what waiters race against.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional, Union

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]
EventPredicate = Callable[[Any], bool]
EventKind = Union[str, Enum]


def event_key(kind: EventKind) -> str:
    """Normalize an event kind to its string key."""
    return kind.value if isinstance(kind, Enum) else kind


@dataclass
class HandlerEntry:
    """Registered handler with its one-shot flag."""

    handler: EventHandler
    once: bool = False


class EventEmitter:
    """Base class for event sources.

    Handlers receive a single payload argument. Sync handlers run inline,
    coroutine handlers are scheduled as tasks. Handler exceptions are
    logged and never interrupt dispatch to the remaining handlers.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[HandlerEntry]] = {}
        self._handler_tasks: set[asyncio.Task[Any]] = set()

    def accepts(self, kind: str) -> bool:
        """Whether this source can emit events of ``kind``."""
        return True

    def _check_kind(self, kind: EventKind) -> str:
        key = event_key(kind)
        if not self.accepts(key):
            raise ValueError(
                f"{type(self).__name__} does not emit '{key}' events"
            )
        return key

    def on(self, event: EventKind, handler: EventHandler) -> "EventEmitter":
        """Register an event handler.

        Args:
            event: Event kind to listen for.
            handler: Callable receiving the event payload.

        Returns:
            Self for chaining.
        """
        key = self._check_kind(event)
        self._handlers.setdefault(key, []).append(HandlerEntry(handler))
        return self

    def once(self, event: EventKind, handler: EventHandler) -> "EventEmitter":
        """Register a handler that is removed after its first call."""
        key = self._check_kind(event)
        self._handlers.setdefault(key, []).append(HandlerEntry(handler, once=True))
        return self

    def off(
        self,
        event: EventKind,
        handler: Optional[EventHandler] = None,
    ) -> "EventEmitter":
        """Remove a handler, or every handler for the event if none is given.

        Removing a handler that is not registered is a no-op.
        """
        key = event_key(event)
        if handler is None:
            self._handlers.pop(key, None)
            return self

        entries = self._handlers.get(key)
        if entries:
            self._handlers[key] = [e for e in entries if e.handler != handler]
            if not self._handlers[key]:
                del self._handlers[key]
        return self

    def emit(self, event: EventKind, payload: Any = None) -> bool:
        """Dispatch an event to every current handler in registration order.

        Returns:
            True if any handler was called.
        """
        key = event_key(event)
        entries = self._handlers.get(key)
        if not entries:
            return False

        snapshot = list(entries)
        if any(e.once for e in snapshot):
            self._handlers[key] = [e for e in entries if not e.once]
            if not self._handlers[key]:
                del self._handlers[key]

        for entry in snapshot:
            try:
                result = entry.handler(payload)
                if asyncio.iscoroutine(result):
                    task = asyncio.ensure_future(result)
                    self._handler_tasks.add(task)
                    task.add_done_callback(self._on_handler_task_done)
            except Exception:
                logger.exception(f"Error in event handler for {key}")

        return True

    def _on_handler_task_done(self, task: asyncio.Task[Any]) -> None:
        self._handler_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Error in async event handler",
                exc_info=task.exception(),
            )

    def listener_count(self, event: EventKind) -> int:
        """Get the number of listeners for an event."""
        return len(self._handlers.get(event_key(event), []))

    def event_names(self) -> list[str]:
        """Get all event kinds with at least one listener."""
        return list(self._handlers)

    def remove_all_listeners(self, event: Optional[EventKind] = None) -> "EventEmitter":
        """Remove all listeners, optionally for a specific event."""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(event_key(event), None)
        return self


class Subscription(NamedTuple):
    """A one-shot event subscription.

    ``future`` resolves with the payload of the first matching event, or is
    cancelled by ``unsubscribe``. ``unsubscribe`` is idempotent.
    """

    future: "asyncio.Future[Any]"
    unsubscribe: Callable[[], None]


def subscribe(
    source: EventEmitter,
    kind: EventKind,
    predicate: Optional[EventPredicate] = None,
) -> Subscription:
    """Subscribe to the next ``kind`` event on ``source``.

    Only events emitted after this call count; nothing is replayed. If
    ``predicate`` raises, the future fails with that exception.

    Args:
        source: Event source to listen on.
        kind: Event kind.
        predicate: Optional filter over the event payload.

    Returns:
        The subscription's future and its unsubscribe callback.
    """
    if not isinstance(source, EventEmitter):
        raise TypeError(f"{type(source).__name__} is not an event source")

    future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
    removed = False

    def unsubscribe() -> None:
        nonlocal removed
        if removed:
            return
        removed = True
        source.off(kind, handler)
        if not future.done():
            future.cancel()

    def handler(payload: Any) -> None:
        if future.done():
            return
        try:
            if predicate is not None and not predicate(payload):
                return
            future.set_result(payload)
        except Exception as e:
            future.set_exception(e)
        unsubscribe()

    source.on(kind, handler)
    return Subscription(future, unsubscribe)


__all__ = [
    "EventHandler",
    "EventPredicate",
    "EventKind",
    "event_key",
    "HandlerEntry",
    "EventEmitter",
    "Subscription",
    "subscribe",
]
