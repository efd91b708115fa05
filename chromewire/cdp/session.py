"""
CDP session management.

A CDPSession multiplexes commands and events for one attached target over
the connection's shared transport.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional

from chromewire.errors import (
    CommandTimeoutError,
    ProtocolError,
    SessionClosedError,
    TransportError,
)
from chromewire.events.bus import EventEmitter, EventKind, EventPredicate, event_key
from chromewire.events.types import CDPEvent, SessionEvent
from chromewire.waiters.waiter import Waiter

if TYPE_CHECKING:
    from chromewire.cdp.connection import CDPConnection

logger = logging.getLogger(__name__)

_SESSION_EVENTS = frozenset(e.value for e in SessionEvent)


class SessionState(str, Enum):
    """Session lifecycle. DETACHED is terminal."""

    ATTACHED = "attached"
    DETACHED = "detached"


@dataclass
class PendingCommand:
    """A command awaiting its response."""

    id: int
    method: str
    future: "asyncio.Future[dict[str, Any]]"


class CDPSession(EventEmitter):
    """Chrome DevTools Protocol session for a specific target.

    Commands get per-session correlation ids; responses are matched by id,
    every other inbound frame is dispatched as an event named by its
    ``method``. Once detached, a session never accepts another command.

    Example:
        async with await CDPConnection.connect(ws_url) as connection:
            session = await connection.attach(target_id)
            await session.send("Page.enable")
            await session.send("Page.navigate", {"url": "https://example.com"})
            await session.wait_for_event("Page.loadEventFired")
            await session.detach()
    """

    def __init__(
        self,
        connection: "CDPConnection",
        session_id: Optional[str],
        target_type: str = "",
    ) -> None:
        """Initialize CDP session.

        Args:
            connection: Connection that owns the transport.
            session_id: Protocol session id, None for the connection's root session.
            target_type: Type of the attached target ("page", "browser", ...).
        """
        super().__init__()
        self._connection = connection
        self._session_id = session_id
        self._target_type = target_type
        self._state = SessionState.ATTACHED
        self._ids = itertools.count(1)
        self._pending: dict[int, PendingCommand] = {}
        # Guards id allocation, the pending map and the state transition.
        self._lock = threading.Lock()

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def target_type(self) -> str:
        return self._target_type

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_attached(self) -> bool:
        return self._state is SessionState.ATTACHED

    @property
    def pending_count(self) -> int:
        """Number of commands awaiting a response."""
        return len(self._pending)

    def accepts(self, kind: str) -> bool:
        # Protocol events are named "Domain.event".
        return kind in _SESSION_EVENTS or "." in kind

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Send a CDP command to this session's target.

        Args:
            method: CDP method name.
            params: Method parameters.
            timeout: Seconds (not milliseconds, unlike ``wait_for_event``'s
                ``timeout_ms``) to wait for the response; defaults to the
                connection's ``command_timeout``.

        Returns:
            Command result.

        Raises:
            ProtocolError: If the peer rejects the command.
            SessionClosedError: If the session is or becomes detached.
            CommandTimeoutError: If no response arrives in time.
            TransportError: If the frame could not be delivered.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._state is SessionState.DETACHED:
                raise SessionClosedError(method)
            command_id = next(self._ids)
            pending = PendingCommand(command_id, method, loop.create_future())
            self._pending[command_id] = pending

        message: dict[str, Any] = {
            "id": command_id,
            "method": method,
            "params": params or {},
        }
        if self._session_id is not None:
            message["sessionId"] = self._session_id

        if timeout is None:
            timeout = self._connection.options.command_timeout

        try:
            # A detach between registration and here already rejected it.
            if not pending.future.done():
                await self._deliver(pending, message)

            if timeout is None:
                return await pending.future
            try:
                return await asyncio.wait_for(pending.future, timeout)
            except asyncio.TimeoutError:
                if pending.future.cancelled():
                    raise CommandTimeoutError(method, timeout) from None
                raise
        finally:
            self._take(command_id)

    async def _deliver(self, pending: PendingCommand, message: dict[str, Any]) -> None:
        try:
            await self._connection._send_raw(message)
        except Exception as e:
            taken = self._take(pending.id)
            if taken is None or taken.future.done():
                return
            error = e
            if not isinstance(error, TransportError):
                error = TransportError(f"Failed to send {pending.method}: {e}", cause=e)
            taken.future.set_exception(error)

    def on_message(self, data: dict[str, Any]) -> None:
        """Handle one inbound frame addressed to this session.

        A frame whose ``id`` matches a pending command resolves that command;
        any other frame with a ``method`` is dispatched as an event.
        """
        if self._state is SessionState.DETACHED:
            logger.debug(f"Discarding frame for detached session {self._session_id}")
            return

        command_id = data.get("id")
        if command_id is not None:
            pending = self._take(command_id)
            if pending is not None:
                self._resolve(pending, data)
                return
            if "method" not in data:
                logger.debug(f"Discarding response for unknown command id {command_id}")
                return

        method = data.get("method")
        if not method:
            logger.warning(f"Discarding frame without id or method: {str(data)[:100]}")
            return

        params = data.get("params") or {}
        self.emit(method, params)
        self.emit(SessionEvent.MESSAGE, CDPEvent(method, params, self._session_id))

    async def wait_for_event(
        self,
        event: EventKind,
        predicate: Optional[EventPredicate] = None,
        *,
        timeout_ms: Optional[int] = None,
    ) -> Any:
        """Wait for the next matching event on this session.

        Args:
            event: Event name (e.g., "Page.loadEventFired").
            predicate: Optional filter over the event params.
            timeout_ms: Milliseconds to wait; defaults to ``wait_timeout``.

        Returns:
            The event params.

        Raises:
            WaitTimeoutError: If the event does not arrive in time.
            SessionClosedError: If the session detaches first.
        """
        key = event_key(event)
        if self._state is SessionState.DETACHED:
            raise SessionClosedError(f'Waiting for event "{key}"')
        if timeout_ms is None:
            timeout_ms = self._connection.options.wait_timeout

        async with Waiter(name=f"session {self._session_id or 'root'}") as waiter:
            waiter.log(f'waiting for event "{key}"')
            waiter.fail_on_timeout(
                timeout_ms, f'Timeout {timeout_ms}ms exceeded while waiting for event "{key}"'
            )
            waiter.fail_on_event(
                self,
                SessionEvent.DETACHED,
                lambda _: SessionClosedError(f'Waiting for event "{key}"'),
            )
            return await waiter.wait_for_event(self, event, predicate)

    async def detach(self) -> None:
        """Detach from the target.

        Raises:
            SessionClosedError: If the session is already detached.
        """
        if not self._on_closed("Session detached"):
            raise SessionClosedError("Session already detached")

        if self._session_id is None:
            return

        try:
            await self._connection.root_session.send(
                "Target.detachFromTarget",
                {"sessionId": self._session_id},
            )
        except (ProtocolError, SessionClosedError, TransportError) as e:
            logger.debug(f"Ignoring error detaching session {self._session_id}: {e}")

    def _on_closed(self, reason: str) -> bool:
        """Transition to DETACHED and reject every pending command.

        Returns:
            False if the session was already detached.
        """
        with self._lock:
            if self._state is SessionState.DETACHED:
                return False
            self._state = SessionState.DETACHED
            pending = list(self._pending.values())
            self._pending.clear()

        for command in pending:
            if not command.future.done():
                command.future.set_exception(SessionClosedError(command.method))

        self._connection._forget_session(self)
        self.emit(SessionEvent.DETACHED, SessionClosedError(reason))
        self.remove_all_listeners()
        logger.debug(
            f"Session {self._session_id} detached ({reason}), "
            f"rejected {len(pending)} pending command(s)"
        )
        return True

    def _take(self, command_id: int) -> Optional[PendingCommand]:
        with self._lock:
            return self._pending.pop(command_id, None)

    @staticmethod
    def _resolve(pending: PendingCommand, data: dict[str, Any]) -> None:
        if pending.future.done():
            return
        if "error" in data:
            error = data["error"] or {}
            pending.future.set_exception(
                ProtocolError(
                    pending.method,
                    error.get("message", "Unknown error"),
                    error.get("code", -1),
                    error.get("data"),
                )
            )
        else:
            pending.future.set_result(data.get("result") or {})

    async def __aenter__(self) -> "CDPSession":
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self.is_attached:
            await self.detach()


__all__ = [
    "CDPSession",
    "PendingCommand",
    "SessionState",
]
