"""
CDP connection handler.

Owns the transport to a browser's DevTools endpoint, decodes inbound frames
and routes them to the session they are addressed to.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from chromewire.cdp.session import CDPSession
from chromewire.cdp.transport import Transport, WebSocketTransport
from chromewire.config.options import ProtocolOptions
from chromewire.errors import TransportError
from chromewire.events.bus import EventEmitter
from chromewire.events.types import ConnectionEvent

logger = logging.getLogger(__name__)

_CONNECTION_EVENTS = frozenset(e.value for e in ConnectionEvent)


class CDPConnection(EventEmitter):
    """Multiplexes CDP sessions over one transport.

    Frames without a ``sessionId`` belong to the root (browser-level)
    session; frames with one go to the child session attached under that id.

    Example:
        connection = await CDPConnection.connect("ws://localhost:9222/devtools/browser/xxx")
        version = await connection.send("Browser.getVersion")
        session = await connection.attach(target_id)
        await connection.close()
    """

    def __init__(
        self,
        transport: Transport,
        options: Optional[ProtocolOptions] = None,
    ) -> None:
        """Initialize CDP connection.

        Args:
            transport: Open transport to the DevTools endpoint.
            options: Protocol options.
        """
        super().__init__()
        self._transport = transport
        self._options = options or ProtocolOptions()
        self._sessions: dict[str, CDPSession] = {}
        self._closed = False
        self._root = CDPSession(self, None, "browser")

        transport.on_message = self._on_frame
        transport.on_close = self._on_transport_close

    @classmethod
    async def connect(
        cls,
        ws_url: str,
        options: Optional[ProtocolOptions] = None,
    ) -> "CDPConnection":
        """Open a WebSocket transport to ``ws_url`` and wrap it."""
        transport = await WebSocketTransport.connect(ws_url, options)
        return cls(transport, options)

    @property
    def options(self) -> ProtocolOptions:
        return self._options

    @property
    def root_session(self) -> CDPSession:
        """Session for browser-level commands (no sessionId)."""
        return self._root

    @property
    def is_connected(self) -> bool:
        return not self._closed and self._transport.is_open

    @property
    def sessions(self) -> list[CDPSession]:
        """Attached child sessions."""
        return list(self._sessions.values())

    def session(self, session_id: str) -> Optional[CDPSession]:
        """Get an attached child session by id."""
        return self._sessions.get(session_id)

    def accepts(self, kind: str) -> bool:
        return kind in _CONNECTION_EVENTS

    async def send(
        self,
        method: str,
        params: Optional[dict[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> dict[str, Any]:
        """Send a browser-level command through the root session."""
        return await self._root.send(method, params, timeout=timeout)

    async def attach(self, target_id: str) -> CDPSession:
        """Attach to a target in flatten mode and return its session.

        Args:
            target_id: Target to attach to.
        """
        result = await self._root.send(
            "Target.attachToTarget",
            {"targetId": target_id, "flatten": True},
        )
        session = self._register(result["sessionId"])
        logger.debug(f"Attached session {session.session_id} to target {target_id}")
        return session

    async def attach_to_browser(self) -> CDPSession:
        """Attach a dedicated session to the browser target."""
        result = await self._root.send("Target.attachToBrowserTarget")
        return self._register(result["sessionId"], "browser")

    async def close(self) -> None:
        """Close the transport; every session detaches."""
        if self._closed:
            return
        await self._transport.close()
        self._on_transport_close(None)

    async def _send_raw(self, message: dict[str, Any]) -> None:
        if self._closed:
            raise TransportError("Connection is closed")
        payload = json.dumps(message)
        logger.debug(f"SEND ► {payload[:200]}")
        await self._transport.send(payload)

    def _register(self, session_id: str, target_type: str = "") -> CDPSession:
        session = self._sessions.get(session_id)
        if session is None:
            session = CDPSession(self, session_id, target_type)
            self._sessions[session_id] = session
            self.emit(ConnectionEvent.SESSION_ATTACHED, session)
        return session

    def _forget_session(self, session: CDPSession) -> None:
        if session.session_id is not None:
            self._sessions.pop(session.session_id, None)

    def _on_frame(self, raw: str) -> None:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Invalid JSON from peer: {raw[:100]}")
            return
        if not isinstance(data, dict):
            logger.warning(f"Unexpected frame from peer: {raw[:100]}")
            return

        logger.debug(f"◀ RECV {raw[:200]}")

        session_id = data.get("sessionId")
        if session_id is None:
            session: Optional[CDPSession] = self._root
        else:
            session = self._sessions.get(session_id)
        if session is None:
            logger.debug(f"Discarding frame for unknown session {session_id}")
            return

        method = data.get("method")
        params = data.get("params") or {}
        if method == "Target.attachedToTarget" and "sessionId" in params:
            target_type = (params.get("targetInfo") or {}).get("type", "")
            self._register(params["sessionId"], target_type)
        elif method == "Target.detachedFromTarget" and "sessionId" in params:
            child = self._sessions.get(params["sessionId"])
            if child is not None:
                child._on_closed("Target detached")

        session.on_message(data)

    def _on_transport_close(self, error: Optional[BaseException]) -> None:
        if self._closed:
            return
        self._closed = True

        for session in [*self._sessions.values(), self._root]:
            session._on_closed("Connection closed")
        self._sessions.clear()

        self.emit(ConnectionEvent.DISCONNECTED, error)
        logger.debug("CDP connection closed")

    async def __aenter__(self) -> "CDPConnection":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


__all__ = ["CDPConnection"]
