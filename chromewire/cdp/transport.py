"""
Transports carrying raw protocol frames.

A transport moves text frames in both directions and reports inbound frames
and closure through callbacks. It knows nothing about ids or sessions.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import websockets

from chromewire.config.options import ProtocolOptions
from chromewire.errors import TransportError

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str], None]
CloseCallback = Callable[[Optional[BaseException]], None]


class Transport(ABC):
    """Duplex text-frame channel to the peer."""

    def __init__(self) -> None:
        self.on_message: Optional[MessageCallback] = None
        self.on_close: Optional[CloseCallback] = None

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether frames can still be sent."""
        ...

    @abstractmethod
    async def send(self, message: str) -> None:
        """Send one frame.

        Raises:
            TransportError: If the frame could not be delivered.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the channel. ``on_close`` fires once."""
        ...

    def _notify_message(self, message: str) -> None:
        if self.on_message is not None:
            self.on_message(message)

    def _notify_close(self, error: Optional[BaseException] = None) -> None:
        callback, self.on_close = self.on_close, None
        if callback is not None:
            callback(error)


class WebSocketTransport(Transport):
    """Transport over a DevTools WebSocket endpoint.

    Example:
        transport = await WebSocketTransport.connect(
            "ws://localhost:9222/devtools/browser/xxx"
        )
        await transport.send('{"id": 1, "method": "Browser.getVersion"}')
        await transport.close()
    """

    def __init__(self, ws_url: str, options: Optional[ProtocolOptions] = None) -> None:
        """Initialize WebSocket transport.

        Args:
            ws_url: WebSocket URL to connect to.
            options: Protocol options (message size, keepalive, open timeout).
        """
        super().__init__()
        self._ws_url = ws_url
        self._options = options or ProtocolOptions()
        self._ws: Any = None
        self._receive_task: Optional[asyncio.Task[None]] = None
        self._open = False

    @classmethod
    async def connect(
        cls,
        ws_url: str,
        options: Optional[ProtocolOptions] = None,
    ) -> "WebSocketTransport":
        """Create a transport and open its connection."""
        transport = cls(ws_url, options)
        await transport.open()
        return transport

    @property
    def ws_url(self) -> str:
        return self._ws_url

    @property
    def is_open(self) -> bool:
        return self._open and self._ws is not None

    async def open(self) -> None:
        """Establish the WebSocket connection and start reading frames."""
        if self._open:
            return

        logger.debug(f"Connecting to {self._ws_url}")
        try:
            self._ws = await websockets.connect(
                self._ws_url,
                max_size=self._options.max_message_size,
                ping_interval=self._options.ping_interval,
                ping_timeout=self._options.ping_timeout,
                open_timeout=self._options.open_timeout,
            )
        except (OSError, asyncio.TimeoutError, websockets.exceptions.WebSocketException) as e:
            raise TransportError(f"Failed to connect to {self._ws_url}: {e}", cause=e) from e

        self._open = True
        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.debug("WebSocket connection established")

    async def send(self, message: str) -> None:
        if not self.is_open:
            raise TransportError("WebSocket transport is closed")
        try:
            await self._ws.send(message)
        except websockets.exceptions.ConnectionClosed as e:
            raise TransportError(f"WebSocket connection closed: {e}", cause=e) from e

    async def close(self) -> None:
        if not self._open:
            return
        self._open = False

        if self._receive_task and not self._receive_task.done():
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        if self._ws is not None:
            await self._ws.close()
            self._ws = None

        self._notify_close(None)
        logger.debug("WebSocket connection closed")

    async def _receive_loop(self) -> None:
        """Background loop delivering inbound frames in arrival order."""
        error: Optional[BaseException] = None
        try:
            async for message in self._ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8")
                try:
                    self._notify_message(message)
                except Exception:
                    logger.exception("Error handling inbound frame")
        except websockets.exceptions.ConnectionClosed as e:
            logger.debug(f"WebSocket closed by peer: {e}")
            error = e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("WebSocket receive loop error")
            error = e

        self._open = False
        self._notify_close(error)
