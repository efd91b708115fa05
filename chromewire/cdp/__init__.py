"""
Chrome DevTools Protocol (CDP) client for chromewire.

- CDPConnection: owns the transport and routes frames to sessions
- CDPSession: correlated commands and events for one attached target
- Transport / WebSocketTransport: raw frame channel

Example usage:
    ```python
    from chromewire.cdp import CDPConnection

    async with await CDPConnection.connect(ws_url) as connection:
        targets = await connection.send("Target.getTargets")
        page = next(t for t in targets["targetInfos"] if t["type"] == "page")

        session = await connection.attach(page["targetId"])
        await session.send("Page.enable")
        await session.send("Page.navigate", {"url": "https://example.com"})
        await session.wait_for_event("Page.loadEventFired")
        await session.detach()
    ```
"""

from chromewire.cdp.connection import CDPConnection
from chromewire.cdp.session import CDPSession, PendingCommand, SessionState
from chromewire.cdp.transport import Transport, WebSocketTransport

__all__ = [
    "CDPConnection",
    "CDPSession",
    "PendingCommand",
    "SessionState",
    "Transport",
    "WebSocketTransport",
]
