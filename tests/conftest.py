"""
Shared fixtures for chromewire tests.
"""

import asyncio
import json
from typing import Any, Callable, Optional

import pytest

from chromewire.cdp import CDPConnection, CDPSession, Transport
from chromewire.config import ProtocolOptions
from chromewire.errors import TransportError


class FakeTransport(Transport):
    """In-memory transport recording outbound frames.

    ``auto_reply`` maps an outbound frame to an inbound reply (or None),
    which is delivered on the next loop iteration.
    """

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[dict[str, Any]] = []
        self.open = True
        self.send_error: Optional[Exception] = None
        self.auto_reply: Optional[Callable[[dict[str, Any]], Optional[dict[str, Any]]]] = None

    @property
    def is_open(self) -> bool:
        return self.open

    async def send(self, message: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        if not self.open:
            raise TransportError("closed")
        frame = json.loads(message)
        self.sent.append(frame)
        if self.auto_reply is not None:
            reply = self.auto_reply(frame)
            if reply is not None:
                asyncio.get_running_loop().call_soon(self.feed, reply)

    async def close(self) -> None:
        if not self.open:
            return
        self.open = False
        self._notify_close(None)

    def feed(self, frame: Any) -> None:
        """Deliver an inbound frame."""
        self._notify_message(frame if isinstance(frame, str) else json.dumps(frame))

    def drop(self, error: Optional[BaseException] = None) -> None:
        """Simulate the peer going away."""
        self.open = False
        self._notify_close(error)

    def methods(self) -> list[str]:
        return [frame["method"] for frame in self.sent]


def reply_to(frame: dict[str, Any], **fields: Any) -> dict[str, Any]:
    """Build a response frame for ``frame``."""
    reply: dict[str, Any] = {"id": frame["id"], **fields}
    if "sessionId" in frame:
        reply["sessionId"] = frame["sessionId"]
    return reply


async def wait_for_frames(transport: FakeTransport, count: int) -> None:
    """Yield to the loop until ``count`` frames were sent."""
    for _ in range(100):
        if len(transport.sent) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"expected {count} frames, got {len(transport.sent)}")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def connection(transport: FakeTransport) -> CDPConnection:
    return CDPConnection(
        transport,
        ProtocolOptions(command_timeout=5.0, wait_timeout=2000),
    )


@pytest.fixture
def session(connection: CDPConnection, transport: FakeTransport) -> CDPSession:
    """A page session attached by a Target.attachedToTarget event."""
    transport.feed(
        {
            "method": "Target.attachedToTarget",
            "params": {
                "sessionId": "SESSION-1",
                "targetInfo": {"targetId": "TARGET-1", "type": "page"},
                "waitingForDebugger": False,
            },
        }
    )
    attached = connection.session("SESSION-1")
    assert attached is not None
    return attached
