"""
Tests for chromewire CDP sessions.

Covers command correlation, error reporting, event dispatch and the
attach/detach lifecycle.
"""

import asyncio
import traceback

import pytest

from chromewire.cdp import CDPSession, SessionState
from chromewire.errors import (
    SESSION_CLOSED_MESSAGE,
    CommandTimeoutError,
    ProtocolError,
    SessionClosedError,
    TransportError,
    WaitTimeoutError,
)
from chromewire.events import CDPEvent, SessionEvent
from chromewire.waiters import Waiter

from conftest import reply_to, wait_for_frames


def reply_detach(frame):
    if frame["method"] == "Target.detachFromTarget":
        return reply_to(frame, result={})
    return None


class TestSend:
    """Tests for CDPSession.send."""

    @pytest.mark.asyncio
    async def test_send_returns_result(self, session, transport):
        """Test a response resolves the matching command."""
        transport.auto_reply = lambda f: reply_to(f, result={"result": {"value": 3}})

        result = await session.send("Runtime.evaluate", {"expression": "1 + 2"})

        assert result == {"result": {"value": 3}}
        assert transport.sent == [
            {
                "id": 1,
                "method": "Runtime.evaluate",
                "params": {"expression": "1 + 2"},
                "sessionId": "SESSION-1",
            }
        ]
        assert session.pending_count == 0

    @pytest.mark.asyncio
    async def test_params_default_to_empty_object(self, session, transport):
        """Test params are sent as {} when omitted."""
        transport.auto_reply = lambda f: reply_to(f, result={})

        await session.send("Runtime.enable")

        assert transport.sent[0]["params"] == {}

    @pytest.mark.asyncio
    async def test_root_session_omits_session_id(self, connection, transport):
        """Test browser-level commands carry no sessionId."""
        transport.auto_reply = lambda f: reply_to(f, result={"product": "Chrome"})

        result = await connection.send("Browser.getVersion")

        assert result["product"] == "Chrome"
        assert "sessionId" not in transport.sent[0]

    @pytest.mark.asyncio
    async def test_ids_increase_per_session(self, session, transport):
        """Test correlation ids are assigned monotonically."""
        transport.auto_reply = lambda f: reply_to(f, result={})

        await session.send("Runtime.enable")
        await session.send("Network.enable")
        await session.send("Page.enable")

        assert [f["id"] for f in transport.sent] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_concurrent_sends(self, session, transport):
        """Test concurrent commands all resolve."""
        transport.auto_reply = lambda f: reply_to(f, result={"method": f["method"]})

        results = await asyncio.gather(
            session.send("Runtime.enable"),
            session.send("Runtime.evaluate", {"expression": "window.foo = 'bar'"}),
        )

        assert results == [
            {"method": "Runtime.enable"},
            {"method": "Runtime.evaluate"},
        ]

    @pytest.mark.asyncio
    async def test_out_of_order_responses(self, session, transport):
        """Test responses are matched by id, not by arrival order."""
        first = asyncio.create_task(session.send("DOM.getDocument"))
        second = asyncio.create_task(session.send("DOM.querySelector"))
        await wait_for_frames(transport, 2)

        transport.feed(reply_to(transport.sent[1], result={"nodeId": 2}))
        transport.feed({"method": "DOM.documentUpdated", "params": {}, "sessionId": "SESSION-1"})
        transport.feed(reply_to(transport.sent[0], result={"root": {"nodeId": 1}}))

        assert await first == {"root": {"nodeId": 1}}
        assert await second == {"nodeId": 2}

    @pytest.mark.asyncio
    async def test_peer_error_raises_protocol_error(self, session, transport):
        """Test errors name the failing command and the calling function."""
        transport.auto_reply = lambda f: reply_to(
            f,
            error={"code": -32601, "message": "'ThisCommand.DoesNotExist' wasn't found"},
        )

        async def the_source_of_the_problems():
            await session.send("ThisCommand.DoesNotExist")

        with pytest.raises(ProtocolError) as exc_info:
            await the_source_of_the_problems()

        error = exc_info.value
        assert "ThisCommand.DoesNotExist" in str(error)
        assert error.method == "ThisCommand.DoesNotExist"
        assert error.code == -32601
        assert "wasn't found" in error.peer_message
        stack = "".join(traceback.format_tb(exc_info.tb))
        assert "the_source_of_the_problems" in stack

    @pytest.mark.asyncio
    async def test_transport_failure_rejects_command(self, session, transport):
        """Test a delivery failure surfaces as TransportError."""
        transport.send_error = ConnectionResetError("reset by peer")

        with pytest.raises(TransportError) as exc_info:
            await session.send("Page.enable")

        assert isinstance(exc_info.value.cause, ConnectionResetError)
        assert session.pending_count == 0

    @pytest.mark.asyncio
    async def test_command_timeout(self, session, transport):
        """Test a missing response times out and is forgotten."""
        with pytest.raises(CommandTimeoutError) as exc_info:
            await session.send("Page.navigate", {"url": "about:blank"}, timeout=0.05)

        assert "Page.navigate" in str(exc_info.value)
        assert isinstance(exc_info.value, TimeoutError)
        assert session.pending_count == 0

        # A late response is discarded without error.
        transport.feed(reply_to(transport.sent[0], result={}))

    @pytest.mark.asyncio
    async def test_cancelled_send_is_forgotten(self, session, transport):
        """Test cancelling the caller removes the pending command."""
        task = asyncio.create_task(session.send("Page.enable"))
        await wait_for_frames(transport, 1)
        assert session.pending_count == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert session.pending_count == 0


class TestEvents:
    """Tests for event dispatch."""

    def test_event_fans_out_to_all_handlers(self, session, transport):
        """Test every handler for a method receives the params."""
        first, second = [], []
        session.on("Network.requestWillBeSent", first.append)
        session.on("Network.requestWillBeSent", second.append)

        params = {"requestId": "1", "request": {"url": "https://example.com/"}}
        transport.feed(
            {"method": "Network.requestWillBeSent", "params": params, "sessionId": "SESSION-1"}
        )

        assert first == [params]
        assert second == [params]

    def test_catch_all_message_event(self, session, transport):
        """Test every event is also delivered as a CDPEvent."""
        events = []
        session.on(SessionEvent.MESSAGE, events.append)

        transport.feed({"method": "Page.loadEventFired", "params": {"timestamp": 1.5}, "sessionId": "SESSION-1"})

        assert events == [CDPEvent("Page.loadEventFired", {"timestamp": 1.5}, "SESSION-1")]

    @pytest.mark.asyncio
    async def test_response_is_not_dispatched_as_event(self, session, transport):
        """Test a matched response never reaches event listeners."""
        events = []
        session.on(SessionEvent.MESSAGE, events.append)

        task = asyncio.create_task(session.send("Runtime.enable"))
        await wait_for_frames(transport, 1)
        transport.feed(reply_to(transport.sent[0], result={}))
        await task

        assert events == []

    def test_unknown_response_is_discarded(self, session, transport):
        """Test a response for an unknown id is dropped."""
        events = []
        session.on(SessionEvent.MESSAGE, events.append)

        transport.feed({"id": 99, "result": {}, "sessionId": "SESSION-1"})

        assert events == []

    def test_events_for_other_sessions_are_not_delivered(self, session, transport, connection):
        """Test routing by sessionId."""
        root_events, page_events = [], []
        connection.root_session.on("Target.targetCreated", root_events.append)
        session.on("Target.targetCreated", page_events.append)

        transport.feed({"method": "Target.targetCreated", "params": {"targetInfo": {}}})
        transport.feed({"method": "Target.targetCreated", "params": {}, "sessionId": "UNKNOWN"})

        assert len(root_events) == 1
        assert page_events == []

    def test_invalid_json_is_ignored(self, session, transport):
        """Test malformed frames do not break routing."""
        transport.feed("{not json")
        transport.feed("[1, 2]")
        assert session.is_attached

    def test_rejects_unknown_event_kind(self, session):
        """Test subscribing to something that is not an event name."""
        with pytest.raises(ValueError):
            session.on("notanevent", lambda params: None)

    @pytest.mark.asyncio
    async def test_wait_for_event(self, session, transport):
        """Test waiting for an event matching a predicate."""
        waiting = asyncio.create_task(
            session.wait_for_event(
                "Debugger.scriptParsed",
                lambda params: params.get("url") == "foo.js",
            )
        )
        await asyncio.sleep(0)

        for url in ("bar.js", "foo.js"):
            transport.feed(
                {"method": "Debugger.scriptParsed", "params": {"url": url}, "sessionId": "SESSION-1"}
            )

        assert await waiting == {"url": "foo.js"}
        assert session.listener_count("Debugger.scriptParsed") == 0
        assert session.listener_count(SessionEvent.DETACHED) == 0

    @pytest.mark.asyncio
    async def test_wait_for_event_timeout(self, session):
        """Test the wait fails with the logged stage in its message."""
        with pytest.raises(WaitTimeoutError) as exc_info:
            await session.wait_for_event("Page.loadEventFired", timeout_ms=30)

        message = str(exc_info.value)
        assert "Timeout 30ms exceeded" in message
        assert 'waiting for event "Page.loadEventFired"' in message
        assert " logs " in message

    @pytest.mark.asyncio
    async def test_wait_for_event_fails_when_target_detaches(self, session, transport):
        """Test a wait is aborted by a peer-initiated detach."""
        waiting = asyncio.create_task(session.wait_for_event("Page.loadEventFired"))
        await asyncio.sleep(0)

        transport.feed(
            {"method": "Target.detachedFromTarget", "params": {"sessionId": "SESSION-1"}}
        )

        with pytest.raises(SessionClosedError) as exc_info:
            await waiting
        assert SESSION_CLOSED_MESSAGE in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_crash_frame_before_load_frame_fails_wait(self, session, transport):
        """Test frames arriving back to back are raced in arrival order."""
        waiter = Waiter()
        waiter.fail_on_event(
            session, "Inspector.targetCrashed", lambda _: SessionClosedError("Target crashed")
        )
        waiting = asyncio.create_task(waiter.wait_for_event(session, "Page.loadEventFired"))
        await asyncio.sleep(0)

        transport.feed({"method": "Inspector.targetCrashed", "params": {}, "sessionId": "SESSION-1"})
        transport.feed(
            {"method": "Page.loadEventFired", "params": {"timestamp": 1}, "sessionId": "SESSION-1"}
        )

        with pytest.raises(SessionClosedError) as exc_info:
            await waiting
        assert "Target crashed" in str(exc_info.value)
        assert session.listener_count("Inspector.targetCrashed") == 0
        assert session.listener_count("Page.loadEventFired") == 0


class TestDetach:
    """Tests for the attach/detach lifecycle."""

    @pytest.mark.asyncio
    async def test_detach_sweeps_pending_commands(self, session, transport):
        """Test every outstanding command is rejected on detach."""
        transport.auto_reply = reply_detach
        tasks = [
            asyncio.create_task(session.send("Runtime.evaluate", {"expression": str(i)}))
            for i in range(3)
        ]
        await wait_for_frames(transport, 3)

        await session.detach()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        assert all(isinstance(r, SessionClosedError) for r in results)
        assert all(SESSION_CLOSED_MESSAGE in str(r) for r in results)
        assert session.state is SessionState.DETACHED
        assert session.pending_count == 0

    @pytest.mark.asyncio
    async def test_detach_sends_detach_from_target(self, session, transport, connection):
        """Test the peer is told through the root session."""
        transport.auto_reply = reply_detach

        await session.detach()

        assert transport.sent[-1]["method"] == "Target.detachFromTarget"
        assert transport.sent[-1]["params"] == {"sessionId": "SESSION-1"}
        assert "sessionId" not in transport.sent[-1]
        assert connection.session("SESSION-1") is None

    @pytest.mark.asyncio
    async def test_send_after_detach_fails_without_frame(self, session, transport):
        """Test the error, then detach, then closed-session scenario."""
        transport.auto_reply = lambda f: (
            reply_detach(f) or reply_to(f, error={"message": f"'{f['method']}' wasn't found"})
        )

        with pytest.raises(ProtocolError) as exc_info:
            await session.send("Foo.doesNotExist", {})
        assert "Foo.doesNotExist" in str(exc_info.value)

        await session.detach()
        sent_before = len(transport.sent)

        with pytest.raises(SessionClosedError) as exc_info:
            await session.send("Foo.bar", {})

        assert SESSION_CLOSED_MESSAGE in str(exc_info.value)
        assert len(transport.sent) == sent_before

    @pytest.mark.asyncio
    async def test_response_after_detach_is_ignored(self, session, transport):
        """Test a command rejected by the detach sweep stays rejected."""
        transport.auto_reply = reply_detach
        task = asyncio.create_task(session.send("Runtime.evaluate", {"expression": "1"}))
        await wait_for_frames(transport, 1)

        await session.detach()
        transport.feed(reply_to(transport.sent[0], result={"result": {"value": 1}}))

        with pytest.raises(SessionClosedError):
            await task
        assert session.pending_count == 0

    @pytest.mark.asyncio
    async def test_response_before_detach_is_kept(self, session, transport):
        """Test a response delivered just before detach resolves its command once."""
        transport.auto_reply = reply_detach
        task = asyncio.create_task(session.send("Runtime.evaluate", {"expression": "1"}))
        await wait_for_frames(transport, 1)

        transport.feed(reply_to(transport.sent[0], result={"result": {"value": 1}}))
        await session.detach()

        assert await task == {"result": {"value": 1}}

    @pytest.mark.asyncio
    async def test_detach_twice_fails(self, session, transport):
        """Test a second detach is reported as an error."""
        transport.auto_reply = reply_detach
        await session.detach()

        with pytest.raises(SessionClosedError):
            await session.detach()

    @pytest.mark.asyncio
    async def test_detach_after_target_closed_fails(self, session, transport):
        """Test detaching a session the peer already closed."""
        transport.feed(
            {"method": "Target.detachedFromTarget", "params": {"sessionId": "SESSION-1"}}
        )

        with pytest.raises(SessionClosedError):
            await session.detach()

    @pytest.mark.asyncio
    async def test_peer_detach_error_is_not_raised(self, session, transport):
        """Test a rejected Target.detachFromTarget does not fail detach."""
        transport.auto_reply = lambda f: reply_to(f, error={"message": "No session with given id"})

        await session.detach()

        assert session.state is SessionState.DETACHED

    @pytest.mark.asyncio
    async def test_detached_event_emitted(self, session, transport):
        """Test listeners learn about the detach."""
        transport.auto_reply = reply_detach
        detached = []
        session.on(SessionEvent.DETACHED, detached.append)

        await session.detach()

        assert len(detached) == 1
        assert isinstance(detached[0], SessionClosedError)

    def test_frames_after_detach_are_ignored(self, session, transport):
        """Test no event is dispatched once detached."""
        events = []
        session.on("Page.frameNavigated", events.append)
        transport.feed(
            {"method": "Target.detachedFromTarget", "params": {"sessionId": "SESSION-1"}}
        )

        session.on_message({"method": "Page.frameNavigated", "params": {}})

        assert events == []

    @pytest.mark.asyncio
    async def test_context_manager_detaches(self, session, transport):
        """Test leaving the context detaches the session."""
        transport.auto_reply = reply_detach

        async with session:
            pass

        assert not session.is_attached


def test_session_is_cdp_session(session):
    """Test the fixture session is attached with its target type."""
    assert isinstance(session, CDPSession)
    assert session.session_id == "SESSION-1"
    assert session.target_type == "page"
    assert session.is_attached
