"""
Wait coordinator for chromewire.

A Waiter races one primary outcome (the thing being waited for) against
any number of failure outcomes: events that must abort the wait, and an
optional deadline. Whichever settles first decides the result. Every
listener and timer the waiter registered is released on every exit path.

Example:
    async with Waiter() as waiter:
        waiter.log('waiting for "Page.loadEventFired"')
        waiter.fail_on_timeout(30_000, "Timeout 30000ms exceeded.")
        waiter.fail_on_event(
            session,
            SessionEvent.DETACHED,
            lambda _: SessionClosedError("Page.loadEventFired"),
        )
        params = await waiter.wait_for_event(session, "Page.loadEventFired")
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Optional

from chromewire.errors import (
    ChromewireError,
    RaceFailureError,
    WaitTimeoutError,
)
from chromewire.events.bus import EventEmitter, EventKind, EventPredicate, subscribe
from chromewire.waiters.conditions import WaitCondition
from chromewire.waiters.result import WaitResult

logger = logging.getLogger(__name__)

ErrorFactory = Callable[[Any], BaseException]
LogCallback = Callable[[str], None]
Disposer = Callable[[], None]


class Waiter:
    """Races a primary outcome against failure outcomes and a deadline.

    Every contender reports through a done-callback, and asyncio runs those
    in the order the contenders settled. The first report is written to a
    single outcome future; later ones are ignored.

    A waiter covers one logical wait and is disposed exactly once, either
    when that wait settles or when ``dispose`` is called. Disposal stops
    observing; it does not cancel work the primary outcome came from.
    """

    def __init__(
        self,
        *,
        log_callback: Optional[LogCallback] = None,
        name: Optional[str] = None,
    ) -> None:
        """Initialize waiter.

        Args:
            log_callback: Diagnostic sink called with every logged line.
            name: Label used in debug logging.
        """
        self._log_callback = log_callback
        self._name = name or "waiter"
        self._logs: list[str] = []
        self._outcome: Optional[asyncio.Future[WaitResult[Any]]] = None
        self._disposers: list[Disposer] = []
        self._disposed = False

    @property
    def logs(self) -> list[str]:
        """Lines logged so far."""
        return list(self._logs)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def log(self, message: str) -> None:
        """Append a line to the diagnostic log."""
        self._logs.append(message)
        logger.debug(f"[{self._name}] {message}")
        if self._log_callback is not None:
            try:
                self._log_callback(message)
            except Exception:
                logger.exception("Waiter log callback failed")

    def fail_on_event(
        self,
        source: Optional[EventEmitter],
        kind: EventKind,
        error_factory: ErrorFactory,
        predicate: Optional[EventPredicate] = None,
    ) -> None:
        """Fail the wait if ``kind`` is emitted on ``source`` first.

        Args:
            source: Event source; None registers nothing.
            kind: Event kind.
            error_factory: Builds the error from the event payload.
            predicate: Only events satisfying it count.
        """
        if source is None:
            return
        self._ensure_active()

        subscription = subscribe(source, kind, predicate)
        self._disposers.append(subscription.unsubscribe)
        subscription.future.add_done_callback(
            functools.partial(self._on_failure_event, error_factory)
        )

    def fail_on_timeout(self, timeout_ms: Optional[float], message: str) -> None:
        """Fail the wait with a WaitTimeoutError after ``timeout_ms`` milliseconds.

        A None timeout registers nothing.
        """
        if timeout_ms is None:
            return
        self._ensure_active()

        timer = asyncio.get_running_loop().call_later(
            timeout_ms / 1000, self._on_deadline, message
        )
        self._disposers.append(timer.cancel)

    async def wait_for_event(
        self,
        source: EventEmitter,
        kind: EventKind,
        predicate: Optional[EventPredicate] = None,
    ) -> Any:
        """Wait for the next ``kind`` event on ``source`` and return its payload."""
        self._ensure_active()
        subscription = subscribe(source, kind, predicate)
        result = await self.settle(subscription.future, subscription.unsubscribe)
        return result.unwrap()

    async def wait_for_condition(
        self,
        condition: WaitCondition,
        *,
        polling_interval: float = 0.1,
    ) -> Any:
        """Poll ``condition`` until it is truthy and return its value.

        Args:
            condition: Condition to poll.
            polling_interval: Seconds between checks.
        """
        self._ensure_active()
        self.log(f"waiting for {condition.description}")
        poller = asyncio.ensure_future(self._poll(condition, polling_interval))
        result = await self.settle(poller, poller.cancel)
        return result.unwrap()

    async def wait_for_promise(
        self,
        primary: Awaitable[Any],
        dispose: Optional[Disposer] = None,
    ) -> Any:
        """Race an arbitrary awaitable and return its value."""
        result = await self.settle(primary, dispose)
        return result.unwrap()

    async def settle(
        self,
        primary: Awaitable[Any],
        dispose: Optional[Disposer] = None,
    ) -> WaitResult[Any]:
        """Race ``primary`` against every registered failure.

        The waiter is disposed once the race is decided, whichever side won.

        Args:
            primary: Awaitable producing the awaited value.
            dispose: Releases whatever ``primary`` listens on.

        Returns:
            ``ok`` with the primary's value, or ``err`` with the error that
            ended the wait, carrying the log lines.
        """
        self._ensure_active()
        if dispose is not None:
            self._disposers.append(dispose)

        outcome = self._outcome_future()
        primary_future = asyncio.ensure_future(primary)
        primary_future.add_done_callback(self._on_primary_done)

        try:
            result = await outcome
        except asyncio.CancelledError:
            self.log("wait cancelled")
            raise
        finally:
            self.dispose()

        if result.is_ok:
            return result

        logger.debug(f"[{self._name}] wait failed: {result.error!r}")
        return WaitResult.err(self._with_logs(result.error))

    def dispose(self) -> None:
        """Release every listener and timer. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True

        for disposer in self._disposers:
            try:
                disposer()
            except Exception:
                logger.debug("Ignoring error while releasing wait listener", exc_info=True)
        self._disposers.clear()

        self._decide(WaitResult.err(RaceFailureError("Wait was cancelled")))

    def _ensure_active(self) -> None:
        if self._disposed:
            raise RuntimeError("Waiter has already been disposed")

    def _outcome_future(self) -> "asyncio.Future[WaitResult[Any]]":
        if self._outcome is None:
            self._outcome = asyncio.get_running_loop().create_future()
        return self._outcome

    def _decide(self, result: WaitResult[Any]) -> None:
        # First write wins.
        if self._outcome is None and self._disposed:
            return
        outcome = self._outcome_future()
        if not outcome.done():
            outcome.set_result(result)

    def _on_primary_done(self, future: "asyncio.Future[Any]") -> None:
        if future.cancelled():
            self._decide(WaitResult.err(RaceFailureError("Wait was cancelled")))
        elif future.exception() is not None:
            self._decide(WaitResult.err(future.exception()))
        else:
            self._decide(WaitResult.ok(future.result()))

    def _on_failure_event(
        self,
        error_factory: ErrorFactory,
        event: "asyncio.Future[Any]",
    ) -> None:
        if event.cancelled():
            return
        if event.exception() is not None:
            self._decide(WaitResult.err(event.exception()))
            return
        try:
            error = error_factory(event.result())
        except Exception as e:
            error = e
        self._decide(WaitResult.err(error))

    def _on_deadline(self, message: str) -> None:
        self._decide(WaitResult.err(WaitTimeoutError(message)))

    def _with_logs(self, error: BaseException) -> BaseException:
        if isinstance(error, ChromewireError):
            return error.attach_logs(self._logs)
        wrapped = RaceFailureError(str(error) or type(error).__name__, cause=error)
        wrapped.__cause__ = error
        return wrapped.attach_logs(self._logs)

    @staticmethod
    async def _poll(condition: WaitCondition, interval: float) -> Any:
        while True:
            result = await condition.check()
            if result:
                return result
            await asyncio.sleep(interval)

    async def __aenter__(self) -> "Waiter":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.dispose()


__all__ = [
    "ErrorFactory",
    "LogCallback",
    "Waiter",
]
