"""
Wait system for chromewire.

Every "wait until something happens" operation is a Waiter race: the awaited
outcome against failure events and a deadline.

Example:
    from chromewire.waiters import Waiter, JavaScriptCondition

    async with Waiter() as waiter:
        waiter.fail_on_timeout(5000, "Timeout 5000ms exceeded.")
        ready = await waiter.wait_for_condition(
            JavaScriptCondition(session, "document.readyState === 'complete'")
        )
"""

from typing import Optional

from chromewire.waiters.conditions import (
    AllConditions,
    AnyCondition,
    CustomCondition,
    JavaScriptCondition,
    NotCondition,
    WaitCondition,
)
from chromewire.waiters.result import WaitResult
from chromewire.waiters.waiter import ErrorFactory, LogCallback, Waiter


def new_waiter(log_callback: Optional[LogCallback] = None) -> Waiter:
    """Create a waiter reporting its log lines to ``log_callback``."""
    return Waiter(log_callback=log_callback)


__all__ = [
    "Waiter",
    "WaitResult",
    "ErrorFactory",
    "LogCallback",
    "new_waiter",
    "WaitCondition",
    "JavaScriptCondition",
    "CustomCondition",
    "AllConditions",
    "AnyCondition",
    "NotCondition",
]
