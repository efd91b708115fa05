"""
Pollable wait conditions for chromewire.

A condition is checked repeatedly by ``Waiter.wait_for_condition`` until it
returns a truthy value.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Union

from chromewire.errors import ProtocolError

if TYPE_CHECKING:
    from chromewire.cdp.session import CDPSession


class WaitCondition(ABC):
    """Abstract base class for wait conditions.

    A wait condition is a predicate that can be polled until it returns True
    or a truthy value.
    """

    @abstractmethod
    async def check(self) -> Any:
        """Check if the condition is satisfied.

        Returns:
            False/None if not satisfied, truthy value if satisfied.
        """
        ...

    @property
    def description(self) -> str:
        """Human-readable description of the condition."""
        return self.__class__.__name__


class JavaScriptCondition(WaitCondition):
    """Wait for a JavaScript expression to return a truthy value.

    Evaluation errors reported by the peer count as "not yet"; a closed
    session propagates.
    """

    def __init__(self, cdp_session: "CDPSession", expression: str) -> None:
        self._session = cdp_session
        self._expression = expression

    async def check(self) -> Any:
        try:
            result = await self._session.send(
                "Runtime.evaluate",
                {
                    "expression": self._expression,
                    "returnByValue": True,
                    "awaitPromise": True,
                },
            )
        except ProtocolError:
            return False
        if "exceptionDetails" in result:
            return False
        return result.get("result", {}).get("value")

    @property
    def description(self) -> str:
        if len(self._expression) > 50:
            return f"JavaScript condition: {self._expression[:50]}..."
        return f"JavaScript condition: {self._expression}"


class CustomCondition(WaitCondition):
    """Wait for a custom sync or async predicate to return a truthy value."""

    def __init__(
        self,
        predicate: Callable[[], Union[bool, Any]],
        description: str = "custom condition",
    ) -> None:
        self._predicate = predicate
        self._description = description

    async def check(self) -> Any:
        result = self._predicate()
        if asyncio.iscoroutine(result):
            return await result
        return result

    @property
    def description(self) -> str:
        return self._description


class AllConditions(WaitCondition):
    """Wait for all conditions to be satisfied."""

    def __init__(self, *conditions: WaitCondition) -> None:
        self._conditions = conditions

    async def check(self) -> bool:
        for condition in self._conditions:
            if not await condition.check():
                return False
        return True

    @property
    def description(self) -> str:
        descriptions = [c.description for c in self._conditions]
        return f"all of: [{', '.join(descriptions)}]"


class AnyCondition(WaitCondition):
    """Wait for any condition to be satisfied."""

    def __init__(self, *conditions: WaitCondition) -> None:
        self._conditions = conditions

    async def check(self) -> Any:
        for condition in self._conditions:
            result = await condition.check()
            if result:
                return result
        return False

    @property
    def description(self) -> str:
        descriptions = [c.description for c in self._conditions]
        return f"any of: [{', '.join(descriptions)}]"


class NotCondition(WaitCondition):
    """Wait for a condition to NOT be satisfied."""

    def __init__(self, condition: WaitCondition) -> None:
        self._condition = condition

    async def check(self) -> bool:
        return not await self._condition.check()

    @property
    def description(self) -> str:
        return f"NOT ({self._condition.description})"


__all__ = [
    "WaitCondition",
    "JavaScriptCondition",
    "CustomCondition",
    "AllConditions",
    "AnyCondition",
    "NotCondition",
]
