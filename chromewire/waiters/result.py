"""
Tagged outcome of a settled wait.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class WaitResult(Generic[T]):
    """Either ``ok`` with a value or ``err`` with an exception."""

    value: Optional[T] = None
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, value: T) -> "WaitResult[T]":
        return cls(value=value)

    @classmethod
    def err(cls, error: BaseException) -> "WaitResult[Any]":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


__all__ = ["WaitResult"]
