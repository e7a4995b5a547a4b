"""Outcome — explicit result type for engine operations.

Every engine operation returns an Outcome whose ``value`` is always
usable: on failure it holds the documented neutral default and ``error``
describes what went wrong.  Callers that only want the value can ignore
the error; callers that care can branch on ``ok``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    value: T
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def degraded(cls, default: T, error: BaseException | str) -> "Outcome[T]":
        """Wrap a neutral default together with the failure that produced it."""
        if isinstance(error, BaseException):
            message = f"{type(error).__name__}: {error}"
        else:
            message = error
        return cls(value=default, error=message)
