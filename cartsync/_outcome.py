"""
Outcome: flat `{success, error?, value?}` projection of a Result.

For UI layers that would rather branch on a flag than pattern-match:

    outcome = Outcome.from_result(await engine.cart.add("p1"))
    if not outcome.success:
        toast(outcome.error)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from kungfu import Error, Ok, Result

from cartsync._errors import ErrorKind


class _Failure(Protocol):
    @property
    def kind(self) -> ErrorKind: ...

    @property
    def message(self) -> str: ...


@dataclass(frozen=True, slots=True)
class Outcome[T]:
    success: bool
    value: T | None = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def from_result(cls, result: Result[T, _Failure]) -> Outcome[T]:
        match result:
            case Ok(value):
                return cls(success=True, value=value)
            case Error(failure):
                return cls(success=False, error=failure.message, kind=failure.kind)
            case _:
                raise TypeError(f"not a Result: {result!r}")


__all__ = ("Outcome",)
