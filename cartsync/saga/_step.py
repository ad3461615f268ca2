"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from combinators import lift as L
from kungfu import LazyCoroResult, Result

from cartsync.saga._types import Compensator, SagaStep

# ═══════════════════════════════════════════════════════════════════════════════
# step(): Primary Constructor
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: Compensator[T] | None = None,
    *,
    name: str | None = None,
) -> SagaStep[T, E]:
    """
    Create a compensated saga step.

    Example:
        from cartsync import saga as S

        header = S.step(
            LazyCoroResult(lambda: client.insert_order(draft)),
            compensate=lambda ref: client.update_order_status(ref.id, OrderStatus.FAILED),
            name="order_header",
        )
        placed = header.then(lambda ref: S.step(
            LazyCoroResult(lambda: client.insert_order_lines(lines_for(ref))),
            name="order_lines",
        ))
    """
    return SagaStep(action=action, compensate=compensate, name=name)


def from_result[T, E](
    action: Callable[[], Awaitable[Result[T, E]]],
    compensate: Compensator[T] | None = None,
    *,
    name: str | None = None,
) -> SagaStep[T, E]:
    """Create step from an async callable that already returns a Result."""
    return SagaStep(action=LazyCoroResult(action), compensate=compensate, name=name)


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: Compensator[T] | None = None,
    *,
    name: str | None = None,
) -> SagaStep[T, E]:
    """
    Create step from a plain async callable, capturing exceptions.

    Example:
        S.from_async(
            lambda: gateway.reserve(order_id),
            on_error=lambda e: Errors.transient(str(e), "reserve"),
        )
    """
    return SagaStep(
        action=L.catching_async(action, on_error=on_error),
        compensate=compensate,
        name=name,
    )


__all__ = ("step", "from_result", "from_async")
