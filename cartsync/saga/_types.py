"""
Saga types: steps, chains and run outcomes.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from kungfu import LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Compensator: Undo Action
# ═══════════════════════════════════════════════════════════════════════════════

type Compensator[T] = Callable[[T], Awaitable[object]]
"""
Undo for a step, given the step's value.

Raising, or returning a kungfu Error, counts as a failed compensation.
"""

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep: Single Step with Compensation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    A single saga step: action + compensator.

    The compensator is recorded only once the action succeeded.
    """

    action: LazyCoroResult[T, E]
    compensate: Compensator[T] | None
    name: str | None = None

    def then[U](self, f: Callable[[T], SagaExpr[U, E]]) -> Then[T, U, E]:
        """Chain another step after this one."""
        return Then(self, f)


# ═══════════════════════════════════════════════════════════════════════════════
# Then: Sequential Composition
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Then[T, U, E]:
    """Run inner, feed its value to f, run what f returns."""

    inner: SagaExpr[T, E]
    f: Callable[[T], SagaExpr[U, E]]

    def then[V](self, g: Callable[[U], SagaExpr[V, E]]) -> Then[U, V, E]:
        return Then(self, g)


type SagaExpr[T, E] = SagaStep[T, E] | Then[object, T, E]

# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    """Successful saga result with metadata."""

    value: T
    steps_executed: int
    compensators_recorded: int


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """
    Saga failure with rollback status.

    step_failed is 1-based; steps before it succeeded and were compensated
    (where they had a compensator).
    """

    error: E
    step_failed: int
    step_name: str | None
    compensators_run: int
    compensators_failed: int

    @property
    def rollback_complete(self) -> bool:
        return self.compensators_failed == 0


__all__ = (
    "Compensator",
    "SagaStep",
    "Then",
    "SagaExpr",
    "SagaResult",
    "SagaError",
)
