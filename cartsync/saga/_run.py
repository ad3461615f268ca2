"""
Saga execution with automatic rollback.
"""

from __future__ import annotations

import structlog
from kungfu import Error, Ok, Result

from cartsync.saga._types import Compensator, SagaError, SagaExpr, SagaResult, SagaStep, Then

logger = structlog.get_logger(__name__)

type RecordedCompensator = tuple[str | None, object, Compensator[object]]


class _StepFailed(Exception):
    def __init__(self, error: object, index: int, name: str | None) -> None:
        super().__init__(name)
        self.error = error
        self.index = index
        self.name = name


class _Ledger:
    def __init__(self) -> None:
        self.steps = 0
        self.compensators: list[RecordedCompensator] = []


# ═══════════════════════════════════════════════════════════════════════════════
# run_compensators(): Rollback
# ═══════════════════════════════════════════════════════════════════════════════


async def run_compensators(compensators: list[RecordedCompensator]) -> tuple[int, int]:
    """Run compensators in reverse. Returns (run, failed)."""
    comp_run = 0
    comp_failed = 0

    for name, value, comp in reversed(compensators):
        try:
            outcome = await comp(value)
        except Exception:
            logger.exception("Saga compensation raised", step=name)
            comp_failed += 1
            continue
        if isinstance(outcome, Error):
            logger.warning("Saga compensation failed", step=name, error=str(outcome.value))
            comp_failed += 1
        else:
            comp_run += 1

    return comp_run, comp_failed


# ═══════════════════════════════════════════════════════════════════════════════
# run(): Execute Saga
# ═══════════════════════════════════════════════════════════════════════════════


async def run[T, E](saga: SagaExpr[T, E]) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute a step or a chain of steps with automatic rollback on failure.

    On success: returns SagaResult with value and metadata.
    On failure: runs recorded compensators in reverse, returns SagaError.

    Example:
        from cartsync import saga as S

        match await S.run(placed):
            case Ok(r):
                print(f"Success: {r.value}")
            case Error(e):
                print(f"Failed at step {e.step_failed} ({e.step_name})")
    """
    ledger = _Ledger()
    try:
        value = await _run_expr(saga, ledger)
    except _StepFailed as failed:
        comp_run, comp_failed = await run_compensators(ledger.compensators)
        logger.info(
            "Saga rolled back",
            step=failed.name,
            step_failed=failed.index,
            compensators_run=comp_run,
            compensators_failed=comp_failed,
        )
        return Error(SagaError(
            error=failed.error,
            step_failed=failed.index,
            step_name=failed.name,
            compensators_run=comp_run,
            compensators_failed=comp_failed,
        ))

    return Ok(SagaResult(
        value=value,
        steps_executed=ledger.steps,
        compensators_recorded=len(ledger.compensators),
    ))


async def _run_expr(expr: SagaExpr[object, object], ledger: _Ledger) -> object:
    match expr:
        case SagaStep():
            return await _run_step(expr, ledger)
        case Then(inner, f):
            value = await _run_expr(inner, ledger)
            return await _run_expr(f(value), ledger)
        case _:
            raise TypeError(f"not a saga expression: {expr!r}")


async def _run_step(saga_step: SagaStep[object, object], ledger: _Ledger) -> object:
    ledger.steps += 1
    match await saga_step.action:
        case Ok(value):
            if saga_step.compensate is not None:
                ledger.compensators.append((saga_step.name, value, saga_step.compensate))
            return value
        case Error(e):
            raise _StepFailed(e, ledger.steps, saga_step.name)


__all__ = ("run", "run_compensators")
